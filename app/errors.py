from __future__ import annotations

from dataclasses import dataclass

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_NO_CANDIDATE = 3
EXIT_PULL_FAILED = 4
EXIT_CREATION_FAILED = 5
EXIT_TIMED_OUT = 6
EXIT_PROBE_ERROR = 7
EXIT_CATALOG_ERROR = 8
EXIT_REGISTRY_UNAVAILABLE = 9


class ProvisioningError(RuntimeError):
    """
    Base class for failures that abort the provisioning pipeline.

    Each subclass names the stage it belongs to and the process exit code the
    CLI reports for it.
    """

    stage: str = "unknown"
    exit_code: int = EXIT_UNEXPECTED


class ProbeError(ProvisioningError):
    stage = "probe"
    exit_code = EXIT_PROBE_ERROR


class CatalogError(ProvisioningError):
    stage = "catalog"
    exit_code = EXIT_CATALOG_ERROR


@dataclass(eq=False)
class ExternalToolError(ProvisioningError):
    model: str
    diagnostic: str

    def __post_init__(self) -> None:
        RuntimeError.__init__(self, str(self))

    def __str__(self) -> str:
        detail = self.diagnostic.strip() or "<no output from tool>"
        return f"{self.stage} failed for model '{self.model}':\n{detail}"


class PullFailed(ExternalToolError):
    stage = "provision"
    exit_code = EXIT_PULL_FAILED


class CreationFailed(ExternalToolError):
    stage = "create"
    exit_code = EXIT_CREATION_FAILED


class RegistryUnavailable(ExternalToolError):
    """The model listing could not be read, so presence of the model is unknown."""

    stage = "provision"
    exit_code = EXIT_REGISTRY_UNAVAILABLE
