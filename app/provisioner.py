from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path

from app.errors import CreationFailed, PullFailed, RegistryUnavailable
from config.model_catalog import ModelDescriptor
from config.model_template_config import ModelTemplateConfig
from inout.modelfile_writer import ConfigArtifact, write_modelfile
from services.model_registry import ModelRegistry, RegistryCommandError

logger = logging.getLogger(__name__)


class ProvisionState(str, Enum):
    NOT_PRESENT = "not_present"
    PULLING = "pulling"
    PRESENT = "present"
    PULL_FAILED = "pull_failed"


@dataclass
class Provisioner:
    """
    Makes the selected model available locally and builds the derived model.

    Owns the ProvisionState of every descriptor it touches for the lifetime of
    one run. Pulls and creations are never retried here; only the read-only
    presence listing is.
    """

    registry: ModelRegistry
    config_path: Path
    derived_model_name: str
    list_attempts: int = 3
    _states: dict[str, ProvisionState] = field(default_factory=dict)

    def state_of(self, descriptor: ModelDescriptor) -> ProvisionState:
        return self._states.get(descriptor.name, ProvisionState.NOT_PRESENT)

    def _set_state(self, descriptor: ModelDescriptor, state: ProvisionState) -> None:
        logger.debug("%s: %s -> %s", descriptor.name, self.state_of(descriptor).value, state.value)
        self._states[descriptor.name] = state

    def _is_listed(self, name: str) -> bool:
        """
        Check the listing for `name`, retrying failed listings up to list_attempts.
        Raises RegistryUnavailable once retries are spent or the CLI is missing.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return self.registry.has_model(name)
            except RegistryCommandError as exc:
                logger.warning(
                    "Listing models failed (attempt %d/%d): %s", attempt, self.list_attempts, exc
                )
                if exc.missing_binary or attempt >= self.list_attempts:
                    raise RegistryUnavailable(model=name, diagnostic=str(exc)) from exc

    def ensure_present(self, descriptor: ModelDescriptor) -> ProvisionState:
        """
        Return PRESENT once the base model is installed, pulling it at most once.

        Raises PullFailed, with the tool's own output, when the pull fails or
        already failed earlier in this run.
        """
        current = self.state_of(descriptor)
        if current is ProvisionState.PRESENT:
            return current
        if current is ProvisionState.PULL_FAILED:
            raise PullFailed(model=descriptor.name, diagnostic="pull already failed in this run")

        if self._is_listed(descriptor.name):
            self._set_state(descriptor, ProvisionState.PRESENT)
            return ProvisionState.PRESENT

        self._set_state(descriptor, ProvisionState.PULLING)
        try:
            self.registry.pull(descriptor.name)
        except RegistryCommandError as exc:
            self._set_state(descriptor, ProvisionState.PULL_FAILED)
            raise PullFailed(model=descriptor.name, diagnostic=exc.diagnostic) from exc

        self._set_state(descriptor, ProvisionState.PRESENT)
        return ProvisionState.PRESENT

    def materialize_config(
        self,
        descriptor: ModelDescriptor,
        template_params: ModelTemplateConfig,
    ) -> ConfigArtifact:
        artifact = write_modelfile(self.config_path, descriptor.name, template_params)
        logger.info("Wrote model config %s (sha256 %s)", artifact.path, artifact.sha256[:12])
        return artifact

    def create_derived_model(self, artifact: ConfigArtifact) -> str:
        """
        Issue the single create call for the derived model.
        An existing model with the same name is overwritten.
        """
        try:
            self.registry.create(self.derived_model_name, artifact.path)
        except RegistryCommandError as exc:
            raise CreationFailed(model=self.derived_model_name, diagnostic=exc.diagnostic) from exc
        return self.derived_model_name
