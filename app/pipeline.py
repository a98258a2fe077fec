from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from app.errors import EXIT_OK, EXIT_TIMED_OUT
from app.probe import Capabilities, probe
from app.provisioner import ProvisionState, Provisioner
from app.select_model import NoCandidate, SelectionResult, Selected, select
from app.settings import AppConfig
from app.verifier import CancellationToken, VerificationState, Verifier
from config.model_catalog import ModelDescriptor
from inout.modelfile_writer import ConfigArtifact
from services.model_registry import ModelRegistry
from utils.terminal_ui import maybe_stage

logger = logging.getLogger(__name__)


@dataclass
class ProvisionOutcome:
    capabilities: Capabilities
    selection: SelectionResult
    provision_state: ProvisionState | None = None
    artifact: ConfigArtifact | None = None
    derived_model: str | None = None
    verification: VerificationState | None = None

    @property
    def descriptor(self) -> ModelDescriptor | None:
        if isinstance(self.selection, Selected):
            return self.selection.descriptor
        return None

    @property
    def exit_code(self) -> int:
        if isinstance(self.selection, NoCandidate):
            return self.selection.exit_code
        if self.verification is VerificationState.CONFIRMED:
            return EXIT_OK
        return EXIT_TIMED_OUT


@dataclass
class ProvisionPipeline:
    """
    Probe -> Select -> Provision -> Verify.

    Each stage finishes before the next starts. Exceptions from a stage
    (ProbeError, PullFailed, CreationFailed, ...) propagate untouched and abort
    the rest of the run; NoCandidate and TIMED_OUT are returned as outcomes.
    """

    app_cfg: AppConfig
    registry: ModelRegistry | None = None
    probe_fn: Callable[[], Capabilities] = probe
    cancel: CancellationToken | None = None
    show_progress: bool = True
    provisioner: Provisioner = field(init=False)
    verifier: Verifier = field(init=False)

    def __post_init__(self) -> None:
        if self.registry is None:
            self.registry = ModelRegistry(
                registry_bin=self.app_cfg.registry.registry_bin,
                timeout_s=self.app_cfg.registry.command_timeout_s,
            )
        self.provisioner = Provisioner(
            registry=self.registry,
            config_path=self.app_cfg.provision.config_path,
            derived_model_name=self.app_cfg.provision.derived_model_name,
            list_attempts=self.app_cfg.registry.list_attempts,
        )
        self.verifier = Verifier(registry=self.registry)

    def run(self) -> ProvisionOutcome:
        cfg = self.app_cfg

        with maybe_stage("Probing host resources", self.show_progress):
            caps = self.probe_fn()

        selection = select(cfg.catalog, caps)
        outcome = ProvisionOutcome(capabilities=caps, selection=selection)
        if isinstance(selection, NoCandidate):
            logger.warning("Selection failed: %s", selection.message)
            return outcome

        descriptor = selection.descriptor
        logger.info("Selected %s (needs %.2f GiB)", descriptor.name, descriptor.min_ram_gib)

        with maybe_stage(f"Ensuring {descriptor.name} is installed", self.show_progress):
            outcome.provision_state = self.provisioner.ensure_present(descriptor)

        with maybe_stage("Writing model config", self.show_progress):
            outcome.artifact = self.provisioner.materialize_config(descriptor, cfg.template)

        with maybe_stage(f"Creating {cfg.provision.derived_model_name}", self.show_progress):
            outcome.derived_model = self.provisioner.create_derived_model(outcome.artifact)

        token = (self.cancel or CancellationToken()).with_deadline(cfg.provision.verify_deadline_s)
        with maybe_stage(f"Verifying {outcome.derived_model}", self.show_progress):
            outcome.verification = self.verifier.confirm(
                outcome.derived_model,
                max_attempts=cfg.provision.verify_max_attempts,
                interval_s=cfg.provision.verify_interval_s,
                cancel=token,
            )
        return outcome
