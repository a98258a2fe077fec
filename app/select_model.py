from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from app.errors import CatalogError, EXIT_NO_CANDIDATE
from app.probe import Capabilities
from config.model_catalog import ModelDescriptor


class NoCandidateReason(str, Enum):
    INSUFFICIENT_RAM = "insufficient RAM"
    MISSING_GPU = "missing GPU"


@dataclass(frozen=True, slots=True)
class Selected:
    descriptor: ModelDescriptor


@dataclass(frozen=True, slots=True)
class NoCandidate:
    reason: NoCandidateReason
    available_ram_gib: float
    required_ram_gib: float
    has_gpu: bool

    stage = "select"
    exit_code = EXIT_NO_CANDIDATE

    @property
    def message(self) -> str:
        if self.reason is NoCandidateReason.INSUFFICIENT_RAM:
            return (
                f"No model fits: insufficient RAM. {self.available_ram_gib:.2f} GiB available, "
                f"the smallest catalog model needs {self.required_ram_gib:.2f} GiB. "
                "Free memory or add a smaller model to the catalog."
            )
        return (
            f"No model fits: missing GPU. Every model within {self.available_ram_gib:.2f} GiB "
            "of RAM requires a GPU and none was detected. Add a GPU or a CPU-only model to the catalog."
        )


SelectionResult = Union[Selected, NoCandidate]


def fits(descriptor: ModelDescriptor, caps: Capabilities) -> bool:
    """Return True if the descriptor fits the RAM budget and GPU constraint of the snapshot."""
    if descriptor.min_ram_gib > caps.available_ram_gib:
        return False
    return not descriptor.requires_gpu or caps.has_gpu


def select(catalog: Sequence[ModelDescriptor], caps: Capabilities) -> SelectionResult:
    """
    Pick the most capable model the host can afford.

    Survivors of the RAM and GPU filter are ranked by min_ram_gib; the largest
    wins and ties go to the entry declared first. An empty survivor set is a
    normal outcome reported as NoCandidate with the unmet constraint.
    """
    if not catalog:
        raise CatalogError("Cannot select from an empty model catalog.")

    survivors = [d for d in catalog if fits(d, caps)]
    if survivors:
        # max() keeps the first of equal keys, which gives declaration order on ties
        return Selected(descriptor=max(survivors, key=lambda d: d.min_ram_gib))

    ram_fit = [d for d in catalog if d.min_ram_gib <= caps.available_ram_gib]
    if not ram_fit:
        return NoCandidate(
            reason=NoCandidateReason.INSUFFICIENT_RAM,
            available_ram_gib=caps.available_ram_gib,
            required_ram_gib=min(d.min_ram_gib for d in catalog),
            has_gpu=caps.has_gpu,
        )
    return NoCandidate(
        reason=NoCandidateReason.MISSING_GPU,
        available_ram_gib=caps.available_ram_gib,
        required_ram_gib=min(d.min_ram_gib for d in ram_fit),
        has_gpu=caps.has_gpu,
    )
