from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import shutil
import subprocess

import psutil

try:
    import torch  # type: ignore
except ImportError:
    torch = None

from app.errors import ProbeError

logger = logging.getLogger(__name__)

_GIB = 1024 ** 3


@dataclass(frozen=True, slots=True)
class Capabilities:
    """
    One snapshot of the host, taken once per run.
    Selection must use this snapshot only; RAM is never re-read mid-decision.
    """

    available_ram_gib: float
    has_gpu: bool
    total_ram_gib: float | None = None
    gpu_name: str | None = None

    @property
    def summary(self) -> str:
        total = f" of {self.total_ram_gib:.1f} GiB" if self.total_ram_gib is not None else ""
        gpu = f"GPU: {self.gpu_name or 'yes'}" if self.has_gpu else "GPU: none detected"
        return f"RAM available: {self.available_ram_gib:.2f} GiB{total} | {gpu}"


def _read_memory() -> tuple[float, float | None]:
    try:
        vm = psutil.virtual_memory()
    except Exception as exc:
        raise ProbeError(f"Operating system did not report memory: {exc}") from exc

    available = getattr(vm, "available", None)
    if isinstance(available, bool) or not isinstance(available, (int, float)):
        raise ProbeError(f"Operating system reported an unusable free-memory value: {available!r}")
    if not math.isfinite(available) or available < 0:
        raise ProbeError(f"Operating system reported negative or invalid free memory: {available!r}")

    total = getattr(vm, "total", None)
    total_gib = total / _GIB if isinstance(total, (int, float)) and total > 0 else None
    return available / _GIB, total_gib


def _detect_torch_gpu() -> str | None:
    if torch is None:
        return None
    try:
        if torch.cuda.is_available():
            return str(torch.cuda.get_device_name(0))
        mps = getattr(torch.backends, "mps", None)
        if mps is not None and mps.is_available():
            return "Apple MPS"
    except Exception as exc:
        logger.debug("torch GPU detection failed: %s", exc)
    return None


def _detect_nvidia_smi_gpu() -> str | None:
    if shutil.which("nvidia-smi") is None:
        return None
    try:
        result = subprocess.run(
            ["nvidia-smi", "--query-gpu=name", "--format=csv,noheader"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("nvidia-smi probe failed: %s", exc)
        return None
    if result.returncode != 0:
        return None
    names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    return names[0] if names else None


def detect_gpu() -> str | None:
    """Best-effort GPU lookup. Returns a display name, or None when nothing is found."""
    return _detect_torch_gpu() or _detect_nvidia_smi_gpu()


def probe() -> Capabilities:
    """
    Capture available RAM and GPU presence.

    Raises ProbeError when free memory cannot be read. A missing GPU is not
    an error. No retries.
    """
    available_gib, total_gib = _read_memory()
    gpu_name = detect_gpu()
    caps = Capabilities(
        available_ram_gib=available_gib,
        has_gpu=gpu_name is not None,
        total_ram_gib=total_gib,
        gpu_name=gpu_name,
    )
    logger.info("Probed host: %s", caps.summary)
    return caps
