from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess
from typing import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TAG = "latest"


class RegistryCommandError(RuntimeError):
    """A call to the model-serving CLI exited non-zero, timed out, or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None,
        diagnostic: str,
        missing_binary: bool = False,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.diagnostic = diagnostic
        # True when the executable could not be found at all
        self.missing_binary = missing_binary
        code = "not started" if returncode is None else f"exit {returncode}"
        super().__init__(f"`{' '.join(self.command)}` failed ({code}): {diagnostic.strip()}")


def qualify_model_name(name: str) -> str:
    """
    Return the name the way the engine lists it: untagged names gain ':latest'.
    A ':' before the last '/' belongs to a registry host, not a tag.
    """
    last_segment = name.rsplit("/", 1)[-1]
    if ":" in last_segment:
        return name
    return f"{name}:{DEFAULT_TAG}"


def parse_model_listing(text: str) -> list[str]:
    """
    Extract model identifiers from a `list` listing.
    The first whitespace-delimited token of each line is the identifier; the
    NAME header row and blank lines are ignored.
    """
    names: list[str] = []
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        if parts[0] == "NAME":
            continue
        names.append(parts[0])
    return names


@dataclass
class ModelRegistry:
    """Thin synchronous wrapper over the model-serving CLI (list, pull, create, run)."""

    registry_bin: str = "ollama"
    timeout_s: float | None = None

    def _run(self, args: Sequence[str]) -> str:
        cmd = [self.registry_bin, *args]
        logger.debug("Running %s", cmd)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_s,
            )
        except FileNotFoundError as exc:
            raise RegistryCommandError(
                cmd,
                None,
                f"{self.registry_bin} not found on PATH. Install it and retry.",
                missing_binary=True,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise RegistryCommandError(cmd, None, f"timed out after {self.timeout_s}s") from exc

        if result.returncode != 0:
            diagnostic = (result.stderr or "").strip() or (result.stdout or "").strip()
            raise RegistryCommandError(cmd, result.returncode, diagnostic)
        return result.stdout or ""

    def list_models(self) -> list[str]:
        return parse_model_listing(self._run(["list"]))

    def has_model(self, name: str) -> bool:
        # Exact, case-sensitive comparison; no substring or prefix matching.
        wanted = qualify_model_name(name)
        return any(qualify_model_name(listed) == wanted for listed in self.list_models())

    def pull(self, name: str) -> None:
        logger.info("Pulling %s (this can take several minutes)", name)
        self._run(["pull", name])

    def create(self, name: str, config_path: Path) -> None:
        logger.info("Creating %s from %s", name, config_path)
        self._run(["create", name, "-f", str(config_path)])

    def run(self, name: str, prompt: str) -> str:
        return self._run(["run", name, prompt]).strip()
