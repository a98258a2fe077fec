from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import subprocess
import time
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from config.server_config import ServerConfig

logger = logging.getLogger(__name__)


@dataclass
class ModelServerProcess:
    server_cfg: ServerConfig
    log_path: Path
    registry_bin: str = "ollama"
    _proc: subprocess.Popen | None = None
    _reused: bool = False

    def _log_tail(self, max_chars: int = 4000) -> str:
        try:
            text = self.log_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""
        return text[-max_chars:]

    @property
    def tags_url(self) -> str:
        return f"{self.server_cfg.base_url}/api/tags"

    def is_running(self) -> bool:
        if self._reused:
            return self.is_responding()
        return self._proc is not None and (self._proc.poll() is None)

    def is_responding(self) -> bool:
        try:
            r = requests.get(self.tags_url, timeout=1)
        except requests.RequestException:
            return False
        return r.status_code == 200

    def start(self, wait_s: float | None = None) -> None:
        if self.is_running():
            return

        if self.is_responding():
            logger.info("Model server already answering at %s; reusing it", self.server_cfg.base_url)
            self._reused = True
            return

        env = dict(os.environ)
        env["OLLAMA_HOST"] = f"{self.server_cfg.host}:{self.server_cfg.port}"
        cmd = [self.registry_bin, "serve"]
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        # Server output goes to a file; a pipe nobody drains would stall a long-lived server.
        with open(self.log_path, "w", encoding="utf-8") as log_fh:
            try:
                self._proc = subprocess.Popen(
                    cmd,
                    stdout=log_fh,
                    stderr=subprocess.STDOUT,
                    text=True,
                    env=env,
                )
            except FileNotFoundError as exc:
                raise FileNotFoundError(f"model server binary not found: {self.registry_bin}") from exc

        # Wait until the listing endpoint answers
        deadline = time.monotonic() + (wait_s if wait_s is not None else self.server_cfg.wait_s)
        while time.monotonic() < deadline:
            if self._proc.poll() is not None:
                code = self._proc.returncode
                self._proc = None
                raise RuntimeError(
                    f"model server exited during startup (exit {code}).\n"
                    f"log ({self.log_path}):\n{self._log_tail()}"
                )
            if self.is_responding():
                logger.info("Model server ready at %s", self.server_cfg.base_url)
                return
            time.sleep(0.25)
        self.stop()
        raise TimeoutError("Timed out waiting for the model server to become ready.")

    def wait(self) -> int | None:
        """Block until a server started by this object exits."""
        if self._proc is None:
            return None
        return self._proc.wait()

    def stop(self) -> None:
        if self._reused:
            # Not ours to stop.
            self._reused = False
            return
        if self._proc is None or self._proc.poll() is not None:
            self._proc = None
            return
        self._proc.terminate()
        try:
            self._proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._proc.kill()
        self._proc = None
