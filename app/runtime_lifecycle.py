from __future__ import annotations

import atexit
from dataclasses import dataclass, field
import logging

from services.model_server_process import ModelServerProcess

logger = logging.getLogger(__name__)


@dataclass
class RuntimeLifecycle:
    """
    Stops model servers started by this process when the interpreter exits.

    Normal code should still stop servers in try/finally; this is the
    fallback for paths that exit early.
    """

    _registered_ids: set[int] = field(default_factory=set)

    def register_server(self, server: ModelServerProcess | None) -> None:
        if server is None:
            return

        key = id(server)
        if key in self._registered_ids:
            return

        atexit.register(self._safe_stop, server)
        self._registered_ids.add(key)

    def is_registered(self, server: ModelServerProcess) -> bool:
        return id(server) in self._registered_ids

    @staticmethod
    def _safe_stop(server: ModelServerProcess) -> None:
        try:
            if not server.is_running():
                return
            server.stop()
        except Exception as exc:
            # Exit handlers must not crash shutdown flow.
            logger.debug("Ignoring error while stopping model server at exit: %s", exc)
