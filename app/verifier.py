from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
import time

from services.model_registry import ModelRegistry, RegistryCommandError

logger = logging.getLogger(__name__)


class VerificationState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"


@dataclass
class CancellationToken:
    """
    Stops a verification wait early.

    Either an explicit cancel() or an optional deadline (seconds from creation)
    ends the wait; both lead to the same TIMED_OUT outcome.
    """

    deadline_s: float | None = None
    _event: threading.Event = field(default_factory=threading.Event)
    _started: float = field(default_factory=time.monotonic)

    def cancel(self) -> None:
        self._event.set()

    def with_deadline(self, deadline_s: float | None) -> "CancellationToken":
        """Return a token sharing this one's cancel signal, with its own deadline starting now."""
        return CancellationToken(deadline_s=deadline_s, _event=self._event)

    def remaining(self) -> float | None:
        if self.deadline_s is None:
            return None
        return max(0.0, self.deadline_s - (time.monotonic() - self._started))

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds. Return True if the token fired meanwhile."""
        remaining = self.remaining()
        if remaining is not None and remaining < timeout:
            self._event.wait(remaining)
            return True
        return self._event.wait(timeout)


@dataclass
class Verifier:
    registry: ModelRegistry
    state: VerificationState = VerificationState.PENDING
    attempts: int = 0

    def confirm(
        self,
        model_id: str,
        max_attempts: int,
        interval_s: float,
        cancel: CancellationToken | None = None,
    ) -> VerificationState:
        """
        Poll the registry listing until `model_id` shows up.

        CONFIRMED on the first positive poll. TIMED_OUT after `max_attempts`
        negative polls or when `cancel` fires. A failed listing counts as a
        negative poll.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if interval_s < 0:
            raise ValueError("interval_s must be >= 0")

        token = cancel or CancellationToken()
        self.state = VerificationState.PENDING
        self.attempts = 0

        while self.attempts < max_attempts:
            if token.cancelled:
                break
            self.attempts += 1
            try:
                found = self.registry.has_model(model_id)
            except RegistryCommandError as exc:
                logger.warning("Listing failed while verifying %s: %s", model_id, exc)
                found = False

            if found:
                self.state = VerificationState.CONFIRMED
                logger.info("Confirmed %s after %d attempt(s)", model_id, self.attempts)
                return self.state

            if self.attempts < max_attempts and token.wait(interval_s):
                break

        self.state = VerificationState.TIMED_OUT
        logger.warning("Could not confirm %s after %d attempt(s)", model_id, self.attempts)
        return self.state
