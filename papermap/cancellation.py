"""Request-scoped cancellation and deadlines.

A CancellationToken is created per inbound request and handed down to the
model invoker and the action orchestrator. It is cancelled either
explicitly (cancel()) or implicitly when its deadline passes. Calling the
token returns True once cancelled, so it can be passed anywhere a
cancellation_check callable is expected.
"""

import threading
import time
from typing import Callable, Optional


class CancellationToken:
    def __init__(
        self,
        timeout: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._event = threading.Event()
        self._deadline = clock() + timeout if timeout is not None else None

    @classmethod
    def never(cls) -> "CancellationToken":
        return cls(timeout=None)

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._event.set()
            return True
        return False

    __call__ = is_cancelled

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None if there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`, waking early on cancellation.

        Returns True if the token is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(0.0, seconds))
        return self.is_cancelled()

    def raise_if_cancelled(self, label: str = "") -> None:
        if self.is_cancelled():
            prefix = f"[{label}] " if label else ""
            raise InterruptedError(f"{prefix}Request cancelled or deadline exceeded")
