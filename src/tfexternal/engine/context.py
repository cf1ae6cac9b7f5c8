"""Cancellation for blocking program waits.

The host engine interrupts an operation by setting the context's event (or by
letting its deadline pass); the executor polls the context while the program
runs and terminates it once the context is done.
"""

import signal
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager


class OperationContext:
    """Cancellation signal and optional deadline for one operation."""

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._event = cancel_event or threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        """Whether the operation must stop now."""
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def reason(self) -> str:
        if self.cancelled:
            return "operation cancelled"
        if self.expired:
            return "deadline exceeded"
        return ""


@contextmanager
def cancel_on_interrupt(context: OperationContext) -> Iterator[OperationContext]:
    """Cancel ``context`` on SIGINT instead of raising KeyboardInterrupt.

    Only installs the handler when called from the main thread.
    """
    if threading.current_thread() is not threading.main_thread():
        yield context
        return

    previous = signal.signal(signal.SIGINT, lambda signum, frame: context.cancel())
    try:
        yield context
    finally:
        signal.signal(signal.SIGINT, previous)
