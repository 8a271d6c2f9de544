"""
Cancellation token shared between a loop run and its session engine.

The engine is expected to watch the token and end its stream; the loop
checks it once after the stream drains. Safe to cancel from any thread.
"""

import threading
import time
from typing import Optional

from .exceptions import LoopCancelled


class CancelToken:
    """Cancellation signal with an optional deadline.

    Usage:
        token = CancelToken(timeout=600)
        async for outcome in loop.run(engine, cancel=token):
            ...
        # elsewhere: token.cancel("user interrupt")
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._timeout = timeout

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation. The first reason wins."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.deadline_exceeded

    def error(self) -> Optional[LoopCancelled]:
        """The cancellation error, or None when the token is still live."""
        if self._event.is_set():
            return LoopCancelled(reason=self._reason or "cancelled")
        if self.deadline_exceeded:
            return LoopCancelled(reason=f"timeout after {self._timeout}s", deadline_exceeded=True)
        return None
