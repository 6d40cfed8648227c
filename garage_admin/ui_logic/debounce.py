"""
Single-slot debounce primitive for the asyncio event loop.

`debounce(fn, delay)` returns a `Debouncer`. Each call schedules `fn` to run
after `delay` seconds and cancels whatever was scheduled before, so a burst of
calls fires `fn` exactly once with the arguments of the last call.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)


class Debouncer:
    """Last-write-wins delayed call bound to the running event loop."""

    def __init__(self, fn: Callable[..., Any], delay: float):
        """Initialize the debouncer.

        Args:
            fn: Callable invoked once the input has been quiet for `delay`
            delay: Quiet period in seconds
        """
        if delay < 0:
            raise ValueError("Debounce delay must be non-negative")
        self.fn = fn
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: Tuple[Any, ...] = ()

    def __call__(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._args = args
        self._handle = loop.call_later(self.delay, self._fire)

    @property
    def pending(self) -> bool:
        """True while a call is scheduled and has not fired yet."""
        return self._handle is not None

    def cancel(self) -> bool:
        """Drop the scheduled call, if any. Returns whether one was dropped."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._args = ()
        return True

    def flush(self) -> bool:
        """Run the scheduled call now instead of waiting for the delay."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        args = self._args
        self._handle = None
        self._args = ()
        try:
            self.fn(*args)
        except Exception as e:
            logger.error(f"Debounced call failed: {e}")


def debounce(fn: Callable[..., Any], delay: float) -> Debouncer:
    """Wrap `fn` in a `Debouncer` with the given delay in seconds."""
    return Debouncer(fn, delay)
