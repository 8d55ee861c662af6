"""Cancellable delay used between polling cycles."""

import threading


class CancellableTimer:
    """
    A sleep that returns early when cancelled.
    
    Once cancelled, every sleep returns immediately.
    """

    def __init__(self):
        self._cancelled = threading.Event()

    def sleep(self, seconds: float) -> bool:
        """
        Block for the given number of seconds.
        
        Args:
            seconds: Delay length; non-positive values return at once
            
        Returns:
            True if the timer was cancelled, False if the delay elapsed
        """
        if seconds <= 0:
            return self._cancelled.is_set()
        return self._cancelled.wait(timeout=seconds)

    def cancel(self) -> None:
        """Wake any sleeper and make future sleeps return immediately."""
        self._cancelled.set()

    def reset(self) -> None:
        """Re-arm a cancelled timer so sleeps wait again."""
        self._cancelled.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()
