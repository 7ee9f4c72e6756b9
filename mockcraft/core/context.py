"""Cancellation and deadline handling for seed runs."""

import threading
import time
from typing import Optional

from .errors import SeedCancelledError


class RunContext:
    """Carries a deadline and a stop flag through every backend call."""

    def __init__(self, timeout: Optional[float] = None, stop_flag: Optional[threading.Event] = None):
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self.stop_flag = stop_flag or threading.Event()

    def cancel(self) -> None:
        """Ask the run to stop at its next check."""
        self.stop_flag.set()

    @property
    def cancelled(self) -> bool:
        return self.stop_flag.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise :class:`SeedCancelledError` if the run was stopped or timed out."""
        if self.cancelled:
            raise SeedCancelledError("Seed run was cancelled")
        if self.expired:
            raise SeedCancelledError("Seed run exceeded its deadline")
