"""Adaptive backoff controller for pollers sharing a rate budget."""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger("deploywatch.backoff")


class BackoffController:
    """Recommend sleep durations from a stream of success/failure signals.

    Failures grow the duration multiplicatively; once no failure has been
    seen for more than half of the current duration, every `sleep()` call
    decays it again, never below `floor`.
    """

    def __init__(
        self,
        floor: float,
        delta: float = 0.1,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize backoff controller.

        Args:
            floor: Minimum duration in seconds (also the initial value)
            delta: Adjustment fraction, 0 < delta < 1
            clock: Monotonic time source, injectable for tests
        """
        if floor <= 0:
            raise ValueError("floor must be positive")
        if not 0 < delta < 1:
            raise ValueError("delta must be between 0 and 1")

        self.floor = floor
        self.delta = delta
        self._clock = clock
        self._current = floor
        self._last_failure = clock()
        self._lock = threading.Lock()

    @property
    def current(self) -> float:
        """Current recommended duration in seconds."""
        with self._lock:
            return self._current

    def sleep(self) -> float:
        """Return the current duration, decaying it after a quiet period.

        Returns:
            Duration (seconds) the caller should wait before retrying
        """
        with self._lock:
            duration = self._current
            quiet = self._clock() - self._last_failure
            if self._current > self.floor and quiet > self._current / 2:
                self._current = max(self.floor, self._current * (1 - self.delta))
                logger.debug(f"Backoff decayed to {self._current:.3f}s")
            return duration

    def throttle(self) -> float:
        """Register a failure and grow the duration.

        Returns:
            The new duration in seconds
        """
        with self._lock:
            self._current = self._current * (1 + self.delta)
            self._last_failure = self._clock()
            logger.debug(f"Backoff throttled to {self._current:.3f}s")
            return self._current
