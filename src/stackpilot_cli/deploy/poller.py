"""Bounded polling for asynchronous engine state transitions.

Engine startup, registry startup and stack teardown all complete some
time after the command that triggered them returns. Poller waits for
them by re-evaluating a probe until it reports the work is done.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from ..errors import PollTimeoutError
from ..shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_TIMEOUT_SECONDS = 600.0


@dataclass
class PollResult:
    """Outcome of a completed wait."""

    activity: str
    attempts: int
    elapsed_seconds: float


class Poller:
    """Re-evaluate a predicate until it turns false."""

    def __init__(
        self,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize poller.

        Args:
            interval_seconds: Delay between evaluations.
            timeout_seconds: Give up after this long. None waits forever.
            max_attempts: Give up after this many evaluations. None means
                no attempt limit.
            sleep: Sleep function (injected by tests).
            clock: Monotonic clock (injected by tests).
        """
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._clock = clock

    def wait(
        self,
        predicate: Callable[[], bool],
        activity: str,
        on_attempt: Callable[[int, str], None] | None = None,
    ) -> PollResult:
        """Block while predicate() is true.

        Args:
            predicate: Returns True while the activity is still in progress.
            activity: Label used in logs and errors (e.g. "stack teardown").
            on_attempt: Optional callback called with (attempt, activity)
                after each evaluation that found the activity still running.

        Returns:
            PollResult with the number of evaluations made.

        Raises:
            PollTimeoutError: If the attempt or time budget runs out.
        """
        start = self._clock()
        attempt = 0

        while True:
            attempt += 1
            if not predicate():
                elapsed = self._clock() - start
                logger.info("poll_done", activity=activity, attempts=attempt)
                return PollResult(activity, attempt, elapsed)

            if on_attempt:
                on_attempt(attempt, activity)

            elapsed = self._clock() - start
            out_of_attempts = self.max_attempts is not None and attempt >= self.max_attempts
            out_of_time = (
                self.timeout_seconds is not None
                and elapsed + self.interval_seconds > self.timeout_seconds
            )
            if out_of_attempts or out_of_time:
                raise PollTimeoutError(
                    message=f"Timed out waiting for {activity} "
                    f"after {attempt} checks ({elapsed:.1f}s)",
                    activity=activity,
                    attempts=attempt,
                    elapsed_seconds=elapsed,
                )

            logger.debug("poll_waiting", activity=activity, attempt=attempt)
            self._sleep(self.interval_seconds)
