from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


class RetryError(RuntimeError):
    """Raised once every attempt of a RetryPolicy has failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(f"giving up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def constant_delay(seconds: float) -> Callable[[int], float]:
    """Delay strategy that waits the same amount after every failed attempt."""

    def delay(attempt: int) -> float:
        return seconds

    return delay


@dataclass
class RetryPolicy:
    attempts: int
    delay: Callable[[int], float]
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Optional[Callable[[float], None]] = field(default=None, repr=False)

    def run(
        self,
        operation: Callable[[], T],
        on_failure: Optional[Callable[[int, BaseException, bool], None]] = None,
    ) -> T:
        """
        Calls ``operation`` until it returns or the attempts run out.

        ``on_failure(attempt, error, will_retry)`` is invoked after each failed
        attempt, before any sleep.
        """
        sleep = self.sleep or time.sleep
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return operation()
            except self.retry_on as e:
                last_error = e
                will_retry = attempt < self.attempts
                if on_failure:
                    on_failure(attempt, e, will_retry)
                if will_retry:
                    sleep(self.delay(attempt))
        raise RetryError(self.attempts, last_error)
