"""
Retry policy for remote SharePoint calls.

Every round trip the audit makes goes through ``RetryPolicy.execute``.
Throttled calls are retried with exponential backoff; anything else is
raised straight away.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .errors import RetriesExhausted, Throttled

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_INITIAL_DELAY = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff, keyed to ``Throttled``.

    The policy holds no state between calls: each ``execute`` starts over
    at ``initial_delay``. A ``Retry-After`` longer than the backoff delay
    replaces it for that one wait; the doubling sequence is unchanged.

    Attributes:
        max_attempts: Total attempts before giving up (including the first)
        initial_delay: Seconds to wait after the first throttled attempt
        max_delay: Optional ceiling for the delay; None doubles without limit
        sleep: Function used to wait, injectable for tests
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: Optional[float] = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")

    def delays(self):
        """Yield the wait before each retry, in order (max_attempts - 1 values)."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            if self.max_delay is not None:
                delay = min(delay, self.max_delay)
            yield delay
            delay *= 2

    def execute(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run ``operation(*args, **kwargs)`` until it succeeds or stops being throttled.

        Raises:
            RetriesExhausted: every one of ``max_attempts`` attempts was throttled
            Exception: any non-throttling failure, unchanged, after one attempt
        """
        delays = self.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation(*args, **kwargs)
            except Throttled as exc:
                delay = next(delays, None)
                if delay is None:
                    raise RetriesExhausted(attempt) from exc
                if exc.retry_after is not None:
                    # never retry sooner than the server asked
                    delay = max(delay, exc.retry_after)
                logger.warning(
                    "Throttled (%s) on attempt %d/%d, retrying in %.1fs",
                    exc.status_code, attempt, self.max_attempts, delay,
                )
                self.sleep(delay)
