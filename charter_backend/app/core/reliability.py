"""
Reliability Utilities.

Circuit breaker in front of the notification transport. Event delivery is
best effort: once the transport keeps failing, publishers fail fast with
CircuitOpenError instead of waiting on a dead connection for every event.
"""

import logging
import time
from typing import Any, Awaitable, Callable

logger = logging.getLogger("charter.events")

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(Exception):
    """Raised instead of calling the transport while the circuit is open."""

    def __init__(self, name: str, retry_in: float):
        self.name = name
        self.retry_in = retry_in
        super().__init__(f"Circuit '{name}' is OPEN, retry in {retry_in:.0f}s")


class CircuitBreaker:
    """
    Counts consecutive failures of an async call.

    After `failure_threshold` failures in a row the circuit opens for
    `reset_timeout` seconds. The first call after that is a trial: success
    closes the circuit, failure opens it again straight away.
    """

    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60, name: str = "default"):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.opened_at = 0.0
        self.state = CLOSED

    def _remaining(self) -> float:
        return self.reset_timeout - (time.time() - self.opened_at)

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == OPEN:
            remaining = self._remaining()
            if remaining >= 0:
                raise CircuitOpenError(self.name, remaining)
            self.state = HALF_OPEN

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise

        self.reset_state()
        return result

    def record_failure(self) -> None:
        self.failures += 1
        if self.state == HALF_OPEN or self.failures >= self.failure_threshold:
            self._open()

    def _open(self) -> None:
        was_open = self.state == OPEN
        self.state = OPEN
        self.opened_at = time.time()
        if not was_open:
            logger.warning("Circuit opened", extra={"circuit": self.name, "failures": self.failures})

    def reset_state(self) -> None:
        if self.state != CLOSED:
            logger.info("Circuit closed", extra={"circuit": self.name})
        self.failures = 0
        self.state = CLOSED


notification_circuit_breaker = CircuitBreaker(failure_threshold=3, reset_timeout=30, name="notifications")
