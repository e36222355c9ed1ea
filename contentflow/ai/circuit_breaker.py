"""Circuit breaker guarding AI provider calls.

After ``failure_threshold`` consecutive provider failures the breaker opens
and rejects calls immediately with CircuitOpenError until
``recovery_timeout`` has passed. One probe call is then let through; its
result decides whether the breaker closes again or stays open.
"""

import enum
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""


class CircuitBreaker:
    """CLOSED -> OPEN -> HALF_OPEN -> CLOSED state machine for async calls.

    Args:
        failure_threshold: Consecutive failures before opening circuit.
        recovery_timeout: Seconds the circuit stays open before a probe.
        name: Name used in log lines and health output.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "circuit_breaker",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0

    def snapshot(self) -> dict[str, Any]:
        """State summary for health checks."""
        return {
            "name": self._name,
            "state": self._state.value,
            "consecutive_failures": self._consecutive_failures,
        }

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` unless the circuit is open.

        Raises:
            CircuitOpenError: If the circuit is open and the recovery
                timeout has not elapsed.
        """
        self._admit()

        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _admit(self) -> None:
        if self._state != CircuitState.OPEN:
            return
        if self._clock() - self._opened_at < self._recovery_timeout:
            raise CircuitOpenError(f"Circuit breaker {self._name} is OPEN")
        self._state = CircuitState.HALF_OPEN
        logger.info("Circuit breaker %s: OPEN -> HALF_OPEN", self._name)

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info("Circuit breaker %s: HALF_OPEN -> CLOSED", self._name)
        self.reset()

    def _on_failure(self) -> None:
        self._consecutive_failures += 1
        if self._state == CircuitState.HALF_OPEN:
            self._open()
            logger.warning("Circuit breaker %s: probe failed, reopening", self._name)
        elif (
            self._state == CircuitState.CLOSED
            and self._consecutive_failures >= self._failure_threshold
        ):
            self._open()
            logger.warning(
                "Circuit breaker %s: CLOSED -> OPEN after %d failures",
                self._name,
                self._consecutive_failures,
            )

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
