"""Reconnect delays for the sync worker."""

import random
from dataclasses import dataclass, field


@dataclass
class ExponentialBackoff:
    """
    Jittered exponential delays: ``min(base * multiplier**attempt, max_delay)``
    scaled by a random factor in ``1 +/- jitter_range``.

    ``attempt`` counts delays handed out since the last ``reset()``, which
    lets the caller give up after a fixed number of consecutive failures.
    """

    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter_range: float = 0.5
    attempt: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Backoff delays must be non-negative")

    def peek(self) -> float:
        """Delay before jitter for the next attempt; does not advance."""
        return min(self.base_delay * self.multiplier**self.attempt, self.max_delay)

    def next_delay(self) -> float:
        delay = self.peek() * (1 + random.uniform(-self.jitter_range, self.jitter_range))
        self.attempt += 1
        return max(0.0, delay)

    def reset(self) -> None:
        self.attempt = 0
