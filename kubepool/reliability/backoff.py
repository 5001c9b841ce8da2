"""
Jittered exponential backoff for list and watch retries.

Jitter keeps a fleet of pods that lost the API server at the same moment
from reconnecting in lockstep.
"""

import random
from dataclasses import dataclass
from enum import Enum


class JitterStrategy(Enum):
    """
    Jitter strategies for retry delays.

    FULL: Maximum spread, best for independent clients
        delay = random(0, min(cap, base * 2^attempt))

    EQUAL: Guarantees minimum delay while spreading
        temp = min(cap, base * 2^attempt)
        delay = temp/2 + random(0, temp/2)

    NONE: No jitter, pure exponential backoff
        delay = min(cap, base * 2^attempt)
    """

    FULL = "full"
    EQUAL = "equal"
    NONE = "none"


@dataclass(slots=True)
class BackoffConfig:
    """Configuration for backoff behavior."""

    base_delay: float = 0.5  # seconds
    max_delay: float = 30.0  # cap
    jitter: JitterStrategy = JitterStrategy.EQUAL


class Backoff:
    """
    Tracks consecutive failures and yields the delay before the next attempt.

    Example usage:
        backoff = Backoff(BackoffConfig(base_delay=0.5, max_delay=30.0))

        while True:
            try:
                await relist()
                backoff.reset()
            except ListError:
                await asyncio.sleep(backoff.next_delay())
    """

    def __init__(self, config: BackoffConfig | None = None):
        self._config = config or BackoffConfig()
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def next_delay(self) -> float:
        delay = calculate_jittered_delay(
            self._attempts,
            base_delay=self._config.base_delay,
            max_delay=self._config.max_delay,
            jitter=self._config.jitter,
        )
        self._attempts += 1
        return delay

    def reset(self) -> None:
        self._attempts = 0


def calculate_jittered_delay(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 30.0,
    jitter: JitterStrategy = JitterStrategy.FULL,
) -> float:
    """
    Calculate a jittered delay.

    Args:
        attempt: Zero-based attempt number
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds
        jitter: Jitter strategy to use

    Returns:
        Delay in seconds
    """
    # Exponent capped at 32.
    temp = min(max_delay, base_delay * (2 ** min(attempt, 32)))

    if jitter == JitterStrategy.FULL:
        return random.uniform(0, temp)

    elif jitter == JitterStrategy.EQUAL:
        return temp / 2 + random.uniform(0, temp / 2)

    else:  # NONE
        return temp
