from .backoff import (
    Backoff as Backoff,
    BackoffConfig as BackoffConfig,
    JitterStrategy as JitterStrategy,
    calculate_jittered_delay as calculate_jittered_delay,
)
