from .pool_metrics import (
    PoolMetrics as PoolMetrics,
    PoolMetricsSnapshot as PoolMetricsSnapshot,
)
