"""
Kubernetes Endpoints peer pool.

Maintains a live list of the peers in a service group by watching the
Endpoints selected by a namespace and label selector, and pushes the list
to a single consumer callback whenever membership changes.

Features:
- Reflector with list/watch, relist on expiry and jittered backoff
- Deterministic, deduplicated peer lists with self-identification
- Pluggable credential resolution (in-cluster, kubeconfig, chained)
- Structured msgspec log entries through a narrow log sink
- Metrics for the watch and reconcile loop

Usage:
    from kubepool import Pool, PoolConfig

    pool = await Pool.create(
        PoolConfig(
            on_update=print,
            namespace="default",
            selector="app=gubernator",
            pod_ip="10.0.0.2",
            pod_port=81,
        )
    )
"""

# Models
from kubepool.models.peer_info import PeerInfo as PeerInfo
from kubepool.models.pool_config import (
    PoolConfig as PoolConfig,
    UpdateFunc as UpdateFunc,
)
from kubepool.models.pool_state import PoolState as PoolState
from kubepool.models.membership_entry import MembershipEntry as MembershipEntry

# Errors
from kubepool.errors import (
    PoolError as PoolError,
    CredentialsError as CredentialsError,
    SyncTimeoutError as SyncTimeoutError,
    ListError as ListError,
    WatchError as WatchError,
    WatchExpiredError as WatchExpiredError,
    ResourceKeyError as ResourceKeyError,
)

# Cluster
from kubepool.cluster.credentials import (
    CredentialResolver as CredentialResolver,
    InClusterCredentials as InClusterCredentials,
    KubeConfigCredentials as KubeConfigCredentials,
    ChainedCredentials as ChainedCredentials,
    credentials_from_env as credentials_from_env,
)
from kubepool.cluster.endpoints_source import EndpointsSource as EndpointsSource

# Resolver
from kubepool.resolver.peer_resolver import (
    PeerResolver as PeerResolver,
    ResolveResult as ResolveResult,
    SkippedEntry as SkippedEntry,
)

# Pool
from kubepool.pool.pool import Pool as Pool
from kubepool.pool.broadcaster import PeerBroadcaster as PeerBroadcaster

# Env
from kubepool.env import (
    Env as Env,
    load_env as load_env,
)

# Metrics
from kubepool.metrics.pool_metrics import (
    PoolMetrics as PoolMetrics,
    PoolMetricsSnapshot as PoolMetricsSnapshot,
)
