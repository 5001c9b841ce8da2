"""
Configuration for an endpoints backed peer pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from kubepool.models.peer_info import PeerInfo

if TYPE_CHECKING:
    from kubepool.env import Env
    from kubepool.logging import LogSink


UpdateFunc = Callable[[list[PeerInfo]], Awaitable[None] | None]


@dataclass(slots=True, frozen=True)
class PoolConfig:
    """
    Settings supplied once when the pool is created.

    The config is never mutated after construction. Use ``from_env`` to
    build one from ``KUBEPOOL_*`` environment variables.
    """

    # ===== Required =====
    on_update: UpdateFunc
    """Called with the full peer list every time membership is reconciled.

    Runs on the watch processing path: a slow callback delays handling of
    the next event. May be a plain function or a coroutine function.
    """

    namespace: str
    """Namespace the Endpoints collection is read from."""

    pod_ip: str
    """This instance's own address, used for self-identification."""

    pod_port: int
    """Port every peer listens on, used to format peer addresses."""

    # ===== Selection =====
    selector: str = ""
    """Label selector expression (e.g. 'app=gubernator'). Empty selects all."""

    data_center: str = ""
    """Data center reported on every PeerInfo. Empty means local."""

    logger: LogSink | None = None
    """Log sink. Defaults to a stderr ``Logger`` when not set."""

    # ===== Timing =====
    sync_timeout: float = 30.0
    """Maximum seconds ``Pool.create`` waits for the initial list."""

    watch_timeout: float = 300.0
    """Server side window of one watch request before it is reopened."""

    resync_interval: float = 0.0
    """Seconds between forced reconciliations. 0 disables periodic resync."""

    backoff_base: float = 0.5
    """Base delay in seconds between failed list/watch attempts."""

    backoff_max: float = 30.0
    """Maximum delay in seconds between failed list/watch attempts."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not callable(self.on_update):
            raise ValueError("on_update must be callable")
        if not self.namespace:
            raise ValueError("namespace is required")
        if not self.pod_ip:
            raise ValueError("pod_ip is required")
        if isinstance(self.pod_port, bool) or not isinstance(self.pod_port, int):
            raise ValueError(f"pod_port must be an integer, got {self.pod_port!r}")
        if not 0 < self.pod_port <= 65535:
            raise ValueError(f"Invalid pod_port: {self.pod_port}")
        if self.sync_timeout <= 0:
            raise ValueError("sync_timeout must be positive")
        if self.watch_timeout < 1:
            raise ValueError("watch_timeout must be at least 1 second")
        if self.resync_interval < 0:
            raise ValueError("resync_interval cannot be negative")
        if self.backoff_base <= 0 or self.backoff_max < self.backoff_base:
            raise ValueError("backoff_base must be positive and not exceed backoff_max")

    @classmethod
    def from_env(
        cls,
        env: Env,
        on_update: UpdateFunc,
        logger: LogSink | None = None,
    ) -> PoolConfig:
        return cls(
            on_update=on_update,
            logger=logger,
            **env.get_pool_config(),
        )
