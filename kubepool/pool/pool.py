"""
Pool - keeps a live peer list for one service group.

The pool watches the Endpoints selected by a namespace and label selector,
mirrors them into a local store through a ``Reflector`` and, whenever
membership changes, resolves the store into a list of ``PeerInfo`` that it
hands to the configured ``on_update`` callback.

Lifecycle:
    UNINITIALIZED -> STARTING -> RUNNING -> CLOSED
                        |
                        +-> FAILED (sync timeout, background task torn down)

Delivery contract:
- ``on_update`` runs on the same task that applies watch events, so a slow
  callback delays processing of later events.
- Each call carries the cache state at the time reconciliation ran. Bursts
  of events may therefore be observed as fewer distinct lists.
- Callback failures are logged and never retried.
- No callback is made once ``close()`` has been called, apart from one
  that was already in flight.

Usage:
    async def on_update(peers: list[PeerInfo]) -> None:
        ring.set_peers(peers)

    pool = await Pool.create(
        PoolConfig(
            on_update=on_update,
            namespace="default",
            selector="app=gubernator",
            pod_ip=os.environ["POD_IP"],
            pod_port=81,
        )
    )
    ...
    pool.close()
    await pool.wait_closed()
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any

from kubernetes import client

from kubepool.cluster.credentials import CredentialResolver, InClusterCredentials
from kubepool.cluster.endpoints_source import EndpointsSource
from kubepool.errors import ResourceKeyError, SyncTimeoutError
from kubepool.logging import Logger, LogSink
from kubepool.metrics import PoolMetrics, PoolMetricsSnapshot
from kubepool.models.peer_info import PeerInfo
from kubepool.models.pool_config import PoolConfig
from kubepool.models.pool_state import PoolState
from kubepool.pool.logging_models import (
    EndpointsPoolTrace,
    EndpointsPoolDebug,
    EndpointsPoolInfo,
    EndpointsPoolWarning,
    EndpointsPoolError,
)
from kubepool.reflector import (
    Reflector,
    ResourceEventHandlerFuncs,
    WatchSource,
    meta_namespace_key,
)
from kubepool.reliability import BackoffConfig
from kubepool.resolver import PeerResolver, ResolveResult


class Pool:
    """
    Watches a service group's Endpoints and reports its peers.

    Create with ``await Pool.create(config)``; the constructor alone does
    not start anything.
    """

    def __init__(
        self,
        config: PoolConfig,
        source: WatchSource,
        api_client: client.ApiClient | None = None,
    ):
        """
        Initialize Pool.

        Args:
            config: Pool configuration
            source: List/watch primitives for the Endpoints collection
            api_client: Client backing ``source``, closed with the pool
        """
        self._config = config
        self._source = source
        self._api_client = api_client
        self._logger: LogSink = config.logger if config.logger is not None else Logger()
        self._metrics = PoolMetrics()

        self._resolver = PeerResolver(
            config.pod_ip,
            config.pod_port,
            data_center=config.data_center,
        )

        self._reflector = Reflector(
            source,
            ResourceEventHandlerFuncs(
                add=self._on_add,
                update=self._on_update,
                delete=self._on_delete,
                sync=self._on_sync,
                resync=self._on_resync,
            ),
            logger=self._logger,
            metrics=self._metrics,
            watch_timeout=config.watch_timeout,
            resync_interval=config.resync_interval,
            backoff=BackoffConfig(
                base_delay=config.backoff_base,
                max_delay=config.backoff_max,
            ),
        )

        self._state = PoolState.UNINITIALIZED
        self._peers: list[PeerInfo] = []
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: PoolConfig,
        credentials: CredentialResolver | None = None,
        source: WatchSource | None = None,
    ) -> Pool:
        """
        Build a pool, start watching and wait for the initial sync.

        Args:
            config: Pool configuration
            credentials: How to authenticate to the API server. Defaults to
                the pod's in-cluster service account. Ignored when
                ``source`` is given.
            source: Use this watch source instead of building one

        Returns:
            A running pool

        Raises:
            CredentialsError: No API client could be built
            SyncTimeoutError: The initial list did not complete within
                ``config.sync_timeout``
        """
        api_client: client.ApiClient | None = None

        if source is None:
            if credentials is None:
                credentials = InClusterCredentials()

            loop = asyncio.get_running_loop()
            api_client = await loop.run_in_executor(None, credentials.resolve)
            source = EndpointsSource(
                api_client,
                config.namespace,
                selector=config.selector,
            )

        pool = cls(config, source, api_client=api_client)
        await pool.start()

        return pool

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def peers(self) -> list[PeerInfo]:
        """The most recently delivered peer list."""
        return list(self._peers)

    @property
    def has_synced(self) -> bool:
        return self._reflector.has_synced

    @property
    def metrics(self) -> PoolMetricsSnapshot:
        return self._metrics.get_snapshot()

    async def start(self) -> None:
        if self._state != PoolState.UNINITIALIZED:
            raise RuntimeError(f"Pool cannot be started from state '{self._state.value}'")

        self._state = PoolState.STARTING
        await self._log_info(f"Watching {self._source.name}")

        self._reflector.start()

        try:
            await asyncio.wait_for(
                self._reflector.wait_for_sync(),
                timeout=self._config.sync_timeout,
            )

        except asyncio.TimeoutError:
            if self._closed:
                return

            await self._fail()

            error = SyncTimeoutError(
                self._config.namespace,
                self._config.selector,
                self._config.sync_timeout,
            )
            await self._log_error(str(error))

            raise error from self._reflector.last_error

        except BaseException:
            await self._fail()
            raise

        if self._closed:
            await self._log_info("Closed before endpoints cache synced")
            return

        self._state = PoolState.RUNNING
        await self._log_info("Endpoints cache synced")

    def close(self) -> None:
        """
        Signal the background watch to stop. Does not block.

        Must be called from the event loop the pool runs on. Calling it
        again is a no-op.
        """
        if self._closed:
            return

        self._closed = True

        if self._state != PoolState.FAILED:
            self._state = PoolState.CLOSED

        self._reflector.stop()
        self._close_api_client()

    async def wait_closed(self) -> None:
        """Wait for the background watch task to exit after ``close()``."""
        await self._reflector.wait_stopped()

    async def __aenter__(self) -> Pool:
        if self._state == PoolState.UNINITIALIZED:
            await self.start()

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        await self.wait_closed()

    async def _fail(self) -> None:
        self._state = PoolState.FAILED
        self._closed = True
        self._reflector.stop()
        await self._reflector.wait_stopped()
        self._close_api_client()

    def _close_api_client(self) -> None:
        if self._api_client is not None:
            self._api_client.close()
            self._api_client = None

    # --- Reflector Handlers ---

    # Handlers run under the reflector's dispatch lock.

    async def _on_add(self, obj: Any, in_initial_list: bool) -> None:
        key = self._key_of(obj)

        if in_initial_list:
            await self._log_trace(f"Listed '{key}'")
            return

        await self._log_debug(f"Queue (Add) '{key}'")
        await self._reconcile(f"add '{key}'")

    async def _on_update(self, old: Any, new: Any) -> None:
        key = self._key_of(new)
        await self._log_debug(f"Queue (Update) '{key}'")
        await self._reconcile(f"update '{key}'")

    async def _on_delete(self, obj: Any) -> None:
        key = self._key_of(obj)
        await self._log_debug(f"Queue (Delete) '{key}'")
        await self._reconcile(f"delete '{key}'")

    async def _on_sync(self) -> None:
        await self._reconcile("sync")

    async def _on_resync(self) -> None:
        await self._reconcile("resync")

    # --- Reconciliation ---

    async def reconcile(self, reason: str = "manual") -> list[PeerInfo] | None:
        """
        Resolve the current cache into peers and deliver them to
        ``on_update``.

        Waits for any handler in progress, so the delivery is ordered with
        watch driven reconciliations. Must not be called from inside
        ``on_update``.

        Returns:
            The delivered list, or None if the pool is closed
        """
        if self._closed:
            return None

        async with self._reflector.dispatch_lock:
            return await self._reconcile(reason)

    async def _reconcile(self, reason: str) -> list[PeerInfo] | None:
        if self._closed:
            return None

        started = time.monotonic()

        result = self._resolver.resolve(self._reflector.store.list())
        await self._report(result)

        if self._closed:
            return None

        peers = result.peers
        self._peers = list(peers)

        try:
            delivered = self._config.on_update(list(peers))
            if inspect.isawaitable(delivered):
                await delivered

        except Exception as err:
            self._metrics.record_callback_failure()
            await self._log_error(f"on_update callback failed: {err}")

        duration_ms = (time.monotonic() - started) * 1000
        self._metrics.record_reconcile(
            peer_count=len(peers),
            duration_ms=duration_ms,
            skipped=len(result.skipped),
            duplicates=len(result.duplicates),
        )

        await self._log_debug(
            f"Reconciled {len(peers)} peers ({reason}) in {duration_ms:.2f}ms"
        )

        return peers

    async def _report(self, result: ResolveResult) -> None:
        for skipped in result.skipped:
            await self._log_error(f"Skipping '{skipped.resource_key}': {skipped.reason}")

        for duplicate in result.duplicates:
            await self._log_debug(
                f"Address {duplicate.ip_address} from '{duplicate.resource_key}' already listed"
            )

        if result.peers and result.owner is None:
            await self._log_warning(
                f"Own address {self._config.pod_ip} is not among {len(result.peers)} peers"
            )

        for peer in result.peers:
            await self._log_trace(f"Peer: {peer}")

    def _key_of(self, obj: Any) -> str:
        try:
            return meta_namespace_key(obj)

        except ResourceKeyError:
            return "<unknown>"

    # --- Logging ---

    def _get_log_context(self) -> dict:
        return {
            "namespace": self._config.namespace,
            "selector": self._config.selector,
            "pod_ip": self._config.pod_ip,
            "peer_count": len(self._peers),
        }

    async def _log_trace(self, message: str) -> None:
        await self._logger.log(EndpointsPoolTrace(message=message, **self._get_log_context()))

    async def _log_debug(self, message: str) -> None:
        await self._logger.log(EndpointsPoolDebug(message=message, **self._get_log_context()))

    async def _log_info(self, message: str) -> None:
        await self._logger.log(EndpointsPoolInfo(message=message, **self._get_log_context()))

    async def _log_warning(self, message: str) -> None:
        await self._logger.log(EndpointsPoolWarning(message=message, **self._get_log_context()))

    async def _log_error(self, message: str) -> None:
        await self._logger.log(EndpointsPoolError(message=message, **self._get_log_context()))
