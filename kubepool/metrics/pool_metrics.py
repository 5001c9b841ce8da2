"""
Pool metrics collection and reporting.

Provides observability for the watch and reconcile loop.
"""

import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class PoolMetricsSnapshot:
    """Point-in-time snapshot of pool metrics."""

    timestamp: float
    """When this snapshot was taken (monotonic)."""

    # Watch metrics
    lists_total: int = 0
    """Completed list calls (initial sync and relists)."""

    list_failures: int = 0
    """Failed list calls."""

    watch_restarts: int = 0
    """Watch windows reopened from the last seen resource version."""

    watch_expirations: int = 0
    """Watches that ended with an expired resource version."""

    watch_failures: int = 0
    """Watch streams that failed before their window closed."""

    events_added: int = 0
    events_updated: int = 0
    events_deleted: int = 0

    malformed_events: int = 0
    """Events skipped because no resource key could be derived."""

    # Reconcile metrics
    reconciliations_total: int = 0
    """Peer lists computed and handed to the consumer."""

    callback_failures: int = 0
    """Consumer callbacks that raised."""

    skipped_entries: int = 0
    """Malformed cache entries skipped by the resolver."""

    duplicate_addresses: int = 0
    """Addresses collapsed because they were already listed."""

    last_peer_count: int = 0
    """Number of peers in the most recent reconciliation."""

    last_reconcile_ms: float = 0.0
    """Duration of the most recent reconciliation including the callback."""


@dataclass
class PoolMetrics:
    """
    Metrics collector for the pool.

    Usage:
        metrics = PoolMetrics()

        metrics.record_list()
        metrics.record_event("ADDED")
        metrics.record_reconcile(peer_count=3, duration_ms=0.4)

        snapshot = metrics.get_snapshot()
    """

    _lists_total: int = field(default=0, repr=False)
    _list_failures: int = field(default=0, repr=False)
    _watch_restarts: int = field(default=0, repr=False)
    _watch_expirations: int = field(default=0, repr=False)
    _watch_failures: int = field(default=0, repr=False)
    _events: dict[str, int] = field(default_factory=dict, repr=False)
    _malformed_events: int = field(default=0, repr=False)

    _reconciliations_total: int = field(default=0, repr=False)
    _callback_failures: int = field(default=0, repr=False)
    _skipped_entries: int = field(default=0, repr=False)
    _duplicate_addresses: int = field(default=0, repr=False)
    _last_peer_count: int = field(default=0, repr=False)
    _last_reconcile_ms: float = field(default=0.0, repr=False)

    # --- Watch Metrics ---

    def record_list(self) -> None:
        self._lists_total += 1

    def record_list_failure(self) -> None:
        self._list_failures += 1

    def record_watch_restart(self) -> None:
        self._watch_restarts += 1

    def record_watch_expired(self) -> None:
        self._watch_expirations += 1

    def record_watch_failure(self) -> None:
        self._watch_failures += 1

    def record_event(self, event_type: str) -> None:
        """
        Record an event applied to the cache.

        Args:
            event_type: 'ADDED', 'MODIFIED' or 'DELETED'
        """
        self._events[event_type] = self._events.get(event_type, 0) + 1

    def record_malformed_event(self) -> None:
        self._malformed_events += 1

    # --- Reconcile Metrics ---

    def record_reconcile(
        self,
        peer_count: int,
        duration_ms: float,
        skipped: int = 0,
        duplicates: int = 0,
    ) -> None:
        """
        Record a completed reconciliation.

        Args:
            peer_count: Number of peers delivered
            duration_ms: Time spent resolving and delivering
            skipped: Malformed entries skipped by the resolver
            duplicates: Duplicate addresses collapsed by the resolver
        """
        self._reconciliations_total += 1
        self._last_peer_count = peer_count
        self._last_reconcile_ms = duration_ms
        self._skipped_entries += skipped
        self._duplicate_addresses += duplicates

    def record_callback_failure(self) -> None:
        self._callback_failures += 1

    # --- Snapshot Generation ---

    def get_snapshot(self) -> PoolMetricsSnapshot:
        return PoolMetricsSnapshot(
            timestamp=time.monotonic(),
            lists_total=self._lists_total,
            list_failures=self._list_failures,
            watch_restarts=self._watch_restarts,
            watch_expirations=self._watch_expirations,
            watch_failures=self._watch_failures,
            events_added=self._events.get("ADDED", 0),
            events_updated=self._events.get("MODIFIED", 0),
            events_deleted=self._events.get("DELETED", 0),
            malformed_events=self._malformed_events,
            reconciliations_total=self._reconciliations_total,
            callback_failures=self._callback_failures,
            skipped_entries=self._skipped_entries,
            duplicate_addresses=self._duplicate_addresses,
            last_peer_count=self._last_peer_count,
            last_reconcile_ms=self._last_reconcile_ms,
        )

    def reset(self) -> None:
        """Reset all counters."""
        self._lists_total = 0
        self._list_failures = 0
        self._watch_restarts = 0
        self._watch_expirations = 0
        self._watch_failures = 0
        self._events.clear()
        self._malformed_events = 0
        self._reconciliations_total = 0
        self._callback_failures = 0
        self._skipped_entries = 0
        self._duplicate_addresses = 0
        self._last_peer_count = 0
        self._last_reconcile_ms = 0.0
