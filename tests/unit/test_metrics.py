"""
Unit tests for PoolMetrics.
"""

from kubepool.metrics import PoolMetrics


class TestPoolMetrics:

    def test_watch_counters(self):
        metrics = PoolMetrics()

        metrics.record_list()
        metrics.record_list()
        metrics.record_list_failure()
        metrics.record_watch_restart()
        metrics.record_watch_expired()
        metrics.record_watch_failure()
        metrics.record_event("ADDED")
        metrics.record_event("ADDED")
        metrics.record_event("MODIFIED")
        metrics.record_event("DELETED")
        metrics.record_malformed_event()

        snapshot = metrics.get_snapshot()

        assert snapshot.lists_total == 2
        assert snapshot.list_failures == 1
        assert snapshot.watch_restarts == 1
        assert snapshot.watch_expirations == 1
        assert snapshot.watch_failures == 1
        assert snapshot.events_added == 2
        assert snapshot.events_updated == 1
        assert snapshot.events_deleted == 1
        assert snapshot.malformed_events == 1

    def test_reconcile_counters(self):
        metrics = PoolMetrics()

        metrics.record_reconcile(peer_count=3, duration_ms=1.5, skipped=1, duplicates=2)
        metrics.record_reconcile(peer_count=4, duration_ms=0.5)
        metrics.record_callback_failure()

        snapshot = metrics.get_snapshot()

        assert snapshot.reconciliations_total == 2
        assert snapshot.last_peer_count == 4
        assert snapshot.last_reconcile_ms == 0.5
        assert snapshot.skipped_entries == 1
        assert snapshot.duplicate_addresses == 2
        assert snapshot.callback_failures == 1

    def test_snapshot_is_independent(self):
        metrics = PoolMetrics()
        before = metrics.get_snapshot()

        metrics.record_list()

        assert before.lists_total == 0
        assert metrics.get_snapshot().lists_total == 1

    def test_reset(self):
        metrics = PoolMetrics()
        metrics.record_list()
        metrics.record_event("ADDED")
        metrics.record_reconcile(peer_count=3, duration_ms=1.0)

        metrics.reset()
        snapshot = metrics.get_snapshot()

        assert snapshot.lists_total == 0
        assert snapshot.events_added == 0
        assert snapshot.reconciliations_total == 0
        assert snapshot.last_peer_count == 0
