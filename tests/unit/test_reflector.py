"""
Unit tests for the Reflector list/watch loop.

These tests verify that the Reflector:
1. Lists, fills the store and signals sync exactly once per list
2. Applies watch events to the store and dispatches one handler call each
3. Recovers from expired, failed and closed watches
4. Keeps running when a handler raises
5. Stops promptly and idempotently
"""

import asyncio

import pytest

from kubepool.errors import ListError, WatchError, WatchExpiredError
from kubepool.logging import LogLevel
from kubepool.metrics import PoolMetrics
from kubepool.reflector import EventType, Reflector, ResourceEventHandlerFuncs

from tests.mocks import FakeEndpointsSource, RecordingLogger, make_endpoints, wait_for


class RecordingHandlers:
    """Collects reflector notifications in order."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    async def add(self, obj, in_initial_list):
        self.events.append(("add", obj.metadata.name, in_initial_list))

    async def update(self, old, new):
        self.events.append(("update", new.metadata.name))

    async def delete(self, obj):
        self.events.append(("delete", obj.metadata.name))

    async def sync(self):
        self.events.append(("sync",))

    async def resync(self):
        self.events.append(("resync",))

    def funcs(self) -> ResourceEventHandlerFuncs:
        return ResourceEventHandlerFuncs(
            add=self.add,
            update=self.update,
            delete=self.delete,
            sync=self.sync,
            resync=self.resync,
        )

    def count(self, kind: str) -> int:
        return sum(1 for event in self.events if event[0] == kind)


@pytest.fixture
def handlers() -> RecordingHandlers:
    return RecordingHandlers()


@pytest.fixture
def metrics() -> PoolMetrics:
    return PoolMetrics()


@pytest.fixture
async def reflector_factory(
    source: FakeEndpointsSource,
    handlers: RecordingHandlers,
    recording_logger: RecordingLogger,
    metrics: PoolMetrics,
    fast_backoff,
):
    created: list[Reflector] = []

    def create(handler: ResourceEventHandlerFuncs | None = None, **overrides) -> Reflector:
        values = {
            "logger": recording_logger,
            "metrics": metrics,
            "watch_timeout": 1.0,
            "backoff": fast_backoff,
        }
        values.update(overrides)
        reflector = Reflector(
            source,
            handler if handler is not None else handlers.funcs(),
            **values,
        )
        created.append(reflector)
        return reflector

    yield create

    for reflector in created:
        reflector.stop()
        await reflector.wait_stopped()


async def start_synced(reflector: Reflector) -> None:
    reflector.start()
    await asyncio.wait_for(reflector.wait_for_sync(), timeout=2.0)


class TestInitialSync:
    """Test the first list."""

    @pytest.mark.asyncio
    async def test_initial_list_dispatches_adds_then_sync(
        self, source, handlers, reflector_factory
    ):
        """Listed objects arrive as initial adds followed by one sync."""
        source.seed(make_endpoints("a", ["10.0.0.1"]))
        source.seed(make_endpoints("b", ["10.0.0.2"]))
        reflector = reflector_factory()

        await start_synced(reflector)

        assert reflector.has_synced is True
        assert sorted(handlers.events[:2]) == [("add", "a", True), ("add", "b", True)]
        assert handlers.events[2:] == [("sync",)]
        assert len(reflector.store) == 2
        assert reflector.resource_version == "2"

    @pytest.mark.asyncio
    async def test_empty_collection_still_syncs(self, handlers, reflector_factory):
        """An empty list completes sync and notifies once."""
        reflector = reflector_factory()

        await start_synced(reflector)

        assert handlers.events == [("sync",)]

    @pytest.mark.asyncio
    async def test_list_failure_is_retried(
        self, source, handlers, reflector_factory, metrics
    ):
        """A failed list backs off and lists again."""
        source.list_failures.append(ListError("connection refused"))
        source.seed(make_endpoints("a", ["10.0.0.1"]))
        reflector = reflector_factory()

        await start_synced(reflector)

        assert source.list_calls == 2
        assert isinstance(reflector.last_error, ListError)
        assert metrics.get_snapshot().list_failures == 1
        assert metrics.get_snapshot().lists_total == 1

    @pytest.mark.asyncio
    async def test_unexpected_list_exception_is_wrapped(
        self, source, reflector_factory, recording_logger
    ):
        """Non-ListError failures from list are treated as list failures."""
        source.list_failures.append(RuntimeError("boom"))
        reflector = reflector_factory()

        await start_synced(reflector)

        assert isinstance(reflector.last_error, ListError)
        assert isinstance(reflector.last_error.__cause__, RuntimeError)
        assert recording_logger.contains("retrying", LogLevel.WARN)

    @pytest.mark.asyncio
    async def test_never_syncs_while_list_fails(self, source, reflector_factory):
        """No sync is signalled while every list fails."""
        source.list_error = ListError("forbidden")
        reflector = reflector_factory()
        reflector.start()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(reflector.wait_for_sync(), timeout=0.2)

        assert reflector.has_synced is False
        assert source.list_calls >= 2


class TestWatchEvents:
    """Test event application and dispatch."""

    @pytest.mark.asyncio
    async def test_add_modify_delete(self, source, handlers, reflector_factory, metrics):
        """Each watch event results in exactly one matching handler call."""
        reflector = reflector_factory()
        await start_synced(reflector)

        obj = make_endpoints("a", ["10.0.0.1"])
        source.add(obj)
        assert await wait_for(lambda: handlers.count("add") == 1)

        source.modify(make_endpoints("a", ["10.0.0.1", "10.0.0.2"]))
        assert await wait_for(lambda: handlers.count("update") == 1)

        source.delete(obj)
        assert await wait_for(lambda: handlers.count("delete") == 1)

        assert handlers.events == [
            ("sync",),
            ("add", "a", False),
            ("update", "a"),
            ("delete", "a"),
        ]
        assert len(reflector.store) == 0

        snapshot = metrics.get_snapshot()
        assert snapshot.events_added == 1
        assert snapshot.events_updated == 1
        assert snapshot.events_deleted == 1

    @pytest.mark.asyncio
    async def test_added_for_cached_key_is_an_update(
        self, source, handlers, reflector_factory
    ):
        """An ADDED event for an object already cached dispatches update."""
        obj = make_endpoints("a", ["10.0.0.1"])
        source.seed(obj)
        reflector = reflector_factory()
        await start_synced(reflector)

        source.emit(EventType.ADDED, make_endpoints("a", ["10.0.0.2"]))

        assert await wait_for(lambda: handlers.count("update") == 1)
        assert handlers.count("add") == 1

    @pytest.mark.asyncio
    async def test_resource_version_advances(self, source, reflector_factory):
        """The last seen resource version follows applied events."""
        reflector = reflector_factory()
        await start_synced(reflector)

        source.add(make_endpoints("a", ["10.0.0.1"]))

        assert await wait_for(lambda: reflector.resource_version == "1")

    @pytest.mark.asyncio
    async def test_bookmark_only_moves_resource_version(
        self, source, handlers, reflector_factory
    ):
        """Bookmarks update the resource version without dispatching."""
        reflector = reflector_factory()
        await start_synced(reflector)

        source.bookmark("42")

        assert await wait_for(lambda: reflector.resource_version == "42")
        assert handlers.events == [("sync",)]

    @pytest.mark.asyncio
    async def test_malformed_event_is_skipped(
        self, source, handlers, reflector_factory, recording_logger, metrics
    ):
        """An event with no derivable key is logged and later events still apply."""
        reflector = reflector_factory()
        await start_synced(reflector)

        source.emit(EventType.ADDED, {"metadata": {"namespace": "default"}})
        source.add(make_endpoints("a", ["10.0.0.1"]))

        assert await wait_for(lambda: handlers.count("add") == 1)
        assert recording_logger.contains("Skipping ADDED event", LogLevel.ERROR)
        assert metrics.get_snapshot().malformed_events == 1
        assert len(reflector.store) == 1

    @pytest.mark.asyncio
    async def test_handler_exception_does_not_stop_loop(
        self, source, reflector_factory, recording_logger
    ):
        """A raising handler is logged and the next event is still delivered."""
        seen: list[str] = []

        async def add(obj, in_initial_list):
            seen.append(obj.metadata.name)
            if obj.metadata.name == "bad":
                raise RuntimeError("handler exploded")

        reflector = reflector_factory(handler=ResourceEventHandlerFuncs(add=add))
        await start_synced(reflector)

        source.add(make_endpoints("bad", ["10.0.0.1"]))
        source.add(make_endpoints("good", ["10.0.0.2"]))

        assert await wait_for(lambda: seen == ["bad", "good"])
        assert recording_logger.contains("handler exploded", LogLevel.ERROR)
        assert reflector.running is True


class TestWatchRecovery:
    """Test relist and rewatch behavior."""

    @pytest.mark.asyncio
    async def test_closed_window_rewatches_without_relist(
        self, source, reflector_factory, metrics
    ):
        """A normally closed window resumes from the last resource version."""
        source.seed(make_endpoints("a", ["10.0.0.1"]))
        reflector = reflector_factory()
        await start_synced(reflector)
        assert await wait_for(lambda: source.watch_calls == 1)

        source.close_window()

        assert await wait_for(lambda: source.watch_calls == 2)
        assert source.list_calls == 1
        assert source.watched_versions == ["1", "1"]
        assert metrics.get_snapshot().watch_restarts >= 1

    @pytest.mark.asyncio
    async def test_expired_watch_relists(
        self, source, handlers, reflector_factory, metrics
    ):
        """HTTP 410 relists immediately and notifies sync again."""
        reflector = reflector_factory()
        await start_synced(reflector)

        source.fail_watch(WatchExpiredError("1"))

        assert await wait_for(lambda: handlers.count("sync") == 2)
        assert source.list_calls == 2
        assert metrics.get_snapshot().watch_expirations == 1

    @pytest.mark.asyncio
    async def test_relist_dispatches_missed_changes(
        self, source, handlers, reflector_factory
    ):
        """Changes missed while the watch was down arrive through the relist delta."""
        removed = make_endpoints("removed", ["10.0.0.1"])
        source.seed(removed)
        reflector = reflector_factory()
        await start_synced(reflector)

        source.unseed(removed)
        source.seed(make_endpoints("added", ["10.0.0.2"]))
        source.fail_watch(WatchExpiredError("1"))

        assert await wait_for(lambda: handlers.count("sync") == 2)
        assert ("add", "added", True) in handlers.events
        assert ("delete", "removed") in handlers.events
        assert reflector.store.list_keys() == ["default/added"]

    @pytest.mark.asyncio
    async def test_failed_watch_backs_off_and_relists(
        self, source, handlers, reflector_factory, metrics
    ):
        """A broken stream relists after a backoff delay."""
        source.watch_failures.append(WatchError("connection reset"))
        reflector = reflector_factory()
        await start_synced(reflector)

        assert await wait_for(lambda: handlers.count("sync") == 2)
        assert metrics.get_snapshot().watch_failures == 1
        assert isinstance(reflector.last_error, WatchError)


class TestResyncAndStop:
    """Test periodic resync and shutdown."""

    @pytest.mark.asyncio
    async def test_periodic_resync(self, handlers, reflector_factory):
        """Resync notifications fire on the configured interval."""
        reflector = reflector_factory(resync_interval=0.05)
        await start_synced(reflector)

        assert await wait_for(lambda: handlers.count("resync") >= 2)

    @pytest.mark.asyncio
    async def test_resync_disabled_by_default(self, handlers, reflector_factory):
        reflector = reflector_factory()
        await start_synced(reflector)

        await asyncio.sleep(0.1)

        assert handlers.count("resync") == 0

    @pytest.mark.asyncio
    async def test_stop_ends_task(self, source, reflector_factory):
        """stop() ends the background task and the source stream."""
        reflector = reflector_factory()
        await start_synced(reflector)

        reflector.stop()
        await asyncio.wait_for(reflector.wait_stopped(), timeout=1.0)

        assert reflector.running is False
        assert source.stop_calls >= 1

    @pytest.mark.asyncio
    async def test_stop_ends_sync_wait(self, source, reflector_factory):
        """wait_for_sync() returns False as soon as the reflector is stopped."""
        source.list_error = ListError("forbidden")
        reflector = reflector_factory()
        reflector.start()

        waiting = asyncio.create_task(reflector.wait_for_sync())
        await asyncio.sleep(0.05)
        reflector.stop()

        assert await asyncio.wait_for(waiting, timeout=0.5) is False

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, source, reflector_factory):
        reflector = reflector_factory()
        await start_synced(reflector)

        reflector.stop()
        await reflector.wait_stopped()
        stop_calls = source.stop_calls

        reflector.stop()
        await reflector.wait_stopped()

        assert source.stop_calls == stop_calls

    @pytest.mark.asyncio
    async def test_no_dispatch_after_stop(self, source, handlers, reflector_factory):
        """Events queued after stop are never dispatched."""
        reflector = reflector_factory()
        await start_synced(reflector)

        reflector.stop()
        await reflector.wait_stopped()
        source.add(make_endpoints("late", ["10.0.0.9"]))
        await asyncio.sleep(0.05)

        assert handlers.count("add") == 0
