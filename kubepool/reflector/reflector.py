"""
Reflector - mirrors a watched collection into a local store.

The reflector lists the collection, replaces the store with the result and
then applies watch events from the listed resource version onwards. Every
change applied to the store is handed to the registered handler exactly
once, in the order it was observed.

Recovery:
- A watch window that closes normally is reopened from the last resource
  version without relisting.
- An expired resource version (HTTP 410) triggers an immediate relist.
- Any other list or watch failure is retried after a jittered backoff,
  followed by a relist.
- Every completed list ends with a sync notification, so handlers always
  get at least one chance to reconcile after recovery.

Blocking list and watch calls run on daemon threads. Watch events cross
back into the event loop through ``call_soon_threadsafe``.
"""

import asyncio
import threading
from typing import Any, Callable

from kubepool.errors import (
    ListError,
    ResourceKeyError,
    WatchError,
    WatchExpiredError,
)
from kubepool.logging import Logger, LogSink
from kubepool.metrics import PoolMetrics
from kubepool.reflector.events import EventType, ResourceList, WatchEvent
from kubepool.reflector.handlers import ResourceEventHandlerFuncs
from kubepool.reflector.logging_models import (
    ReflectorTrace,
    ReflectorDebug,
    ReflectorInfo,
    ReflectorWarning,
    ReflectorError,
)
from kubepool.reflector.store import ThreadSafeStore, resource_version_of
from kubepool.reflector.watch_source import WatchSource
from kubepool.reliability import Backoff, BackoffConfig


_WATCH_CLOSED = object()


class Reflector:
    """
    Keeps a ``ThreadSafeStore`` synchronized with a ``WatchSource``.

    The store is owned by the reflector; other components only read it.
    """

    def __init__(
        self,
        source: WatchSource,
        handler: ResourceEventHandlerFuncs,
        store: ThreadSafeStore | None = None,
        logger: LogSink | None = None,
        metrics: PoolMetrics | None = None,
        watch_timeout: float = 300.0,
        resync_interval: float = 0.0,
        backoff: BackoffConfig | None = None,
    ):
        """
        Initialize Reflector.

        Args:
            source: List/watch primitives for the collection
            handler: Callbacks invoked after each store change
            store: Store to populate (a new one is created if omitted)
            logger: Log sink for reflector entries
            metrics: Metrics collector shared with the owner
            watch_timeout: Seconds the server keeps one watch request open
            resync_interval: Seconds between resync notifications, 0 disables
            backoff: Delay policy between failed list/watch attempts
        """
        self._source = source
        self._handler = handler
        self._store = store if store is not None else ThreadSafeStore()
        self._logger = logger if logger is not None else Logger()
        self._metrics = metrics if metrics is not None else PoolMetrics()
        self._watch_timeout = max(1, int(watch_timeout))
        self._resync_interval = resync_interval
        self._backoff = Backoff(backoff)

        self._resource_version: str | None = None
        self._last_error: Exception | None = None

        self._synced = asyncio.Event()
        self._stop_event = asyncio.Event()
        self._stopping = False
        self._dispatch_lock = asyncio.Lock()

        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def store(self) -> ThreadSafeStore:
        return self._store

    @property
    def resource_version(self) -> str | None:
        return self._resource_version

    @property
    def has_synced(self) -> bool:
        return self._synced.is_set()

    @property
    def last_error(self) -> Exception | None:
        """The most recent list or watch failure, if any."""
        return self._last_error

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def dispatch_lock(self) -> asyncio.Lock:
        """
        Held while handlers run. Code outside a handler that reads the
        store and acts on it must hold this lock to stay ordered with
        watch events.
        """
        return self._dispatch_lock

    def start(self) -> asyncio.Task:
        """Launch the background list/watch task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run())

        return self._task

    async def wait_for_sync(self) -> bool:
        """
        Wait until the first list has been applied and dispatched, or until
        the reflector is stopped.

        Returns:
            True if the reflector synced, False if it was stopped first
        """
        if self._synced.is_set():
            return True

        sync_wait = asyncio.ensure_future(self._synced.wait())
        stop_wait = asyncio.ensure_future(self._stop_event.wait())

        try:
            await asyncio.wait(
                {sync_wait, stop_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )

        finally:
            sync_wait.cancel()
            stop_wait.cancel()

        return self._synced.is_set()

    def stop(self) -> None:
        """
        Signal the background task to exit. Does not block.

        Safe to call more than once.
        """
        if self._stopping:
            return

        self._stopping = True
        self._stop_event.set()
        self._source.stop()

        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_stopped(self) -> None:
        if self._task is None:
            return

        try:
            await self._task

        except asyncio.CancelledError:
            pass

    async def run(self) -> None:
        self._loop = asyncio.get_running_loop()

        resync_task: asyncio.Task | None = None
        if self._resync_interval > 0:
            resync_task = asyncio.create_task(self._resync_loop())

        try:
            while not self._stopping:
                try:
                    await self._list_and_replace()
                    self._backoff.reset()
                    await self._watch()

                except WatchExpiredError as err:
                    self._metrics.record_watch_expired()
                    await self._log_info(f"Watch expired, relisting: {err}")

                except WatchError as err:
                    self._metrics.record_watch_failure()
                    await self._recover(err)

                except ListError as err:
                    await self._recover(err)

                except Exception as err:
                    await self._log_error(
                        f"Unexpected {type(err).__name__} in list/watch loop: {err}"
                    )
                    await self._recover(err)

        finally:
            if resync_task is not None:
                resync_task.cancel()

    async def _recover(self, err: Exception) -> None:
        self._last_error = err
        delay = self._backoff.next_delay()

        await self._log_warning(
            f"{err} - retrying in {delay:.2f}s (attempt {self._backoff.attempts})"
        )

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)

        except asyncio.TimeoutError:
            pass

    async def _list_and_replace(self) -> None:
        try:
            result: ResourceList = await self._run_in_thread(self._source.list)

        except ListError:
            self._metrics.record_list_failure()
            raise

        except Exception as err:
            self._metrics.record_list_failure()
            raise ListError(f"Listing {self._source.name} failed: {err}") from err

        self._metrics.record_list()

        delta = self._store.replace(result.items)
        self._resource_version = result.resource_version

        for _, err in delta.invalid:
            self._metrics.record_malformed_event()
            await self._log_error(f"Skipping listed object: {err}")

        first_sync = not self._synced.is_set()

        async with self._dispatch_lock:
            for obj in delta.added:
                await self._dispatch(self._handler.on_add, obj, True)

            for old, new in delta.updated:
                await self._dispatch(self._handler.on_update, old, new)

            for obj in delta.deleted:
                await self._dispatch(self._handler.on_delete, obj)

            await self._dispatch(self._handler.on_sync)

        self._synced.set()

        if first_sync:
            await self._log_info(f"Initial list synced {len(self._store)} objects")

        else:
            await self._log_info(
                f"Relisted {len(self._store)} objects "
                f"(+{len(delta.added)} ~{len(delta.updated)} -{len(delta.deleted)})"
            )

    async def _watch(self) -> None:
        while not self._stopping:
            await self._watch_once()

            if self._stopping:
                return

            self._metrics.record_watch_restart()
            await self._log_debug("Watch window closed, resuming from last resource version")

    async def _watch_once(self) -> None:
        queue: asyncio.Queue = asyncio.Queue()
        pump = self._run_in_thread(
            self._pump,
            self._resource_version,
            queue,
        )

        try:
            while True:
                event = await queue.get()
                if event is _WATCH_CLOSED:
                    break

                await self._apply(event)

        except BaseException:
            self._source.stop()
            pump.cancel()
            raise

        await pump

    def _pump(self, resource_version: str | None, queue: asyncio.Queue) -> None:
        try:
            for event in self._source.watch(resource_version, self._watch_timeout):
                if self._stopping:
                    break

                self._call_soon(queue.put_nowait, event)

        finally:
            self._call_soon(queue.put_nowait, _WATCH_CLOSED)

    async def _apply(self, event: WatchEvent) -> None:
        if event.type == EventType.BOOKMARK:
            self._resource_version = event.resource_version or self._resource_version
            return

        try:
            key = self._store.key_of(event.obj)

        except ResourceKeyError as err:
            self._metrics.record_malformed_event()
            self._resource_version = event.resource_version or self._resource_version
            await self._log_error(f"Skipping {event.type.value} event: {err}")
            return

        if event.type == EventType.DELETED:
            old = self._store.delete(event.obj)

        else:
            old = self._store.add(event.obj)

        self._metrics.record_event(event.type.value)
        self._resource_version = (
            event.resource_version
            or resource_version_of(event.obj)
            or self._resource_version
        )

        await self._log_trace(f"Applied {event.type.value} '{key}'")

        async with self._dispatch_lock:
            if event.type == EventType.DELETED:
                await self._dispatch(self._handler.on_delete, event.obj)

            elif old is None:
                await self._dispatch(self._handler.on_add, event.obj, False)

            else:
                await self._dispatch(self._handler.on_update, old, event.obj)

    async def _dispatch(self, func: Callable[..., Any], *args: Any) -> None:
        try:
            await func(*args)

        except Exception as err:
            await self._log_error(
                f"Event handler {getattr(func, '__name__', repr(func))} failed: {err}"
            )

    async def _resync_loop(self) -> None:
        while not self._stopping:
            await asyncio.sleep(self._resync_interval)

            if self._stopping or not self._synced.is_set():
                continue

            async with self._dispatch_lock:
                await self._dispatch(self._handler.on_resync)

    def _run_in_thread(self, func: Callable[..., Any], *args: Any) -> asyncio.Future:
        future = self._loop.create_future()

        def runner():
            try:
                result = func(*args)

            except Exception as err:
                self._call_soon(_set_exception, future, err)

            else:
                self._call_soon(_set_result, future, result)

        threading.Thread(
            target=runner,
            name=f"kubepool-reflector-{self._source.name}",
            daemon=True,
        ).start()

        return future

    def _call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, *args)

        except RuntimeError:
            # Event loop already closed.
            pass

    def _get_log_context(self) -> dict:
        return {
            "reflector": self._source.name,
            "resource_version": self._resource_version or "",
            "cached": len(self._store),
        }

    async def _log_trace(self, message: str) -> None:
        await self._logger.log(ReflectorTrace(message=message, **self._get_log_context()))

    async def _log_debug(self, message: str) -> None:
        await self._logger.log(ReflectorDebug(message=message, **self._get_log_context()))

    async def _log_info(self, message: str) -> None:
        await self._logger.log(ReflectorInfo(message=message, **self._get_log_context()))

    async def _log_warning(self, message: str) -> None:
        await self._logger.log(ReflectorWarning(message=message, **self._get_log_context()))

    async def _log_error(self, message: str) -> None:
        await self._logger.log(ReflectorError(message=message, **self._get_log_context()))


def _set_result(future: asyncio.Future, result: Any) -> None:
    if not future.done():
        future.set_result(result)


def _set_exception(future: asyncio.Future, err: Exception) -> None:
    if not future.done():
        future.set_exception(err)
