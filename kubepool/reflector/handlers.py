from dataclasses import dataclass
from typing import Any, Awaitable, Callable


AddFunc = Callable[[Any, bool], Awaitable[None]]
UpdateFunc = Callable[[Any, Any], Awaitable[None]]
DeleteFunc = Callable[[Any], Awaitable[None]]
NotifyFunc = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class ResourceEventHandlerFuncs:
    """
    Callbacks the reflector invokes after each change is applied to the
    store. Unset callbacks are skipped.
    """

    add: AddFunc | None = None
    """Called with (obj, in_initial_list). ``in_initial_list`` is True for
    objects that arrived through a list rather than the watch stream."""

    update: UpdateFunc | None = None
    """Called with (old, new)."""

    delete: DeleteFunc | None = None
    """Called with the last known state of the deleted object."""

    sync: NotifyFunc | None = None
    """Called after every completed list, initial or relist."""

    resync: NotifyFunc | None = None
    """Called every resync interval when periodic resync is enabled."""

    async def on_add(self, obj: Any, in_initial_list: bool) -> None:
        if self.add is not None:
            await self.add(obj, in_initial_list)

    async def on_update(self, old: Any, new: Any) -> None:
        if self.update is not None:
            await self.update(old, new)

    async def on_delete(self, obj: Any) -> None:
        if self.delete is not None:
            await self.delete(obj)

    async def on_sync(self) -> None:
        if self.sync is not None:
            await self.sync()

    async def on_resync(self) -> None:
        if self.resync is not None:
            await self.resync()
