from typing import Iterator, Protocol, runtime_checkable

from .events import ResourceList, WatchEvent


@runtime_checkable
class WatchSource(Protocol):
    """
    List and watch primitives over one namespaced, labeled collection.

    Both calls block and are run off the event loop by the reflector.
    Implementations raise ``ListError`` from ``list``, and ``WatchError``
    or ``WatchExpiredError`` from the ``watch`` iterator.
    """

    @property
    def name(self) -> str:
        ...

    def list(self) -> ResourceList:
        ...

    def watch(
        self,
        resource_version: str | None,
        timeout_seconds: int,
    ) -> Iterator[WatchEvent]:
        ...

    def stop(self) -> None:
        """Ask the stream currently being iterated to end."""
        ...
