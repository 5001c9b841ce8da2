from typing import Protocol, TypeVar, runtime_checkable

from kubepool.logging.models import Entry


T = TypeVar('T', bound=Entry)


@runtime_checkable
class LogSink(Protocol):
    """
    The only logging capability the pool depends on.

    Leveled output comes from the entry model's ``level`` and fields are
    attached as attributes of the entry, so any object with an async
    ``log`` method accepting an ``Entry`` can stand in for ``Logger``.
    """

    async def log(self, entry: T) -> None:
        ...
