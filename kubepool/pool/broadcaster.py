"""
Fan-out of one pool's updates to several consumers.

A pool delivers to exactly one ``on_update`` callback. Components that
each need the peer list subscribe to a broadcaster, and the broadcaster
is registered as the pool's ``on_update``.
"""

import inspect
from typing import Callable

from kubepool.logging import Logger, LogSink
from kubepool.models.peer_info import PeerInfo
from kubepool.models.pool_config import UpdateFunc
from kubepool.pool.logging_models import BroadcasterError


class PeerBroadcaster:
    """
    Delivers each peer list to every subscriber in subscription order.

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the list.

    Usage:
        broadcaster = PeerBroadcaster()
        unsubscribe = await broadcaster.subscribe(ring.set_peers)

        pool = await Pool.create(
            PoolConfig(on_update=broadcaster, ...),
        )
    """

    def __init__(self, logger: LogSink | None = None) -> None:
        self._logger = logger if logger is not None else Logger()
        self._subscribers: dict[int, UpdateFunc] = {}
        self._next_subscriber_id = 0
        self._last_peers: list[PeerInfo] | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def last_peers(self) -> list[PeerInfo] | None:
        return self._last_peers

    async def subscribe(
        self,
        callback: UpdateFunc,
        replay: bool = True,
    ) -> Callable[[], None]:
        """
        Register ``callback`` and return a function that unregisters it.

        Args:
            callback: Called with every subsequent peer list
            replay: Deliver the most recent list immediately, if there is one
        """
        if not callable(callback):
            raise ValueError("callback must be callable")

        subscriber_id = self._next_subscriber_id
        self._next_subscriber_id += 1
        self._subscribers[subscriber_id] = callback

        if replay and self._last_peers is not None:
            await self._deliver(callback, list(self._last_peers))

        def unsubscribe() -> None:
            self._subscribers.pop(subscriber_id, None)

        return unsubscribe

    async def __call__(self, peers: list[PeerInfo]) -> None:
        self._last_peers = list(peers)

        for callback in list(self._subscribers.values()):
            await self._deliver(callback, list(peers))

    async def _deliver(self, callback: UpdateFunc, peers: list[PeerInfo]) -> None:
        try:
            result = callback(peers)
            if inspect.isawaitable(result):
                await result

        except Exception as err:
            await self._logger.log(
                BroadcasterError(
                    message=f"Subscriber failed: {err}",
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                    peer_count=len(peers),
                )
            )
