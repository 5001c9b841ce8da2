from __future__ import annotations

import datetime
import sys
import threading
from typing import (
    Callable,
    Dict,
    TypeVar,
)

from kubepool.logging.models import Entry, Log

from .logger_stream import LoggerStream

T = TypeVar('T', bound=Entry)


class Logger:
    def __init__(self) -> None:
        self._streams: Dict[str, LoggerStream] = {}

    def __getitem__(self, name: str):

        if self._streams.get(name) is None:
            self._streams[name] = LoggerStream(name=name)

        return self._streams[name]

    def configure(
        self,
        name: str | None = None,
        template: str | None = None,
    ):
        if name is None:
            name = 'default'

        self._streams[name] = LoggerStream(
            name=name,
            template=template,
        )

        return self._streams[name]

    async def log(
        self,
        entry: T,
        name: str | None = None,
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if name is None:
            name = 'default'

        frame = sys._getframe(1)
        code = frame.f_code

        await self[name].log(
            Log(
                entry=entry,
                filename=code.co_filename,
                function_name=code.co_name,
                line_number=frame.f_lineno,
                thread_id=threading.get_native_id(),
                timestamp=datetime.datetime.now(datetime.UTC).isoformat()
            ),
            template=template,
            filter=filter,
        )

    def close(self):
        for stream in self._streams.values():
            stream.close()
