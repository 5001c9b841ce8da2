import asyncio
import datetime
import sys
import threading
from typing import (
    Callable,
    TypeVar,
)

import msgspec

from kubepool.logging.config.logging_config import LoggingConfig
from kubepool.logging.config.stream_type import StreamType
from kubepool.logging.models import Entry, Log

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
    ) -> None:
        if name is None:
            name = "default"

        if template is None:
            template = DEFAULT_TEMPLATE

        self._name = name
        self._default_template = template
        self._config = LoggingConfig()
        self._write_lock = threading.Lock()
        self._closed = False

    @property
    def name(self):
        return self._name

    @property
    def closed(self):
        return self._closed

    async def log(
        self,
        entry_or_log: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if self._closed:
            return

        if isinstance(entry_or_log, Log):
            log = entry_or_log

        else:
            log_file, line_number, function_name = self._find_caller()
            log = Log(
                entry=entry_or_log,
                filename=log_file,
                function_name=function_name,
                line_number=line_number,
                thread_id=threading.get_native_id(),
                timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
            )

        entry = log.entry

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if template is None:
            template = self._default_template

        if self._config.format == 'json':
            line = msgspec.json.encode(log).decode()

        else:
            line = entry.to_template(
                template,
                context={
                    "filename": log.filename,
                    "function_name": log.function_name,
                    "line_number": log.line_number,
                    "thread_id": log.thread_id,
                    "timestamp": log.timestamp,
                },
            )

            fields = entry.fields()
            if fields:
                line = " ".join([
                    line,
                    *[f"{name}={value}" for name, value in fields.items()],
                ])

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            self._write,
            line + "\n",
            self._config.output,
        )

    def _write(self, line: str, output: StreamType):
        stream = sys.stdout if output == StreamType.STDOUT else sys.stderr

        with self._write_lock:
            try:
                stream.write(line)
                stream.flush()

            except ValueError:
                # Interpreter shutdown closes the standard streams first.
                pass

    def _find_caller(self):
        """
        Find the stack frame of the caller so that we can note the source
        file name, line number and function name.
        """
        frame = sys._getframe(2)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )

    def close(self):
        self._closed = True
