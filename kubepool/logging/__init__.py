from .config import LoggingConfig as LoggingConfig
from .models import (
    Entry as Entry,
    Log as Log,
    LogLevel as LogLevel,
    LogLevelName as LogLevelName,
)
from .streams import (
    LogSink as LogSink,
    Logger as Logger,
    LoggerStream as LoggerStream,
)
