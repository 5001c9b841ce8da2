from .log_sink import LogSink as LogSink
from .logger import Logger as Logger
from .logger_stream import LoggerStream as LoggerStream
