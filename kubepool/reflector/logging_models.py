"""
Logging models for the reflector.

Each model carries the reflector name (the watched collection), the last
resource version applied to the cache and the number of cached objects.
"""

from kubepool.logging.models import Entry, LogLevel


class ReflectorTrace(Entry, kw_only=True):
    """Trace-level logging for Reflector operations."""
    reflector: str
    resource_version: str
    cached: int
    level: LogLevel = LogLevel.TRACE


class ReflectorDebug(Entry, kw_only=True):
    """Debug-level logging for Reflector operations."""
    reflector: str
    resource_version: str
    cached: int
    level: LogLevel = LogLevel.DEBUG


class ReflectorInfo(Entry, kw_only=True):
    """Info-level logging for Reflector operations."""
    reflector: str
    resource_version: str
    cached: int
    level: LogLevel = LogLevel.INFO


class ReflectorWarning(Entry, kw_only=True):
    """Warning-level logging for Reflector operations."""
    reflector: str
    resource_version: str
    cached: int
    level: LogLevel = LogLevel.WARN


class ReflectorError(Entry, kw_only=True):
    """Error-level logging for Reflector operations."""
    reflector: str
    resource_version: str
    cached: int
    level: LogLevel = LogLevel.ERROR
