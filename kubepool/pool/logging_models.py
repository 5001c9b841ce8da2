"""
Logging models for the pool.

Each model identifies the watched group (namespace and selector) and the
instance doing the watching (pod_ip), so entries from several pods can be
correlated.
"""

from kubepool.logging.models import Entry, LogLevel


class EndpointsPoolTrace(Entry, kw_only=True):
    """Trace-level logging for Pool operations."""
    namespace: str
    selector: str
    pod_ip: str
    peer_count: int
    level: LogLevel = LogLevel.TRACE


class EndpointsPoolDebug(Entry, kw_only=True):
    """Debug-level logging for Pool operations."""
    namespace: str
    selector: str
    pod_ip: str
    peer_count: int
    level: LogLevel = LogLevel.DEBUG


class EndpointsPoolInfo(Entry, kw_only=True):
    """Info-level logging for Pool operations."""
    namespace: str
    selector: str
    pod_ip: str
    peer_count: int
    level: LogLevel = LogLevel.INFO


class EndpointsPoolWarning(Entry, kw_only=True):
    """Warning-level logging for Pool operations."""
    namespace: str
    selector: str
    pod_ip: str
    peer_count: int
    level: LogLevel = LogLevel.WARN


class EndpointsPoolError(Entry, kw_only=True):
    """Error-level logging for Pool operations."""
    namespace: str
    selector: str
    pod_ip: str
    peer_count: int
    level: LogLevel = LogLevel.ERROR


class BroadcasterError(Entry, kw_only=True):
    """Error-level logging for a failed broadcast subscriber."""
    subscriber: str
    peer_count: int
    level: LogLevel = LogLevel.ERROR
