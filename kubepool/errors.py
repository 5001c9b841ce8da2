"""
Exceptions raised by kubepool.

Only ``CredentialsError`` and ``SyncTimeoutError`` ever reach the caller
(from ``Pool.create``). Everything else is raised and recovered inside the
reflector loop and surfaces only in logs.
"""


class PoolError(Exception):
    pass


class CredentialsError(PoolError):
    """Raised when cluster credentials cannot be resolved into a client."""

    def __init__(self, strategy: str, message: str):
        self.strategy = strategy
        super().__init__(f"Failed to resolve cluster credentials ({strategy}): {message}")


class SyncTimeoutError(PoolError):
    """Raised when the initial list does not complete within the sync timeout."""

    def __init__(self, namespace: str, selector: str, timeout: float):
        self.namespace = namespace
        self.selector = selector
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for endpoints cache to sync "
            f"(namespace='{namespace}', selector='{selector}')"
        )


class ListError(PoolError):
    """Raised when listing the watched collection fails."""


class WatchError(PoolError):
    """Raised when a watch stream fails before its window closes."""


class WatchExpiredError(WatchError):
    """Raised when the watch resource version is too old (HTTP 410 Gone)."""

    def __init__(self, resource_version: str | None):
        self.resource_version = resource_version
        super().__init__(f"Resource version '{resource_version}' expired")


class ResourceKeyError(PoolError, KeyError):
    """Raised when no namespace/name key can be derived for an object."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Invalid resource"
