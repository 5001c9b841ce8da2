"""
Thread-safe, keyed cache of watched objects.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from kubepool.errors import ResourceKeyError


def _metadata_value(metadata: Any, name: str) -> Any:
    if isinstance(metadata, dict):
        return metadata.get(name)

    return getattr(metadata, name, None)


def _metadata(obj: Any) -> Any:
    if isinstance(obj, dict):
        return obj.get("metadata")

    return getattr(obj, "metadata", None)


def meta_namespace_key(obj: Any) -> str:
    """
    Return the 'namespace/name' key for an object, or 'name' when the
    object is not namespaced.

    Raises:
        ResourceKeyError: The object has no metadata or no name
    """
    metadata = _metadata(obj)
    if metadata is None:
        raise ResourceKeyError(f"Object of type '{type(obj).__name__}' has no metadata")

    name = _metadata_value(metadata, "name")
    if not name:
        raise ResourceKeyError(f"Object of type '{type(obj).__name__}' has no name")

    namespace = _metadata_value(metadata, "namespace")
    if namespace:
        return f"{namespace}/{name}"

    return name


def resource_version_of(obj: Any) -> str | None:
    metadata = _metadata(obj)
    if metadata is None:
        return None

    return _metadata_value(metadata, "resource_version")


@dataclass(slots=True)
class StoreDelta:
    """Changes applied to the store by ``replace``."""

    added: list[Any] = field(default_factory=list)
    updated: list[tuple[Any, Any]] = field(default_factory=list)
    deleted: list[Any] = field(default_factory=list)
    invalid: list[tuple[Any, ResourceKeyError]] = field(default_factory=list)


class ThreadSafeStore:
    """
    Cache of the watched collection keyed by ``key_func``.

    Only the reflector writes to the store. Readers get copies, and the
    lock is held only for the duration of a single read or write.
    """

    def __init__(
        self,
        key_func: Callable[[Any], str] = meta_namespace_key,
    ) -> None:
        self._key_func = key_func
        self._items: dict[str, Any] = {}
        self._lock = threading.Lock()

    def key_of(self, obj: Any) -> str:
        return self._key_func(obj)

    def add(self, obj: Any) -> Any | None:
        """Insert or replace ``obj``. Returns the previously cached object."""
        key = self._key_func(obj)
        with self._lock:
            old = self._items.get(key)
            self._items[key] = obj
            return old

    def update(self, obj: Any) -> Any | None:
        return self.add(obj)

    def delete(self, obj: Any) -> Any | None:
        """Remove ``obj``. Returns the cached object if there was one."""
        key = self._key_func(obj)
        with self._lock:
            return self._items.pop(key, None)

    def get(self, obj: Any) -> Any | None:
        return self.get_by_key(self._key_func(obj))

    def get_by_key(self, key: str) -> Any | None:
        with self._lock:
            return self._items.get(key)

    def list(self) -> list[Any]:
        with self._lock:
            return list(self._items.values())

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._items.keys())

    def replace(self, items: list[Any]) -> StoreDelta:
        """
        Replace the whole store with ``items`` and report what changed.

        Items with no derivable key are left out and reported as invalid.
        """
        delta = StoreDelta()
        replacement: dict[str, Any] = {}

        for obj in items:
            try:
                replacement[self._key_func(obj)] = obj

            except ResourceKeyError as err:
                delta.invalid.append((obj, err))

        with self._lock:
            previous = self._items
            self._items = replacement

        for key, obj in replacement.items():
            old = previous.get(key)
            if old is None:
                delta.added.append(obj)

            elif _changed(old, obj):
                delta.updated.append((old, obj))

        for key, old in previous.items():
            if key not in replacement:
                delta.deleted.append(old)

        return delta

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items


def _changed(old: Any, new: Any) -> bool:
    old_version = resource_version_of(old)
    new_version = resource_version_of(new)

    if old_version and new_version:
        return old_version != new_version

    return old != new
