from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"


@dataclass(slots=True)
class WatchEvent:
    """A single change observed on the watch stream."""

    type: EventType
    obj: Any
    resource_version: str | None = None


@dataclass(slots=True)
class ResourceList:
    """Result of listing the watched collection."""

    items: list[Any] = field(default_factory=list)
    resource_version: str | None = None
