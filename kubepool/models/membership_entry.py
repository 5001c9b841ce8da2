from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class MembershipEntry:
    """One address found in one subset of a cached Endpoints object."""

    resource_key: str
    ip_address: str
    hostname: str | None = None
    node_name: str | None = None
    target_name: str | None = None
