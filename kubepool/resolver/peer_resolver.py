"""
Peer resolution from a snapshot of cached Endpoints.

Resolution is a pure transform: no I/O, no logging, no shared state.
Problems with individual entries are returned alongside the peers so the
caller decides how to report them.
"""

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Iterable

from kubernetes.client import V1Endpoints

from kubepool.models.membership_entry import MembershipEntry
from kubepool.models.peer_info import PeerInfo
from kubepool.reflector.store import meta_namespace_key
from kubepool.errors import ResourceKeyError


@dataclass(slots=True, frozen=True)
class SkippedEntry:
    """A cached object or address that could not be turned into a peer."""

    resource_key: str
    reason: str


@dataclass(slots=True)
class ResolveResult:
    """Result of resolving one cache snapshot."""

    peers: list[PeerInfo] = field(default_factory=list)
    """Deduplicated peers, sorted by address."""

    skipped: list[SkippedEntry] = field(default_factory=list)
    """Malformed objects or addresses left out of ``peers``."""

    duplicates: list[MembershipEntry] = field(default_factory=list)
    """Entries whose address was already listed by an earlier entry."""

    @property
    def owner(self) -> PeerInfo | None:
        for peer in self.peers:
            if peer.is_owner:
                return peer

        return None


def address_sort_key(ip_address: str) -> tuple[int, int, str]:
    """
    Order IPv4 before IPv6, numerically within a family, and anything that
    is not a valid IP after both in string order.
    """
    try:
        parsed = ipaddress.ip_address(ip_address)

    except ValueError:
        return (2, 0, ip_address)

    return (0 if parsed.version == 4 else 1, int(parsed), ip_address)


class PeerResolver:
    """
    Turns cached Endpoints into the peer list delivered to the consumer.

    Every address of every subset becomes one ``MembershipEntry``. An
    address seen more than once (for example the same pod listed under two
    Endpoints objects) yields a single peer; the first occurrence in
    snapshot order wins. Output is sorted with ``address_sort_key`` so an
    unchanged snapshot always resolves to an identical list.
    """

    def __init__(
        self,
        pod_ip: str,
        pod_port: int,
        data_center: str = "",
    ) -> None:
        self.pod_ip = pod_ip
        self.pod_port = pod_port
        self.data_center = data_center

    def resolve(self, snapshot: Iterable[Any]) -> ResolveResult:
        result = ResolveResult()
        seen: dict[str, PeerInfo] = {}

        for entry in self.membership(snapshot, result.skipped):
            if entry.ip_address in seen:
                result.duplicates.append(entry)
                continue

            seen[entry.ip_address] = PeerInfo.from_address(
                entry.ip_address,
                self.pod_port,
                self.pod_ip,
                data_center=self.data_center,
            )

        result.peers = sorted(
            seen.values(),
            key=lambda peer: address_sort_key(peer.ip_address),
        )

        return result

    def membership(
        self,
        snapshot: Iterable[Any],
        skipped: list[SkippedEntry],
    ) -> list[MembershipEntry]:
        entries: list[MembershipEntry] = []

        for obj in snapshot:
            try:
                resource_key = meta_namespace_key(obj)

            except ResourceKeyError as err:
                skipped.append(SkippedEntry(resource_key="<unknown>", reason=str(err)))
                continue

            if not isinstance(obj, V1Endpoints):
                skipped.append(
                    SkippedEntry(
                        resource_key=resource_key,
                        reason=f"expected type V1Endpoints got '{type(obj).__name__}' instead",
                    )
                )
                continue

            for subset_index, subset in enumerate(obj.subsets or []):
                for address_index, address in enumerate(subset.addresses or []):
                    ip_address = getattr(address, "ip", None)

                    if not ip_address:
                        skipped.append(
                            SkippedEntry(
                                resource_key=resource_key,
                                reason=f"subsets[{subset_index}].addresses[{address_index}] has no ip",
                            )
                        )
                        continue

                    target_ref = getattr(address, "target_ref", None)

                    entries.append(
                        MembershipEntry(
                            resource_key=resource_key,
                            ip_address=ip_address,
                            hostname=getattr(address, "hostname", None),
                            node_name=getattr(address, "node_name", None),
                            target_name=getattr(target_ref, "name", None),
                        )
                    )

        return entries
