"""
Peer information models for the endpoints pool.
"""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class PeerInfo:
    """
    A peer discovered from the endpoints of this service group.
    """

    ip_address: str
    """The ip address of the peer. Unique within one delivered list."""

    http_address: str = ""
    """The http://address:port of the peer."""

    grpc_address: str = ""
    """The address:port of the peer for gRPC clients."""

    is_owner: bool = False
    """True if this PeerInfo describes the running instance."""

    data_center: str = ""
    """Data center of the peer. Empty when not using multi data center support."""

    @classmethod
    def from_address(
        cls,
        ip_address: str,
        port: int,
        owner_ip: str,
        data_center: str = "",
    ) -> "PeerInfo":
        return cls(
            ip_address=ip_address,
            http_address=f"http://{ip_address}:{port}",
            grpc_address=f"{ip_address}:{port}",
            is_owner=ip_address == owner_ip,
            data_center=data_center,
        )
