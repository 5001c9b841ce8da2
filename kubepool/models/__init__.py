from .membership_entry import MembershipEntry as MembershipEntry
from .peer_info import PeerInfo as PeerInfo
from .pool_config import (
    PoolConfig as PoolConfig,
    UpdateFunc as UpdateFunc,
)
from .pool_state import PoolState as PoolState
