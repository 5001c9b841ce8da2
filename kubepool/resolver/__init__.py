from kubepool.resolver.peer_resolver import (
    PeerResolver as PeerResolver,
    ResolveResult as ResolveResult,
    SkippedEntry as SkippedEntry,
    address_sort_key as address_sort_key,
)
