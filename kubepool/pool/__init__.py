from kubepool.pool.broadcaster import PeerBroadcaster as PeerBroadcaster
from kubepool.pool.pool import Pool as Pool
