import asyncio
import signal

from kubepool import (
    Env,
    PeerBroadcaster,
    PeerInfo,
    Pool,
    PoolConfig,
    credentials_from_env,
    load_env,
)
from kubepool.logging import LoggingConfig


async def print_peers(peers: list[PeerInfo]):
    for peer in peers:
        marker = "*" if peer.is_owner else " "
        print(f"{marker} {peer.grpc_address} {peer.data_center}")

    print(f"-- {len(peers)} peers")


async def run():
    env = load_env(Env)
    LoggingConfig().update(**env.get_logging_config())

    broadcaster = PeerBroadcaster()
    await broadcaster.subscribe(print_peers)

    pool = await Pool.create(
        PoolConfig.from_env(env, broadcaster),
        credentials=credentials_from_env(env),
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop.set)
    loop.add_signal_handler(signal.SIGTERM, stop.set)

    await stop.wait()

    pool.close()
    await pool.wait_closed()

    print(pool.metrics)


asyncio.run(run())
