from enum import Enum


class PoolState(Enum):
    UNINITIALIZED = "uninitialized"
    STARTING = "starting"
    RUNNING = "running"
    CLOSED = "closed"
    FAILED = "failed"
