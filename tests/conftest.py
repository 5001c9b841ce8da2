"""
Pytest configuration for kubepool tests.

Configures pytest-asyncio for async test support and provides the
in-memory watch source, log sink and update recorder used across tests.
"""

import pytest

from kubepool.models import PoolConfig
from kubepool.reliability import BackoffConfig

from tests.mocks import (
    FakeEndpointsSource,
    RecordingLogger,
    UpdateRecorder,
)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def source() -> FakeEndpointsSource:
    return FakeEndpointsSource()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def recorder() -> UpdateRecorder:
    return UpdateRecorder()


@pytest.fixture
def fast_backoff() -> BackoffConfig:
    return BackoffConfig(base_delay=0.01, max_delay=0.02)


@pytest.fixture
def pool_config_factory(recorder: UpdateRecorder, recording_logger: RecordingLogger):
    def create_config(**overrides) -> PoolConfig:
        values = {
            "on_update": recorder,
            "namespace": "default",
            "selector": "app=test",
            "pod_ip": "10.0.0.2",
            "pod_port": 8080,
            "logger": recording_logger,
            "sync_timeout": 2.0,
            "watch_timeout": 1.0,
            "backoff_base": 0.01,
            "backoff_max": 0.02,
        }
        values.update(overrides)
        return PoolConfig(**values)

    return create_config
