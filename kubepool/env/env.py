from __future__ import annotations

from typing import Callable, Dict, Literal, Union

from pydantic import BaseModel, StrictStr, StrictInt

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    KUBEPOOL_NAMESPACE: StrictStr = "default"
    KUBEPOOL_SELECTOR: StrictStr = ""
    KUBEPOOL_POD_IP: StrictStr | None = None
    KUBEPOOL_POD_PORT: StrictInt = 8080
    KUBEPOOL_DATA_CENTER: StrictStr = ""
    KUBEPOOL_SYNC_TIMEOUT: StrictStr = "30s"
    KUBEPOOL_WATCH_TIMEOUT: StrictStr = "5m"
    KUBEPOOL_RESYNC_INTERVAL: StrictStr = "0s"
    KUBEPOOL_BACKOFF_BASE: StrictStr = "0.5s"
    KUBEPOOL_BACKOFF_MAX: StrictStr = "30s"
    KUBEPOOL_CREDENTIALS: Literal["in-cluster", "kubeconfig", "auto"] = "in-cluster"
    KUBEPOOL_KUBECONFIG: StrictStr | None = None
    KUBEPOOL_LOG_LEVEL: Literal["trace", "debug", "info", "warn", "error", "critical", "fatal"] = "info"
    KUBEPOOL_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    KUBEPOOL_LOG_FORMAT: Literal["text", "json"] = "text"

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "KUBEPOOL_NAMESPACE": str,
            "KUBEPOOL_SELECTOR": str,
            "KUBEPOOL_POD_IP": str,
            "KUBEPOOL_POD_PORT": int,
            "KUBEPOOL_DATA_CENTER": str,
            "KUBEPOOL_SYNC_TIMEOUT": str,
            "KUBEPOOL_WATCH_TIMEOUT": str,
            "KUBEPOOL_RESYNC_INTERVAL": str,
            "KUBEPOOL_BACKOFF_BASE": str,
            "KUBEPOOL_BACKOFF_MAX": str,
            "KUBEPOOL_CREDENTIALS": str,
            "KUBEPOOL_KUBECONFIG": str,
            "KUBEPOOL_LOG_LEVEL": str,
            "KUBEPOOL_LOG_OUTPUT": str,
            "KUBEPOOL_LOG_FORMAT": str,
        }

    def get_pool_config(self) -> dict:
        """Get PoolConfig keyword arguments from environment settings."""
        parser = TimeParser()

        return {
            'namespace': self.KUBEPOOL_NAMESPACE,
            'selector': self.KUBEPOOL_SELECTOR,
            'pod_ip': self.KUBEPOOL_POD_IP or "",
            'pod_port': self.KUBEPOOL_POD_PORT,
            'data_center': self.KUBEPOOL_DATA_CENTER,
            'sync_timeout': parser.parse(self.KUBEPOOL_SYNC_TIMEOUT),
            'watch_timeout': parser.parse(self.KUBEPOOL_WATCH_TIMEOUT),
            'resync_interval': parser.parse(self.KUBEPOOL_RESYNC_INTERVAL),
            'backoff_base': parser.parse(self.KUBEPOOL_BACKOFF_BASE),
            'backoff_max': parser.parse(self.KUBEPOOL_BACKOFF_MAX),
        }

    def get_logging_config(self) -> dict:
        """Get LoggingConfig.update() arguments from environment settings."""
        return {
            'log_level': self.KUBEPOOL_LOG_LEVEL,
            'log_output': self.KUBEPOOL_LOG_OUTPUT,
            'log_format': self.KUBEPOOL_LOG_FORMAT,
        }
