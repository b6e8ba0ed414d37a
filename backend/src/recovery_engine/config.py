"""Configuration for the recovery engine."""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .strategies.base import StrategyDependencies

logger = logging.getLogger(__name__)

DEFAULT_RPC_ENDPOINTS = (
    "https://cloudflare-eth.com",
    "https://rpc.ankr.com/eth",
    "https://eth.llamarpc.com",
)


@dataclass
class RecoveryConfig:
    """Configuration for recovery behavior."""
    max_attempts: int = 3
    log_capacity: int = 100
    error_id_length: int = 100
    default_timeout_ms: int = 5000
    backoff_base_ms: int = 1000
    backoff_cap_ms: int = 10000
    rpc_endpoints: tuple[str, ...] = field(default=DEFAULT_RPC_ENDPOINTS)
    persistence_url: Optional[str] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.log_capacity < 1:
            raise ValueError(f"log_capacity must be at least 1, got {self.log_capacity}")
        if self.error_id_length < 1:
            raise ValueError(f"error_id_length must be at least 1, got {self.error_id_length}")
        if self.backoff_base_ms < 0 or self.backoff_cap_ms < 0:
            raise ValueError("Backoff delays must not be negative")
        self.rpc_endpoints = tuple(self.rpc_endpoints)

    @classmethod
    def from_env(cls, prefix: str = "RECOVERY_") -> 'RecoveryConfig':
        """Build a config from environment variables, falling back to defaults."""
        kwargs = {}
        int_fields = {
            "MAX_ATTEMPTS": "max_attempts",
            "LOG_CAPACITY": "log_capacity",
            "ERROR_ID_LENGTH": "error_id_length",
            "DEFAULT_TIMEOUT_MS": "default_timeout_ms",
            "BACKOFF_BASE_MS": "backoff_base_ms",
            "BACKOFF_CAP_MS": "backoff_cap_ms",
        }
        for env_name, attr in int_fields.items():
            raw = os.environ.get(f"{prefix}{env_name}")
            if raw is None or raw.strip() == "":
                continue
            try:
                kwargs[attr] = int(raw)
            except ValueError:
                raise ValueError(f"{prefix}{env_name} must be an integer, got {raw!r}") from None

        endpoints = os.environ.get(f"{prefix}RPC_ENDPOINTS")
        if endpoints:
            kwargs["rpc_endpoints"] = tuple(
                url.strip() for url in endpoints.split(",") if url.strip()
            )

        persistence_url = os.environ.get(f"{prefix}PERSISTENCE_URL")
        if persistence_url:
            kwargs["persistence_url"] = persistence_url

        config = cls(**kwargs)
        logger.debug(f"Loaded recovery config from environment: {config}")
        return config

    def dependencies(self, **overrides) -> StrategyDependencies:
        """Build strategy dependencies from this config."""
        values = dict(
            rpc_endpoints=self.rpc_endpoints,
            default_timeout_ms=self.default_timeout_ms,
            backoff_base_ms=self.backoff_base_ms,
            backoff_cap_ms=self.backoff_cap_ms,
        )
        values.update(overrides)
        return StrategyDependencies(**values)
