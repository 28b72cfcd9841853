from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import StrategyConfig


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("TCR_DB_PATH", "tcr.db")
    log_level: str = os.getenv("TCR_LOG_LEVEL", "INFO")
    topology: str = os.getenv("TCR_TOPOLOGY", "ec2")

    # Inventory filter
    tag_name: str | None = os.getenv("TCR_TAG_NAME")
    tag_value: str | None = os.getenv("TCR_TAG_VALUE")
    app_prefix: str = os.getenv("TCR_APP_PREFIX", "app")
    ip_type: str = os.getenv("TCR_IP_TYPE", "private")
    poll_interval_ms: int = _env_int("TCR_POLL_INTERVAL_MS", 5000)
    # Comma-separated addresses; when set, EC2 is not queried.
    static_addresses: str | None = os.getenv("TCR_STATIC_ADDRESSES")

    # AWS
    aws_region: str | None = os.getenv("TCR_AWS_REGION")
    metadata_url: str = os.getenv("TCR_METADATA_URL", "http://169.254.169.254")
    metadata_timeout_s: float = _env_float("TCR_METADATA_TIMEOUT_S", 2.0)

    # Peer transport
    peer_port: int = _env_int("TCR_PEER_PORT", 4000)
    peer_health_path: str = os.getenv("TCR_PEER_HEALTH_PATH", "/health")
    peer_timeout_s: float = _env_float("TCR_PEER_TIMEOUT_S", 2.0)

    # Start pollers together with the HTTP app.
    autostart: bool = _env_bool("TCR_AUTOSTART", True)

    def static_address_list(self) -> list[str]:
        return [a.strip() for a in (self.static_addresses or "").split(",") if a.strip()]

    def strategy_config(self) -> StrategyConfig:
        """Build the per-topology configuration from the environment.

        An unset TCR_TAG_VALUE leaves the tag value to its default provider
        (the tag value of the instance this process runs on).
        """
        from .config import StrategyConfig

        return StrategyConfig(
            tag_name=self.tag_name,
            tag_value=self.tag_value,
            app_prefix=self.app_prefix,
            ip_type=self.ip_type,
            polling_interval_ms=self.poll_interval_ms,
        )


settings = Settings()
