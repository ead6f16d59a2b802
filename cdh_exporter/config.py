"""Exporter configuration.

Settings are built once at startup and handed to every component's
constructor. Values come from, in order of precedence:

1. Command line flags (see cdh_exporter.main)
2. Environment variables prefixed with ``CDH_EXPORTER_``
3. A ``.env`` file in the working directory
4. The defaults below

Usage:
    from cdh_exporter.config import Settings

    settings = Settings(cdh_address="cm.example.com:7180")
    settings.components  # ["hbase", "hdfs", "zookeeper", "yarn"]
"""

import json
from typing import Annotated

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

LOG_LEVELS = ("debug", "info", "warn", "warning", "error")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CDH_EXPORTER_",
        env_file=".env",
        extra="ignore",
    )

    # Web
    listen_address: str = ":9232"
    telemetry_path: str = "/metrics"

    # Upstream Cloudera Manager
    cdh_address: str = "1.1.1.1:17180"
    components: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["hbase", "hdfs", "zookeeper", "yarn"]
    )
    user_account: SecretStr = SecretStr("Basic XXXXXXXXXXXXXXXXXXX")
    api_version: str = "v33"
    cluster_name: str = "Cluster 1"
    accept_language: str = "zh-CN,zh;q=0.9"

    # Scrape behaviour
    request_timeout_seconds: float = Field(30.0, gt=0)
    scrape_lock_timeout_seconds: float = 60.0
    fetch_concurrency: int = Field(1, ge=1)
    timeseries_window_minutes: int = Field(2, ge=1)

    # Logging
    log_level: str = "info"

    @field_validator("components", mode="before")
    @classmethod
    def _split_components(cls, value):
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                value = json.loads(stripped)
            else:
                value = stripped.split(",")
        return value

    @field_validator("components")
    @classmethod
    def _require_components(cls, value: list[str]) -> list[str]:
        components = [c.strip() for c in value if c and c.strip()]
        if not components:
            raise ValueError("at least one component must be monitored")
        return components

    @field_validator("telemetry_path")
    @classmethod
    def _absolute_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("telemetry path must start with '/'")
        if value == "/":
            raise ValueError("telemetry path '/' is taken by the landing page")
        return value

    @field_validator("listen_address")
    @classmethod
    def _valid_listen_address(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"listen address must be [host]:port, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return "warning" if level == "warn" else level

    @property
    def listen_host(self) -> str:
        """Host part of listen_address, all interfaces when omitted."""
        host = self.listen_address.rpartition(":")[0]
        return host.strip("[]") or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        return int(self.listen_address.rpartition(":")[2])

    @property
    def credential(self) -> str:
        """Pre-encoded Authorization header value."""
        return self.user_account.get_secret_value()
