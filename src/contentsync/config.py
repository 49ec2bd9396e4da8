"""Configuration management for the contentsync daemon."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_BASE_DIR_NAME = ".contentsync"
_CONFIG_FILE = "config.toml"
_LOG_DIR = "logs"
_DATA_DIR = "data"


def get_base_dir() -> Path:
    """Return the base directory for all contentsync runtime files (~/.contentsync/)."""
    return Path.home() / _BASE_DIR_NAME


# ---------------------------------------------------------------------------
# Config models
# ---------------------------------------------------------------------------


class DaemonConfig(BaseModel):
    """Settings that control the daemon process itself."""

    log_level: str = Field(default="info", description="Logging level")


class SalesforceConfig(BaseModel):
    """Salesforce Marketing Cloud installed-package credentials."""

    auth_url: str = Field(default="", description="Tenant auth base URL, e.g. https://<subdomain>.auth.marketingcloudapis.com")
    client_id: str = Field(default="", description="Installed package client ID")
    client_secret: SecretStr = Field(default=SecretStr(""), description="Installed package client secret")


class SyncConfig(BaseModel):
    """Settings that control synchronisation behaviour."""

    interval_minutes: int = Field(default=24 * 60, gt=0, description="Minutes between sync runs")
    run_on_start: bool = Field(default=False, description="Run once immediately when the scheduler starts")
    page_size: int = Field(default=50, gt=0, description="Page size requested from the query endpoint")
    max_concurrency: int | None = Field(
        default=None,
        gt=0,
        description="Maximum page requests in flight at once (unbounded when unset)",
    )
    max_failed_page_ratio: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Fail the run when the share of failed pages exceeds this ratio (never when unset)",
    )
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")


class StorageConfig(BaseModel):
    """Where synced content blocks are written."""

    backend: Literal["local", "s3"] = Field(default="local", description="Storage backend")
    local_dir: Path | None = Field(default=None, description="Directory for the local backend")
    bucket: str = Field(default="", description="S3 bucket name")
    path_prefix: str = Field(default="", description="S3 key prefix")
    endpoint_url: str | None = Field(default=None, description="Custom S3 endpoint (e.g. MinIO, LocalStack)")
    use_path_style: bool = Field(default=False, description="Use path-style S3 addressing")
    region: str | None = Field(default=None, description="AWS region")


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Values come from ``config.toml`` and can be overridden per field with
    ``CONTENTSYNC_<SECTION>__<FIELD>`` environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTENTSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
    salesforce: SalesforceConfig = Field(default_factory=SalesforceConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from the TOML file.
        return env_settings, init_settings

    # -- derived paths (not stored in TOML) --------------------------------

    @property
    def base_dir(self) -> Path:
        return get_base_dir()

    @property
    def config_path(self) -> Path:
        return self.base_dir / _CONFIG_FILE

    @property
    def log_dir(self) -> Path:
        return self.base_dir / _LOG_DIR

    @property
    def data_dir(self) -> Path:
        return self.storage.local_dir or self.base_dir / _DATA_DIR

    def is_salesforce_configured(self) -> bool:
        """Return True if Salesforce credentials are fully set."""
        return bool(
            self.salesforce.auth_url
            and self.salesforce.client_id
            and self.salesforce.client_secret.get_secret_value()
        )


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> AppConfig:
    """Read *path* (default ``~/.contentsync/config.toml``) and apply env overrides.

    A missing file is not an error: defaults plus environment are used. A file
    that is not valid TOML raises :class:`ValueError` naming the file.
    """
    path = path or get_base_dir() / _CONFIG_FILE
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raw = {}
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"{path}: {exc}") from exc
    return AppConfig(**raw)
