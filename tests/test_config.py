"""Tests for contentsync.config module."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from contentsync.config import (
    AppConfig,
    SalesforceConfig,
    StorageConfig,
    SyncConfig,
    load_config,
)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_sync_config_defaults():
    cfg = SyncConfig()
    assert cfg.interval_minutes == 1440
    assert cfg.run_on_start is False
    assert cfg.page_size == 50
    assert cfg.max_concurrency is None
    assert cfg.max_failed_page_ratio is None
    assert cfg.request_timeout == 10.0


def test_storage_config_defaults():
    cfg = StorageConfig()
    assert cfg.backend == "local"
    assert cfg.local_dir is None
    assert cfg.use_path_style is False


def test_app_config_defaults():
    cfg = AppConfig()
    assert cfg.daemon.log_level == "info"
    assert cfg.salesforce.client_secret.get_secret_value() == ""
    assert not cfg.is_salesforce_configured()


def test_sync_config_rejects_bad_values():
    with pytest.raises(ValidationError):
        SyncConfig(page_size=0)
    with pytest.raises(ValidationError):
        SyncConfig(max_concurrency=0)
    with pytest.raises(ValidationError):
        SyncConfig(max_failed_page_ratio=1.5)


# ---------------------------------------------------------------------------
# Derived paths
# ---------------------------------------------------------------------------


def test_paths_follow_base_dir(base_dir: Path):
    cfg = AppConfig()
    assert cfg.base_dir == base_dir
    assert cfg.config_path == base_dir / "config.toml"
    assert cfg.log_dir == base_dir / "logs"
    assert cfg.data_dir == base_dir / "data"


def test_data_dir_uses_local_dir(base_dir: Path, tmp_path: Path):
    cfg = AppConfig(storage=StorageConfig(local_dir=tmp_path / "out"))
    assert cfg.data_dir == tmp_path / "out"


def test_is_salesforce_configured():
    cfg = AppConfig(
        salesforce=SalesforceConfig(
            auth_url="https://auth.example.com",
            client_id="id",
            client_secret=SecretStr("secret"),
        )
    )
    assert cfg.is_salesforce_configured()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_load_missing_file_returns_defaults(base_dir: Path):
    cfg = load_config()
    assert cfg.sync.interval_minutes == 1440


def test_load_from_toml(base_dir: Path):
    (base_dir / "config.toml").write_text(
        "[salesforce]\n"
        'auth_url = "https://auth.example.com"\n'
        'client_id = "cid"\n'
        'client_secret = "csecret"\n'
        "\n"
        "[sync]\n"
        "interval_minutes = 60\n"
        "max_concurrency = 4\n"
        "\n"
        "[storage]\n"
        'backend = "s3"\n'
        'bucket = "my-bucket"\n'
    )
    cfg = load_config()
    assert cfg.salesforce.client_id == "cid"
    assert cfg.salesforce.client_secret.get_secret_value() == "csecret"
    assert cfg.sync.interval_minutes == 60
    assert cfg.sync.max_concurrency == 4
    assert cfg.storage.backend == "s3"
    assert cfg.is_salesforce_configured()


def test_load_explicit_path(tmp_path: Path):
    path = tmp_path / "custom.toml"
    path.write_text("[sync]\npage_size = 25\n")
    cfg = load_config(path)
    assert cfg.sync.page_size == 25


def test_env_overrides_toml(base_dir: Path, monkeypatch: pytest.MonkeyPatch):
    (base_dir / "config.toml").write_text('[salesforce]\nclient_id = "from-file"\nauth_url = "https://a"\n')
    monkeypatch.setenv("CONTENTSYNC_SALESFORCE__CLIENT_ID", "from-env")
    cfg = load_config()
    assert cfg.salesforce.client_id == "from-env"
    assert cfg.salesforce.auth_url == "https://a"


def test_env_without_file(base_dir: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CONTENTSYNC_SYNC__PAGE_SIZE", "7")
    cfg = load_config()
    assert cfg.sync.page_size == 7


def test_load_invalid_toml_names_the_file(tmp_path: Path):
    path = tmp_path / "broken.toml"
    path.write_text("[sync\npage_size = 25\n")
    with pytest.raises(ValueError, match="broken.toml"):
        load_config(path)
