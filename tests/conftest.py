"""Shared fixtures for contentsync tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture()
def base_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect all contentsync runtime files to a temporary directory.

    Patches ``contentsync.config.get_base_dir`` (and the re-imported reference
    in ``contentsync.cli``) so that nothing touches the real ``~/.contentsync/``.
    """
    fake_base = tmp_path / ".contentsync"
    fake_base.mkdir()
    (fake_base / "logs").mkdir()

    monkeypatch.setattr("contentsync.config.get_base_dir", lambda: fake_base)
    monkeypatch.setattr("contentsync.cli.get_base_dir", lambda: fake_base)

    return fake_base


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CONTENTSYNC_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("CONTENTSYNC_"):
            monkeypatch.delenv(key)
