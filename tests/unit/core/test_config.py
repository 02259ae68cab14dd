"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import HubConfig, parse_log_level
from core.errors import HubConfigError


def test_from_env_reads_roots(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve registry and root paths from environment."""
    monkeypatch.setenv("HUB_REGISTRY_FILE", "./catalog/registry.yml")
    monkeypatch.setenv("HUB_COLLECTIONS_ROOT", "./.tmp-collections")
    monkeypatch.setenv("HUB_OUTPUT_ROOT", "./.tmp-dist")

    config = HubConfig.from_env()

    assert config.registry_file.name == "registry.yml"
    assert config.collections_root.name == ".tmp-collections"
    assert config.output_root.name == ".tmp-dist"
    assert config.registry_file.is_absolute()


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset variables should fall back to documented defaults."""
    for variable in (
        "HUB_REGISTRY_FILE",
        "HUB_COLLECTIONS_ROOT",
        "HUB_OUTPUT_ROOT",
        "HUB_PACKER_COMMAND",
        "HUB_PRUNE_STALE_OUTPUT",
        "HUB_LOG_LEVEL",
    ):
        monkeypatch.delenv(variable, raising=False)

    config = HubConfig.from_env()

    assert config.collections_root.name == "collections"
    assert config.output_root.name == "dist"
    assert config.packer_command == "npx"
    assert config.prune_stale_output is True
    assert config.log_level == "INFO"


def test_from_env_parses_prune_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """Boolean flags should accept common false spellings."""
    monkeypatch.setenv("HUB_PRUNE_STALE_OUTPUT", "No")

    config = HubConfig.from_env()

    assert config.prune_stale_output is False


def test_from_env_raises_for_invalid_prune_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-boolean prune values."""
    monkeypatch.setenv("HUB_PRUNE_STALE_OUTPUT", "sometimes")

    with pytest.raises(HubConfigError):
        HubConfig.from_env()

    assert os.getenv("HUB_PRUNE_STALE_OUTPUT") == "sometimes"


def test_from_env_raises_for_blank_packer_command(monkeypatch: pytest.MonkeyPatch) -> None:
    """An empty packer command cannot launch the pinned packer."""
    monkeypatch.setenv("HUB_PACKER_COMMAND", "  ")

    with pytest.raises(HubConfigError):
        HubConfig.from_env()


def test_parse_log_level_normalizes_and_validates() -> None:
    """Log level names should be case-insensitive and validated."""
    assert parse_log_level("debug") == "DEBUG"
    with pytest.raises(HubConfigError):
        parse_log_level("chatty")
