"""Tests for env-driven configuration."""

from __future__ import annotations

from pathlib import Path

from ghafreeze.config import FreezeConfig


class TestFreezeConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GHA_FREEZE_WORKFLOW_DIR", raising=False)
        config = FreezeConfig()
        assert config.workflow_dir == Path(".github/workflows")
        assert config.backup_prefix == ".backup-"
        assert config.workflow_extensions == (".yml", ".yaml")
        assert config.api_url == "https://api.github.com"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GHA_FREEZE_WORKFLOW_DIR", "ci/workflows")
        monkeypatch.setenv("GHA_FREEZE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("GHA_FREEZE_REQUEST_TIMEOUT", "5")
        config = FreezeConfig()
        assert config.workflow_dir == Path("ci/workflows")
        assert config.log_level == "DEBUG"
        assert config.request_timeout == 5.0

    def test_explicit_beats_env(self, monkeypatch):
        monkeypatch.setenv("GHA_FREEZE_WORKFLOW_DIR", "ci/workflows")
        assert FreezeConfig(workflow_dir=Path("other")).workflow_dir == Path("other")

    def test_token_path_expands_home(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = FreezeConfig(token_path=Path("~/.config/gha-freeze/token"))
        assert config.resolved_token_path == tmp_path / ".config" / "gha-freeze" / "token"

    def test_unrelated_env_ignored(self, monkeypatch):
        monkeypatch.setenv("GHA_FREEZE_TOKEN", "ghp_abc")
        assert not hasattr(FreezeConfig(), "token")
