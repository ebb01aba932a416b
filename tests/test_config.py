"""Tests for settings loading and the repository config model."""

import pytest
from pathlib import Path

from promptshelf.config import (
    DEFAULT_HOTKEY,
    RemoteSyncConfig,
    RepositoryConfig,
    load_settings,
)

ENV_KEYS = [
    "PROMPTSHELF_CONFIG_DIR",
    "PROMPTSHELF_LOG_LEVEL",
    "PROMPTSHELF_AUTOSAVE_DELAY",
    "PROMPTSHELF_SETTLE_DELAY",
    "PROMPTSHELF_SSH_TIMEOUT",
]


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadSettings:
    def test_defaults(self, tmp_path: Path, clean_env):
        settings = load_settings(tmp_path / "missing.toml")
        assert settings.autosave_delay == 1.0
        assert settings.settle_delay == 0.1
        assert settings.preview_length == 50
        assert settings.ssh_timeout == 300
        assert settings.log_level == "INFO"
        assert settings.config_dir.name == "prompt-manager"

    def test_env_override(self, tmp_path: Path, clean_env, monkeypatch):
        monkeypatch.setenv("PROMPTSHELF_AUTOSAVE_DELAY", "0.25")
        monkeypatch.setenv("PROMPTSHELF_SSH_TIMEOUT", "60")
        monkeypatch.setenv("PROMPTSHELF_CONFIG_DIR", str(tmp_path / "cfg"))

        settings = load_settings(tmp_path / "missing.toml")
        assert settings.autosave_delay == 0.25
        assert settings.ssh_timeout == 60
        assert settings.config_dir == tmp_path / "cfg"

    def test_toml_file(self, tmp_path: Path, clean_env):
        toml_path = tmp_path / "promptshelf.toml"
        toml_path.write_text("""
log_level = "DEBUG"

[autosave]
delay = 2.5

[quick_insert]
settle_delay = 0.3
preview_length = 80

[sync]
timeout = 120
""")
        settings = load_settings(toml_path)
        assert settings.log_level == "DEBUG"
        assert settings.autosave_delay == 2.5
        assert settings.settle_delay == 0.3
        assert settings.preview_length == 80
        assert settings.ssh_timeout == 120

    def test_toml_found_in_cwd(self, tmp_path: Path, clean_env):
        (tmp_path / "promptshelf.toml").write_text("[autosave]\ndelay = 3.0\n")
        settings = load_settings()
        assert settings.autosave_delay == 3.0

    def test_env_overrides_toml(self, tmp_path: Path, clean_env, monkeypatch):
        toml_path = tmp_path / "promptshelf.toml"
        toml_path.write_text("[sync]\ntimeout = 120\n")
        monkeypatch.setenv("PROMPTSHELF_SSH_TIMEOUT", "30")

        settings = load_settings(toml_path)
        assert settings.ssh_timeout == 30


class TestRepositoryConfig:
    def test_legacy_key_round_trip(self):
        config = RepositoryConfig(
            root_folder="/p",
            theme="light",
            remote_sync=RemoteSyncConfig(enabled=True, server="me@host", remote_path="/srv/p"),
        )
        data = config.to_dict()
        assert data["prompts_folder"] == "/p"
        assert "root_folder" not in data
        assert RepositoryConfig.from_dict(data) == config

    def test_from_partial_dict(self):
        config = RepositoryConfig.from_dict({"prompts_folder": "/p"})
        assert config.root_folder == "/p"
        assert config.hotkey == DEFAULT_HOTKEY
        assert config.remote_sync.enabled is False
        assert config.remote_sync.port == 22

    def test_copy_is_deep(self):
        config = RepositoryConfig(root_folder="/p")
        snapshot = config.copy()
        snapshot.remote_sync.server = "changed"
        assert config.remote_sync.server == ""
