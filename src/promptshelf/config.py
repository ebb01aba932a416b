"""Configuration: backend-owned repository config and process settings.

``RepositoryConfig`` is owned by the storage backend and persisted as JSON;
the session keeps a full copy and replaces it wholesale. ``AppSettings`` is
loaded from environment variables and an optional promptshelf.toml.
"""

from __future__ import annotations

import copy
import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "prompt-manager"
_SETTINGS_FILENAME = "promptshelf.toml"

DEFAULT_HOTKEY = "Alt+Space"
DEFAULT_THEME = "dark"
DEFAULT_SSH_PORT = 22


@dataclass
class RemoteSyncConfig:
    """Remote copy reachable over SSH."""

    enabled: bool = False
    server: str = ""
    remote_path: str = ""
    port: int = DEFAULT_SSH_PORT


@dataclass
class RepositoryConfig:
    """Backend-owned repository configuration."""

    root_folder: str = ""
    hotkey: str = DEFAULT_HOTKEY
    theme: str = DEFAULT_THEME
    autostart: bool = False
    remote_sync: RemoteSyncConfig = field(default_factory=RemoteSyncConfig)

    def copy(self) -> RepositoryConfig:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        # On-disk key names follow the legacy config.json layout.
        return {
            "prompts_folder": self.root_folder,
            "hotkey": self.hotkey,
            "theme": self.theme,
            "autostart": self.autostart,
            "remote_sync": {
                "enabled": self.remote_sync.enabled,
                "server": self.remote_sync.server,
                "remote_path": self.remote_sync.remote_path,
                "port": self.remote_sync.port,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> RepositoryConfig:
        sync_data = data.get("remote_sync") or {}
        return cls(
            root_folder=data.get("prompts_folder", data.get("root_folder", "")) or "",
            hotkey=data.get("hotkey") or DEFAULT_HOTKEY,
            theme=data.get("theme") or DEFAULT_THEME,
            autostart=bool(data.get("autostart", False)),
            remote_sync=RemoteSyncConfig(
                enabled=bool(sync_data.get("enabled", False)),
                server=sync_data.get("server", "") or "",
                remote_path=sync_data.get("remote_path", "") or "",
                port=int(sync_data.get("port") or DEFAULT_SSH_PORT),
            ),
        )


@dataclass
class AppSettings:
    """Process-level settings."""

    config_dir: Path = _DEFAULT_CONFIG_DIR
    log_level: str = "INFO"
    autosave_delay: float = 1.0
    settle_delay: float = 0.1
    preview_length: int = 50
    ssh_timeout: int = 300


def load_settings(settings_path: Path | None = None) -> AppSettings:
    """Load settings from environment variables and optional promptshelf.toml.

    Priority: environment variables > promptshelf.toml > defaults.
    """
    file_data: dict = {}
    if settings_path and settings_path.exists():
        file_data = tomllib.loads(settings_path.read_text())
    else:
        # Search current dir and the default config dir
        for candidate in [Path.cwd() / _SETTINGS_FILENAME, _DEFAULT_CONFIG_DIR / _SETTINGS_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    autosave_data = file_data.get("autosave", {})
    insert_data = file_data.get("quick_insert", {})
    sync_data = file_data.get("sync", {})

    return AppSettings(
        config_dir=Path(
            os.getenv("PROMPTSHELF_CONFIG_DIR", file_data.get("config_dir", str(_DEFAULT_CONFIG_DIR)))
        ).expanduser(),
        log_level=os.getenv("PROMPTSHELF_LOG_LEVEL", file_data.get("log_level", "INFO")),
        autosave_delay=float(
            os.getenv("PROMPTSHELF_AUTOSAVE_DELAY", autosave_data.get("delay", 1.0))
        ),
        settle_delay=float(
            os.getenv("PROMPTSHELF_SETTLE_DELAY", insert_data.get("settle_delay", 0.1))
        ),
        preview_length=int(insert_data.get("preview_length", 50)),
        ssh_timeout=int(os.getenv("PROMPTSHELF_SSH_TIMEOUT", sync_data.get("timeout", 300))),
    )
