"""Backend protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from promptshelf.config import RepositoryConfig

# Category of a prompt stored directly in the root folder
DEFAULT_CATEGORY = "默认"


class BackendError(RuntimeError):
    """A backend call was rejected. Carries one human-readable message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass
class PromptEntry:
    """One prompt file under the root folder."""

    id: str
    title: str
    content: str
    file_path: str
    category: str = DEFAULT_CATEGORY


@dataclass(frozen=True)
class MnemonicRecord:
    """Read-only snapshot used by quick-insert."""

    mnemonic: str
    title: str
    content: str


class SyncStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one pull or push, collapsed to a single message."""

    status: SyncStatus
    message: str

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SUCCESS


@runtime_checkable
class Backend(Protocol):
    """Storage, transport and desktop operations consumed by the session.

    Every method raises ``BackendError`` on rejection.
    """

    # ── Config ────────────────────────────────────────────────

    async def get_config(self) -> RepositoryConfig: ...

    async def save_config(self, config: RepositoryConfig) -> None:
        """Replace the persisted config wholesale."""
        ...

    async def get_config_path_str(self) -> str: ...

    # ── Scanning ──────────────────────────────────────────────

    async def scan_prompts(self, root_folder: str) -> list[PromptEntry]: ...

    async def scan_folders(self, root_folder: str) -> list[str]: ...

    # ── Mnemonics ─────────────────────────────────────────────

    async def get_mnemonic_for_file(self, file_path: str) -> str | None: ...

    async def set_mnemonic(self, file_path: str, mnemonic: str) -> None: ...

    async def remove_mnemonic(self, file_path: str) -> None: ...

    async def get_all_mnemonics(self) -> list[MnemonicRecord]: ...

    # ── Prompt and folder CRUD ────────────────────────────────

    async def save_prompt(
        self,
        root_folder: str,
        category: str,
        title: str,
        content: str,
        original_path: str | None = None,
    ) -> str:
        """Create, update or rename a prompt. Returns the resulting path."""
        ...

    async def delete_prompt(self, file_path: str) -> None: ...

    async def create_file(self, folder: str) -> str: ...

    async def create_folder(self, parent_folder: str) -> str: ...

    async def rename_folder(self, old_path: str, new_name: str) -> str: ...

    async def delete_folder(self, folder_path: str) -> None: ...

    async def open_in_explorer(self, path: str) -> None: ...

    # ── Desktop ───────────────────────────────────────────────

    async def copy_to_clipboard(self, text: str) -> None: ...

    async def read_clipboard(self) -> str: ...

    async def type_text(self, text: str) -> None: ...

    async def type_text_simulate(self, text: str) -> None: ...

    async def hide_popup(self) -> None: ...

    async def update_hotkey(self, new_hotkey: str) -> None: ...

    async def set_autostart(self, enable: bool) -> None: ...

    async def set_window_theme(self, theme: str) -> None: ...

    # ── Remote sync ───────────────────────────────────────────

    async def sync_pull(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome: ...

    async def sync_push(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome: ...

    async def test_ssh_connection(self, server: str, port: int) -> str: ...

    async def check_ssh_available(self) -> bool: ...
