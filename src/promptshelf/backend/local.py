"""Local backend — filesystem store + SSH transport + desktop bridge."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from promptshelf.backend.desktop import DesktopBridge, parse_hotkey
from promptshelf.backend.files import PromptFiles
from promptshelf.backend.transport import SshTransport

if TYPE_CHECKING:
    from promptshelf.backend.base import MnemonicRecord, PromptEntry, SyncOutcome
    from promptshelf.config import AppSettings, RepositoryConfig

logger = logging.getLogger(__name__)


class LocalBackend:
    """Implements the ``Backend`` protocol on the local machine.

    Blocking filesystem calls run in a worker thread so the event loop
    (autosave timers, quick-insert) stays responsive.
    """

    def __init__(
        self,
        files: PromptFiles,
        transport: SshTransport | None = None,
        desktop: DesktopBridge | None = None,
    ) -> None:
        self.files = files
        self.transport = transport or SshTransport()
        self.desktop = desktop or DesktopBridge()

    @classmethod
    def from_settings(cls, settings: AppSettings) -> LocalBackend:
        return cls(
            PromptFiles(settings.config_dir),
            SshTransport(timeout=settings.ssh_timeout),
        )

    # ── Config ────────────────────────────────────────────────

    async def get_config(self) -> RepositoryConfig:
        return await asyncio.to_thread(self.files.get_config)

    async def save_config(self, config: RepositoryConfig) -> None:
        await asyncio.to_thread(self.files.save_config, config)

    async def get_config_path_str(self) -> str:
        return str(self.files.config_path.resolve())

    # ── Scanning ──────────────────────────────────────────────

    async def scan_prompts(self, root_folder: str) -> list[PromptEntry]:
        return await asyncio.to_thread(self.files.scan_prompts, root_folder)

    async def scan_folders(self, root_folder: str) -> list[str]:
        return await asyncio.to_thread(self.files.scan_folders, root_folder)

    # ── Mnemonics ─────────────────────────────────────────────

    async def get_mnemonic_for_file(self, file_path: str) -> str | None:
        return await asyncio.to_thread(self.files.get_mnemonic_for_file, file_path)

    async def set_mnemonic(self, file_path: str, mnemonic: str) -> None:
        await asyncio.to_thread(self.files.set_mnemonic, file_path, mnemonic)

    async def remove_mnemonic(self, file_path: str) -> None:
        await asyncio.to_thread(self.files.remove_mnemonic, file_path)

    async def find_by_mnemonic(self, mnemonic: str) -> str | None:
        return await asyncio.to_thread(self.files.find_by_mnemonic, mnemonic)

    async def get_all_mnemonics(self) -> list[MnemonicRecord]:
        return await asyncio.to_thread(self.files.get_all_mnemonics)

    # ── Prompt and folder CRUD ────────────────────────────────

    async def save_prompt(
        self,
        root_folder: str,
        category: str,
        title: str,
        content: str,
        original_path: str | None = None,
    ) -> str:
        return await asyncio.to_thread(
            self.files.save_prompt, root_folder, category, title, content, original_path
        )

    async def delete_prompt(self, file_path: str) -> None:
        await asyncio.to_thread(self.files.delete_prompt, file_path)

    async def create_file(self, folder: str) -> str:
        return await asyncio.to_thread(self.files.create_file, folder)

    async def create_folder(self, parent_folder: str) -> str:
        return await asyncio.to_thread(self.files.create_folder, parent_folder)

    async def rename_folder(self, old_path: str, new_name: str) -> str:
        return await asyncio.to_thread(self.files.rename_folder, old_path, new_name)

    async def delete_folder(self, folder_path: str) -> None:
        await asyncio.to_thread(self.files.delete_folder, folder_path)

    async def open_in_explorer(self, path: str) -> None:
        await self.desktop.open_in_explorer(path)

    # ── Desktop ───────────────────────────────────────────────

    async def copy_to_clipboard(self, text: str) -> None:
        await self.desktop.copy_to_clipboard(text)

    async def read_clipboard(self) -> str:
        return await self.desktop.read_clipboard()

    async def type_text(self, text: str) -> None:
        await self.desktop.type_text(text)

    async def type_text_simulate(self, text: str) -> None:
        await self.desktop.type_text_simulate(text)

    async def hide_popup(self) -> None:
        await self.desktop.hide_popup()

    async def update_hotkey(self, new_hotkey: str) -> None:
        parse_hotkey(new_hotkey)
        config = await self.get_config()
        config.hotkey = new_hotkey
        await self.save_config(config)
        logger.info("Hotkey set to %s", new_hotkey)

    async def set_autostart(self, enable: bool) -> None:
        await asyncio.to_thread(self.desktop.apply_autostart, enable)
        config = await self.get_config()
        config.autostart = enable
        await self.save_config(config)

    async def set_window_theme(self, theme: str) -> None:
        self.desktop.apply_theme(theme)

    # ── Remote sync ───────────────────────────────────────────

    async def sync_pull(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome:
        return await self.transport.sync_pull(local_folder, server, remote_path, port)

    async def sync_push(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome:
        return await self.transport.sync_push(local_folder, server, remote_path, port)

    async def test_ssh_connection(self, server: str, port: int) -> str:
        return await self.transport.test_ssh_connection(server, port)

    async def check_ssh_available(self) -> bool:
        return await self.transport.check_ssh_available()
