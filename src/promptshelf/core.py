"""PromptShelf session — the one object that owns all client-side state.

Responsibilities:
1. Own the repository mirror, expand state and the three controllers
2. CRUD commands — each through the mirror's mutation sequence point
3. Selection continuity across reloads (rebind by path)
4. Settings — hotkey, theme, autostart, remote sync; config replaced wholesale
5. Surface explicit-operation results through the notifier
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from promptshelf.autosave import AutosaveController
from promptshelf.backend.base import BackendError
from promptshelf.config import AppSettings, RemoteSyncConfig
from promptshelf.mirror import RepositoryMirror
from promptshelf.notify import LogNotifier, Refusal
from promptshelf.quick_insert import QuickInsertEngine
from promptshelf.sync import SyncDirection, SyncOrchestrator
from promptshelf.tree import ExpandState, TreeRow, render_tree

if TYPE_CHECKING:
    from promptshelf.backend.base import Backend, PromptEntry, SyncOutcome
    from promptshelf.notify import Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEP = re.compile(r"[/\\]")


def _basename(path: str) -> str:
    parts = [p for p in _SEP.split(path) if p]
    return parts[-1] if parts else path


def _reparent(path: str, old_prefix: str, new_prefix: str | None) -> str | None:
    """Map ``path`` from under ``old_prefix`` to ``new_prefix``; None if unrelated."""
    if path == old_prefix:
        return new_prefix
    if path.startswith(old_prefix) and path[len(old_prefix)] in "/\\":
        return None if new_prefix is None else new_prefix + path[len(old_prefix):]
    return None


class PromptShelf:
    """Client session: construct, ``start()``, use, ``stop()``."""

    def __init__(
        self,
        backend: Backend,
        settings: AppSettings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self.backend = backend
        self.notifier = notifier or LogNotifier()
        self.mirror = RepositoryMirror(backend)
        self.expand_state = ExpandState()
        self.autosave = AutosaveController(
            self.mirror, self.notifier, delay=self.settings.autosave_delay
        )
        self.quick_insert = QuickInsertEngine(
            backend,
            settle_delay=self.settings.settle_delay,
            preview_length=self.settings.preview_length,
        )
        self.sync = SyncOrchestrator(self.mirror, self.notifier)
        self.mnemonic = ""

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Load config and prompts, then open in create mode."""
        await self.mirror.load_config()
        try:
            await self.mirror.reload()
        except BackendError as e:
            self.notifier.notify(f"Load failed: {e}", level="error")
        await self.enter_create_mode()
        logger.info(
            "Session started (root=%s, %d prompts)",
            self.mirror.root_folder or "<none>",
            len(self.mirror.entries),
        )

    async def stop(self) -> None:
        """Flush pending edits and let outstanding mutations settle."""
        await self.autosave.close()
        await self.mirror.drain()

    # ── Tree ──────────────────────────────────────────────────

    def rows(self, *, expand_all: bool = False) -> list[TreeRow]:
        return list(render_tree(self.mirror.tree, self.expand_state, expand_all=expand_all))

    def toggle_folder(self, path: str) -> bool:
        return self.expand_state.toggle(path)

    # ── Selection & editing ───────────────────────────────────

    @property
    def selected(self) -> PromptEntry | None:
        return self.autosave.selected

    async def select(self, entry_id: str) -> PromptEntry | None:
        entry = self.mirror.find_by_id(entry_id)
        if entry is None:
            return None
        await self.autosave.select(entry)
        await self._load_mnemonic(entry.file_path)
        return entry

    async def select_path(self, file_path: str) -> PromptEntry | None:
        entry = self.mirror.find_by_path(file_path)
        if entry is None:
            return None
        return await self.select(entry.id)

    async def enter_create_mode(self) -> None:
        await self.autosave.enter_create_mode()
        self.mnemonic = ""

    def edit(self, *, title: str | None = None, content: str | None = None) -> None:
        self.autosave.edit(title=title, content=content)

    async def save(self) -> str | None:
        """Explicit save (Ctrl+S / Save button)."""
        return await self.autosave.save_now()

    # ── Mnemonics ─────────────────────────────────────────────

    async def _load_mnemonic(self, file_path: str) -> None:
        try:
            self.mnemonic = await self.backend.get_mnemonic_for_file(file_path) or ""
        except BackendError as e:
            logger.warning("Failed to load mnemonic for %s: %s", file_path, e)
            self.mnemonic = ""

    async def save_mnemonic(self, text: str) -> bool:
        """Bind (or with empty text, unbind) the selected entry's mnemonic."""
        # A pending rename must land first so the binding follows the new path.
        await self.autosave.flush()
        entry = self.selected
        if entry is None:
            return False
        mnemonic = text.strip()

        async def _apply() -> None:
            if mnemonic:
                await self.backend.set_mnemonic(entry.file_path, mnemonic)
            else:
                await self.backend.remove_mnemonic(entry.file_path)

        try:
            await self.mirror.mutate(_apply, reload=False)
        except BackendError as e:
            self.notifier.notify(f"Failed to save mnemonic: {e}", level="error")
            return False
        self.mnemonic = mnemonic.lower()
        return True

    # ── Commands ──────────────────────────────────────────────

    async def _command(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        done: str,
        failed: str,
    ) -> T | None:
        try:
            result = await self.mirror.mutate(operation)
        except BackendError as e:
            self.notifier.notify(f"{failed}: {e}", level="error")
            return None
        self.autosave.rebind()
        self.notifier.notify(done)
        return result

    def _require_root(self) -> str:
        root = self.mirror.root_folder
        if not root:
            raise Refusal("Choose a prompt folder first")
        return root

    def _refuse(self, e: Refusal) -> None:
        self.notifier.notify(str(e), level="error")

    async def choose_root(self, folder: str) -> bool:
        """Persist a new root folder and load it."""
        config = self.mirror.config.copy()
        config.root_folder = folder
        await self.autosave.flush()
        try:
            await self.mirror.mutate(lambda: self.mirror.replace_config(config))
        except BackendError as e:
            self.notifier.notify(f"Load failed: {e}", level="error")
            return False
        self.autosave.rebind()
        self.notifier.notify("Loaded")
        return True

    async def create_file(self, folder: str | None = None) -> PromptEntry | None:
        try:
            target = folder or self._require_root()
        except Refusal as e:
            self._refuse(e)
            return None
        new_path = await self._command(
            lambda: self.backend.create_file(target), done="Created", failed="Create failed"
        )
        if new_path is None:
            return None
        return await self.select_path(new_path)

    async def create_folder(self, parent: str | None = None) -> str | None:
        try:
            target = parent or self._require_root()
        except Refusal as e:
            self._refuse(e)
            return None
        return await self._command(
            lambda: self.backend.create_folder(target),
            done="Folder created",
            failed="Create failed",
        )

    async def rename_folder(self, path: str, new_name: str) -> str | None:
        new_name = new_name.strip()
        if not new_name or new_name == _basename(path):
            return None
        await self.autosave.flush()
        selected_path = self.selected.file_path if self.selected else None

        new_path = await self._command(
            lambda: self.backend.rename_folder(path, new_name),
            done="Renamed",
            failed="Rename failed",
        )
        if new_path is None:
            return None
        self.expand_state.rename_prefix(path, new_path)
        if selected_path:
            moved = _reparent(selected_path, path, new_path)
            if moved:
                await self.select_path(moved)
        return new_path

    async def delete_folder(self, path: str) -> bool:
        if self.selected and _reparent(self.selected.file_path, path, path):
            self.autosave.forget()
        await self.autosave.flush()
        try:
            await self.mirror.mutate(lambda: self.backend.delete_folder(path))
        except BackendError as e:
            self.notifier.notify(f"Delete failed: {e}", level="error")
            return False
        self.autosave.rebind()
        self.expand_state.collapse(path)
        self.notifier.notify("Folder deleted")
        return True

    async def delete_entry(self, entry_id: str) -> bool:
        entry = self.mirror.find_by_id(entry_id)
        if entry is None:
            return False
        # Cancel any pending autosave first so it cannot recreate the file.
        self.autosave.forget(entry)
        if self.selected is None:
            self.mnemonic = ""
        try:
            await self.mirror.mutate(lambda: self.backend.delete_prompt(entry.file_path))
        except BackendError as e:
            self.notifier.notify(f"Delete failed: {e}", level="error")
            return False
        self.autosave.rebind()
        self.notifier.notify("Deleted")
        return True

    async def open_in_explorer(self, path: str) -> None:
        try:
            await self.backend.open_in_explorer(path)
        except BackendError as e:
            self.notifier.notify(f"Failed to open: {e}", level="error")

    async def copy_current(self) -> bool:
        content = self.autosave.content
        try:
            if not content:
                raise Refusal("Nothing to copy")
            await self.backend.copy_to_clipboard(content)
        except Refusal as e:
            self._refuse(e)
            return False
        except BackendError as e:
            self.notifier.notify(f"Copy failed: {e}", level="error")
            return False
        self.notifier.notify("Copied")
        return True

    # ── Settings ──────────────────────────────────────────────

    async def update_settings(
        self,
        *,
        hotkey: str,
        theme: str,
        autostart: bool,
        remote_sync: RemoteSyncConfig,
    ) -> bool:
        hotkey = hotkey.strip()
        if not hotkey:
            self.notifier.notify("Hotkey must not be empty", level="error")
            return False

        config = self.mirror.config.copy()

        async def _apply() -> None:
            if hotkey != config.hotkey:
                await self.backend.update_hotkey(hotkey)
                config.hotkey = hotkey
            if theme != config.theme:
                await self.backend.set_window_theme(theme)
                config.theme = theme
            if autostart != config.autostart:
                await self.backend.set_autostart(autostart)
                config.autostart = autostart
            config.remote_sync = RemoteSyncConfig(
                enabled=remote_sync.enabled,
                server=remote_sync.server.strip(),
                remote_path=remote_sync.remote_path.strip(),
                port=remote_sync.port or 22,
            )
            await self.mirror.replace_config(config)

        try:
            await self.mirror.mutate(_apply, reload=False)
        except BackendError as e:
            self.notifier.notify(f"Settings failed: {e}", level="error")
            return False
        self.notifier.notify("Settings saved")
        return True

    async def config_path(self) -> str:
        return await self.backend.get_config_path_str()

    # ── Sync ──────────────────────────────────────────────────

    async def run_sync(self, direction: SyncDirection | str) -> SyncOutcome | None:
        await self.autosave.flush()
        outcome = await self.sync.run(direction)
        if outcome is not None and outcome.ok:
            self.autosave.rebind()
        return outcome
