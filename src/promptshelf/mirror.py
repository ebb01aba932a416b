"""Repository mirror — in-memory cache of config, entries and folder tree.

All store-mutating operations go through ``mutate()``: one lock serializes
the backend call and the reload that follows it, so one operation's reload
can never interleave with another's write. The work runs in its own task
and is shielded, so a caller that goes away (dismissed dialog, cancelled
coroutine) does not drop the result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from promptshelf.config import RepositoryConfig
from promptshelf.tree import FolderTree, build_folder_tree

if TYPE_CHECKING:
    from promptshelf.backend.base import Backend, PromptEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepositoryMirror:
    """Source of truth for the UI between reloads."""

    def __init__(self, backend: Backend, config: RepositoryConfig | None = None) -> None:
        self.backend = backend
        self.config = config or RepositoryConfig()
        self.entries: list[PromptEntry] = []
        self.folders: list[str] = []
        self.tree: FolderTree = build_folder_tree(self.config.root_folder, [], [])
        self._by_id: dict[str, PromptEntry] = {}
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self.reload_count = 0

    @property
    def root_folder(self) -> str:
        return self.config.root_folder

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ── Config ────────────────────────────────────────────────

    async def load_config(self) -> RepositoryConfig:
        self.config = await self.backend.get_config()
        return self.config

    async def replace_config(self, config: RepositoryConfig) -> None:
        """Persist a full copy; no partial patches."""
        snapshot = config.copy()
        await self.backend.save_config(snapshot)
        self.config = snapshot

    # ── Loading ───────────────────────────────────────────────

    async def _reload(self) -> None:
        root = self.config.root_folder
        if not root:
            entries, folders = [], []
        else:
            entries, folders = await asyncio.gather(
                self.backend.scan_prompts(root),
                self.backend.scan_folders(root),
            )
        self.entries = list(entries)
        self.folders = list(folders)
        self._by_id = {e.id: e for e in self.entries}
        self.tree = build_folder_tree(root, self.folders, self.entries)
        self.reload_count += 1
        logger.debug("Reloaded %d prompts, %d folders", len(self.entries), len(self.folders))

    async def reload(self) -> None:
        async with self._lock:
            await self._reload()

    async def mutate(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        reload: bool | Callable[[T], bool] = True,
    ) -> T:
        """Run one store mutation (and its reload) at the sequence point."""

        async def _run() -> T:
            async with self._lock:
                result = await operation()
                should_reload = reload(result) if callable(reload) else reload
                if should_reload:
                    await self._reload()
                return result

        task = asyncio.ensure_future(_run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait for shielded mutations whose callers have gone away."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ── Lookup and local patching ─────────────────────────────

    def find_by_path(self, file_path: str) -> PromptEntry | None:
        return self.tree.entry(file_path)

    def find_by_id(self, entry_id: str) -> PromptEntry | None:
        return self._by_id.get(entry_id)

    def patch_entry(self, entry: PromptEntry, *, title: str, content: str, file_path: str) -> None:
        """Apply a same-path save without reloading."""
        entry.title = title
        entry.content = content
        entry.file_path = file_path
