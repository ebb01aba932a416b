"""Mnemonic quick-insert: load, filter, select and insert a prompt elsewhere.

Rows shown to the user carry escaped, truncated previews. The payload that
gets inserted is always looked up by row index in the unescaped record list.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import frontmatter

from promptshelf.backend.base import BackendError

if TYPE_CHECKING:
    from promptshelf.backend.base import Backend, MnemonicRecord

logger = logging.getLogger(__name__)

SETTLE_DELAY = 0.1
PREVIEW_LENGTH = 50


class InsertMode(str, Enum):
    PASTE = "paste"  # clipboard + paste chord
    SIMULATE = "simulate"  # keystroke by keystroke


@dataclass(frozen=True)
class QuickInsertRow:
    """One display row. All text fields are markup-escaped."""

    index: int
    mnemonic: str
    title: str
    preview: str
    selected: bool


def matches(record: MnemonicRecord, query: str) -> bool:
    q = query.lower()
    return q in record.mnemonic.lower() or q in record.title.lower() or q in record.content.lower()


def preview_text(content: str, length: int = PREVIEW_LENGTH) -> str:
    """Body excerpt for display, skipping a YAML front matter header."""
    try:
        body = frontmatter.loads(content).content
    except Exception:
        body = content
    body = " ".join(body.split())
    if len(body) > length:
        return body[:length] + "…"
    return body


class QuickInsertEngine:
    """State behind the quick-insert surface."""

    def __init__(
        self,
        backend: Backend,
        *,
        settle_delay: float = SETTLE_DELAY,
        preview_length: int = PREVIEW_LENGTH,
        mode: InsertMode = InsertMode.PASTE,
    ) -> None:
        self.backend = backend
        self.settle_delay = settle_delay
        self.preview_length = preview_length
        self.mode = mode
        self.records: list[MnemonicRecord] = []
        self.filtered: list[MnemonicRecord] = []
        self.query = ""
        self.selected_index: int | None = None
        self.visible = False

    # ── Loading ───────────────────────────────────────────────

    async def load(self) -> None:
        """Reload records and reset filter and selection."""
        try:
            records = await self.backend.get_all_mnemonics()
        except BackendError as e:
            logger.error("Failed to load mnemonics: %s", e)
            records = []
        self.records = list(records)
        self.query = ""
        self.filtered = list(self.records)
        self.selected_index = 0 if self.filtered else None

    async def activate(self) -> None:
        self.visible = True
        await self.load()

    async def on_focus(self) -> None:
        """The surface regained focus; edits may have happened meanwhile."""
        self.visible = True
        await self.load()

    async def on_blur(self) -> None:
        await self.dismiss()

    async def dismiss(self) -> None:
        self.visible = False
        try:
            await self.backend.hide_popup()
        except BackendError as e:
            logger.warning("hide_popup failed: %s", e)

    # ── Filtering and selection ───────────────────────────────

    def set_query(self, query: str) -> None:
        self.query = query
        self.filtered = [r for r in self.records if matches(r, query)]
        self.selected_index = 0 if self.filtered else None

    def move(self, delta: int) -> None:
        if not self.filtered:
            self.selected_index = None
            return
        current = self.selected_index or 0
        self.selected_index = max(0, min(current + delta, len(self.filtered) - 1))

    @property
    def selected(self) -> MnemonicRecord | None:
        if self.selected_index is None:
            return None
        return self.filtered[self.selected_index]

    def content_at(self, index: int) -> str:
        return self.filtered[index].content

    def rows(self) -> list[QuickInsertRow]:
        return [
            QuickInsertRow(
                index=i,
                mnemonic=html.escape(r.mnemonic),
                title=html.escape(r.title),
                preview=html.escape(preview_text(r.content, self.preview_length)),
                selected=i == self.selected_index,
            )
            for i, r in enumerate(self.filtered)
        ]

    def toggle_mode(self) -> InsertMode:
        self.mode = InsertMode.SIMULATE if self.mode is InsertMode.PASTE else InsertMode.PASTE
        return self.mode

    # ── Keyboard ──────────────────────────────────────────────

    async def handle_key(self, key: str) -> bool:
        """Dispatch one key. Returns True if the key was consumed."""
        if key in ("Down", "ArrowDown"):
            self.move(1)
        elif key in ("Up", "ArrowUp"):
            self.move(-1)
        elif key == "Enter":
            await self.commit()
        elif key == "Escape":
            await self.dismiss()
        else:
            return False
        return True

    # ── Commit ────────────────────────────────────────────────

    async def commit(self) -> bool:
        if self.selected_index is None:
            return False
        return await self.commit_index(self.selected_index)

    async def commit_index(self, index: int) -> bool:
        if not 0 <= index < len(self.filtered):
            return False
        content = self.content_at(index)
        if not content:
            return False
        return await self.insert(content, self.mode)

    async def insert(self, content: str, mode: InsertMode) -> bool:
        """Hide, let focus return to the previous window, then insert."""
        try:
            await self.dismiss()
            await asyncio.sleep(self.settle_delay)
            if mode is InsertMode.SIMULATE:
                await self.backend.type_text_simulate(content)
            else:
                await self.backend.type_text(content)
        except BackendError as e:
            logger.error("Insert failed: %s", e)
            return False
        return True

    async def paste_clipboard(self) -> bool:
        """Type the current clipboard text into the previous window."""
        try:
            text = await self.backend.read_clipboard()
        except BackendError as e:
            logger.error("Failed to read clipboard: %s", e)
            return False
        if not text:
            return False
        return await self.insert(text, InsertMode.SIMULATE)
