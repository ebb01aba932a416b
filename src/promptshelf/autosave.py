"""Autosave controller — debounce timer + save state machine.

    Idle --edit--> Dirty --timer--> Saving --> Idle | Error

Edits re-arm a cancellable debounce task tagged with a generation number.
Saves are serialized: a timer that fires while an earlier save is still in
flight waits for it, then saves against the path that save produced.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from promptshelf.backend.base import DEFAULT_CATEGORY, BackendError
from promptshelf.notify import Refusal

if TYPE_CHECKING:
    from promptshelf.backend.base import PromptEntry
    from promptshelf.mirror import RepositoryMirror
    from promptshelf.notify import Notifier

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY = 1.0


class SaveState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    ERROR = "error"


def same_path(a: str, b: str) -> bool:
    return a.replace("\\", "/") == b.replace("\\", "/")


class AutosaveController:
    """Owns the editor buffer for the selected entry and persists it."""

    def __init__(
        self,
        mirror: RepositoryMirror,
        notifier: Notifier,
        *,
        delay: float = AUTOSAVE_DELAY,
    ) -> None:
        self.mirror = mirror
        self.notifier = notifier
        self.delay = delay
        self.selected: PromptEntry | None = None
        self.title = ""
        self.content = ""
        self.state = SaveState.IDLE
        self.last_error: str | None = None
        self._generation = 0
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def create_mode(self) -> bool:
        return self.selected is None

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ── Editing ───────────────────────────────────────────────

    def edit(self, *, title: str | None = None, content: str | None = None) -> None:
        """Record an edit. Arms autosave only when an entry is selected."""
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        self._generation += 1
        if self.selected is None:
            return
        self._cancel_timer()
        self.state = SaveState.DIRTY
        self._timer = asyncio.create_task(self._debounce(self._generation))

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounce(self, generation: int) -> None:
        await asyncio.sleep(self.delay)
        if generation != self._generation:
            return
        # Detach: from here on the save is not cancellable by later edits.
        self._timer = None
        task = asyncio.create_task(self._save(silent=True, generation=generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    # ── Saving ────────────────────────────────────────────────

    async def save_now(self) -> str | None:
        """Explicit save: skip the debounce and always report the result."""
        self._cancel_timer()
        return await self._save(silent=False, generation=self._generation)

    async def _save(self, *, silent: bool, generation: int) -> str | None:
        async with self._save_lock:
            try:
                return await self._save_locked(silent=silent, generation=generation)
            except Refusal as e:
                if silent:
                    logger.debug("Autosave skipped: %s", e)
                else:
                    self.notifier.notify(str(e), level="error")
                return None

    async def _save_locked(self, *, silent: bool, generation: int) -> str | None:
        entry = self.selected
        title = self.title.strip()
        content = self.content
        root = self.mirror.root_folder
        if not title:
            raise Refusal("Title is required")
        if not root:
            raise Refusal("Choose a prompt folder first")

        original = entry.file_path if entry else None
        category = entry.category if entry else DEFAULT_CATEGORY
        self.state = SaveState.SAVING

        try:
            new_path = await self.mirror.mutate(
                lambda: self.mirror.backend.save_prompt(root, category, title, content, original),
                reload=lambda path: original is None or not same_path(path, original),
            )
        except BackendError as e:
            self.state = SaveState.ERROR
            self.last_error = e.message
            if silent:
                logger.warning("Autosave failed: %s", e)
            else:
                self.notifier.notify(f"Save failed: {e}", level="error")
            return None
        except Exception as e:
            self.state = SaveState.ERROR
            self.last_error = str(e) or type(e).__name__
            logger.exception("Save of %s crashed", original or title)
            raise

        stale = generation != self._generation
        if original is None or not same_path(new_path, original):
            # Renamed or newly created: the mirror was reloaded, re-resolve.
            if self.selected is entry:
                self.selected = self.mirror.find_by_path(new_path)
                if self.selected is None:
                    logger.warning("Saved prompt not found after reload: %s", new_path)
        elif entry is not None and not stale:
            self.mirror.patch_entry(entry, title=title, content=content, file_path=new_path)

        self.last_error = None
        self.state = SaveState.DIRTY if stale else SaveState.IDLE
        if silent:
            logger.debug("Autosaved %s", new_path)
        else:
            self.notifier.notify("Saved")
        return new_path

    # ── Selection ─────────────────────────────────────────────

    async def flush(self) -> None:
        """Save a pending edit now and wait for in-flight saves."""
        if self.timer_armed:
            self._cancel_timer()
            await self._save(silent=True, generation=self._generation)
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def select(self, entry: PromptEntry) -> None:
        await self.flush()
        self.selected = entry
        self.title = entry.title
        self.content = entry.content
        self._generation += 1
        self.state = SaveState.IDLE

    async def enter_create_mode(self) -> None:
        await self.flush()
        self.selected = None
        self.title = ""
        self.content = ""
        self._generation += 1
        self.state = SaveState.IDLE

    def rebind(self) -> None:
        """After a reload, point the selection at the fresh entry object."""
        if self.selected is None:
            return
        fresh = self.mirror.find_by_path(self.selected.file_path)
        if fresh is None:
            logger.info("Selected prompt disappeared: %s", self.selected.file_path)
            self.forget()
        else:
            self.selected = fresh

    def forget(self, entry: PromptEntry | None = None) -> None:
        """Drop the selection (entry deleted elsewhere) without saving."""
        if entry is None or self.selected is entry:
            self._cancel_timer()
            self.selected = None
            self.title = ""
            self.content = ""
            self._generation += 1
            self.state = SaveState.IDLE

    async def close(self) -> None:
        await self.flush()
        self._cancel_timer()
