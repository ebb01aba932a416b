"""Desktop integration: clipboard, text insertion, popup and autostart hooks.

Clipboard and keystroke injection go through whichever platform tool is on
PATH (wl-clipboard, xclip, pbcopy/pbpaste, xdotool, osascript).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import shutil
import subprocess
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from promptshelf.backend.base import BackendError

logger = logging.getLogger(__name__)

# Callback invoked when the quick-insert surface should disappear
HideHook = Callable[[], "Awaitable[None] | None"]
ThemeHook = Callable[[str], None]

THEMES = ("light", "dark")

_MODIFIERS = {"Ctrl", "Alt", "Shift", "Super", "Cmd", "CommandOrControl"}
_HOTKEY_KEY = re.compile(r"^([A-Z0-9]|F[0-9]{1,2}|Space|Enter|Tab|Up|Down|Left|Right|[`\-=\[\];',./\\])$")

_COPY_TOOLS = [
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["pbcopy"],
    ["clip"],
]
_PASTE_TOOLS = [
    ["wl-paste", "--no-newline"],
    ["xclip", "-selection", "clipboard", "-o"],
    ["pbpaste"],
]
_PASTE_SETTLE = 0.05


def parse_hotkey(hotkey: str) -> list[str]:
    """Split ``Ctrl+Alt+K`` style hotkeys, raising on malformed input."""
    parts = [p.strip() for p in hotkey.split("+")]
    if len(parts) < 2 or not all(parts):
        raise BackendError(f"Invalid hotkey format: {hotkey!r}")
    *mods, key = parts
    unknown = [m for m in mods if m not in _MODIFIERS]
    if unknown:
        raise BackendError(f"Invalid hotkey format: unknown modifier {unknown[0]!r}")
    if not _HOTKEY_KEY.match(key):
        raise BackendError(f"Invalid hotkey format: unsupported key {key!r}")
    return parts


def _first_tool(candidates: list[list[str]]) -> list[str] | None:
    for cmd in candidates:
        if shutil.which(cmd[0]):
            return cmd
    return None


class DesktopBridge:
    """Subprocess-backed desktop operations."""

    def __init__(
        self,
        *,
        autostart_dir: Path | None = None,
        on_hide: HideHook | None = None,
        on_theme: ThemeHook | None = None,
    ) -> None:
        self.autostart_dir = autostart_dir or Path.home() / ".config" / "autostart"
        self.on_hide = on_hide
        self.on_theme = on_theme

    async def _run(self, cmd: list[str], input_text: str | None = None) -> str:
        logger.debug("Running: %s", cmd[0])
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired:
            raise BackendError(f"{cmd[0]} did not respond in time")
        except FileNotFoundError:
            raise BackendError(f"`{cmd[0]}` not found")
        if result.returncode != 0:
            raise BackendError(result.stderr.strip() or f"{cmd[0]} failed")
        return result.stdout

    # ── Clipboard ─────────────────────────────────────────────

    async def copy_to_clipboard(self, text: str) -> None:
        cmd = _first_tool(_COPY_TOOLS)
        if not cmd:
            raise BackendError("Copy failed: no clipboard tool available")
        await self._run(cmd, input_text=text)

    async def read_clipboard(self) -> str:
        cmd = _first_tool(_PASTE_TOOLS)
        if not cmd:
            raise BackendError("Failed to read clipboard: no clipboard tool available")
        return await self._run(cmd)

    # ── Text insertion ────────────────────────────────────────

    async def type_text(self, text: str) -> None:
        """Insert via clipboard + paste chord (handles any script)."""
        await self.copy_to_clipboard(text)
        await asyncio.sleep(_PASTE_SETTLE)
        if sys.platform == "darwin":
            await self._run([
                "osascript", "-e",
                'tell application "System Events" to keystroke "v" using command down',
            ])
        else:
            await self._run(["xdotool", "key", "--clearmodifiers", "ctrl+v"])

    async def type_text_simulate(self, text: str) -> None:
        """Insert keystroke by keystroke."""
        if sys.platform == "darwin":
            escaped = text.replace("\\", "\\\\").replace('"', '\\"')
            await self._run([
                "osascript", "-e", f'tell application "System Events" to keystroke "{escaped}"',
            ])
        else:
            await self._run(["xdotool", "type", "--delay", "2", "--", text])

    # ── Window hooks ──────────────────────────────────────────

    async def hide_popup(self) -> None:
        if self.on_hide is None:
            return
        result = self.on_hide()
        if inspect.isawaitable(result):
            await result

    def apply_theme(self, theme: str) -> None:
        if theme.lower() not in THEMES:
            raise BackendError(f"Unknown theme: {theme!r}")
        if self.on_theme is not None:
            self.on_theme(theme.lower())

    # ── Autostart ─────────────────────────────────────────────

    @property
    def autostart_file(self) -> Path:
        return self.autostart_dir / "promptshelf.desktop"

    def apply_autostart(self, enable: bool) -> None:
        try:
            if enable:
                self.autostart_dir.mkdir(parents=True, exist_ok=True)
                self.autostart_file.write_text(
                    "[Desktop Entry]\n"
                    "Type=Application\n"
                    "Name=PromptShelf\n"
                    f"Exec={sys.executable} -m promptshelf\n"
                    "X-GNOME-Autostart-enabled=true\n",
                    encoding="utf-8",
                )
            else:
                self.autostart_file.unlink(missing_ok=True)
        except OSError as e:
            raise BackendError(f"Failed to update autostart: {e}") from e
        logger.info("Autostart %s", "enabled" if enable else "disabled")

    async def open_in_explorer(self, path: str) -> None:
        target = Path(path)
        folder = target.parent if target.is_file() else target
        if sys.platform == "darwin":
            opener = "open"
        elif sys.platform == "win32":
            opener = "explorer"
        else:
            opener = "xdg-open"
        # Waited on in a worker thread so no child is left unreaped.
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                [opener, str(folder)],
                check=False,
                capture_output=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired:
            raise BackendError(f"Failed to open: {opener} did not respond in time")
        except OSError as e:
            raise BackendError(f"Failed to open: {e}") from e
        # explorer.exe exits 1 even on success
        if result.returncode != 0 and opener != "explorer":
            logger.warning("%s exited with %d for %s", opener, result.returncode, folder)
