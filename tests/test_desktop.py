"""Tests for desktop integration: hotkeys, hooks, autostart, clipboard."""

import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from promptshelf.backend.base import BackendError
from promptshelf.backend.desktop import DesktopBridge, parse_hotkey


class TestParseHotkey:
    @pytest.mark.parametrize("hotkey", ["Alt+Space", "Ctrl+Shift+K", "CommandOrControl+F12"])
    def test_valid(self, hotkey):
        assert parse_hotkey(hotkey) == hotkey.split("+")

    @pytest.mark.parametrize("hotkey", ["Space", "Ctrl+", "Hyper+K", "Ctrl+Banana"])
    def test_invalid(self, hotkey):
        with pytest.raises(BackendError, match="Invalid hotkey"):
            parse_hotkey(hotkey)


class TestHooks:
    @pytest.mark.asyncio
    async def test_hide_popup_sync_hook(self):
        hook = MagicMock(return_value=None)
        await DesktopBridge(on_hide=hook).hide_popup()
        hook.assert_called_once()

    @pytest.mark.asyncio
    async def test_hide_popup_async_hook(self):
        hook = AsyncMock()
        await DesktopBridge(on_hide=hook).hide_popup()
        hook.assert_awaited_once()

    def test_theme(self):
        hook = MagicMock()
        DesktopBridge(on_theme=hook).apply_theme("Light")
        hook.assert_called_once_with("light")

    def test_unknown_theme(self):
        with pytest.raises(BackendError):
            DesktopBridge().apply_theme("neon")


class TestAutostart:
    def test_enable_and_disable(self, tmp_path: Path):
        bridge = DesktopBridge(autostart_dir=tmp_path / "autostart")
        bridge.apply_autostart(True)
        assert "Exec=" in bridge.autostart_file.read_text(encoding="utf-8")
        bridge.apply_autostart(False)
        assert not bridge.autostart_file.exists()

    def test_disable_when_absent(self, tmp_path: Path):
        DesktopBridge(autostart_dir=tmp_path).apply_autostart(False)


class TestClipboard:
    @pytest.mark.asyncio
    async def test_no_tool(self):
        with patch("shutil.which", return_value=None):
            with pytest.raises(BackendError, match="no clipboard tool"):
                await DesktopBridge().copy_to_clipboard("x")

    @pytest.mark.asyncio
    async def test_copy_pipes_text(self):
        result = MagicMock(returncode=0, stdout="", stderr="")
        with patch("shutil.which", return_value="/usr/bin/tool"), \
                patch("subprocess.run", return_value=result) as run:
            await DesktopBridge().copy_to_clipboard("héllo")
        assert run.call_args.kwargs["input"] == "héllo"
        assert run.call_args.args[0] == ["wl-copy"]


class TestOpenInExplorer:
    @pytest.mark.asyncio
    async def test_opens_parent_folder_and_waits(self, tmp_path: Path):
        prompt = tmp_path / "a.md"
        prompt.write_text("x")
        result = MagicMock(returncode=0, stdout=b"", stderr=b"")
        with patch("sys.platform", "linux"), \
                patch("subprocess.run", return_value=result) as run:
            await DesktopBridge().open_in_explorer(str(prompt))
        assert run.call_args.args[0] == ["xdg-open", str(tmp_path)]
        assert run.call_args.kwargs["check"] is False

    @pytest.mark.asyncio
    async def test_missing_opener(self, tmp_path: Path):
        with patch("subprocess.run", side_effect=FileNotFoundError("xdg-open")):
            with pytest.raises(BackendError, match="Failed to open"):
                await DesktopBridge().open_in_explorer(str(tmp_path))
