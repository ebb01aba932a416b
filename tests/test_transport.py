"""Tests for the SSH/SCP transport (mocked subprocess)."""

import subprocess

import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

from promptshelf.backend.base import BackendError
from promptshelf.backend.transport import SshTransport


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


@pytest.fixture
def transport() -> SshTransport:
    return SshTransport(timeout=30)


class TestPull:
    @pytest.mark.asyncio
    async def test_pull_command(self, transport: SshTransport, tmp_path: Path):
        local = tmp_path / "local"
        with patch("subprocess.run", return_value=completed()) as run:
            outcome = await transport.sync_pull(str(local), "me@host", "/srv/p/", 2222)

        assert outcome.ok
        assert local.is_dir()
        cmd = run.call_args.args[0]
        assert cmd[:2] == ["scp", "-r"]
        assert "BatchMode=yes" in cmd
        assert cmd[cmd.index("-P") + 1] == "2222"
        assert cmd[-2:] == ["me@host:/srv/p/*", str(local)]
        assert run.call_args.kwargs["timeout"] == 30

    @pytest.mark.asyncio
    async def test_pull_failure_carries_stderr(self, transport: SshTransport, tmp_path: Path):
        with patch("subprocess.run", return_value=completed(1, stderr="Permission denied")):
            with pytest.raises(BackendError, match="Permission denied"):
                await transport.sync_pull(str(tmp_path), "me@host", "/srv/p", 22)

    @pytest.mark.asyncio
    async def test_timeout(self, transport: SshTransport, tmp_path: Path):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("scp", 30)):
            with pytest.raises(BackendError, match="timed out"):
                await transport.sync_pull(str(tmp_path), "me@host", "/srv/p", 22)

    @pytest.mark.asyncio
    async def test_missing_binary(self, transport: SshTransport, tmp_path: Path):
        with patch("subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(BackendError, match="not found"):
                await transport.sync_pull(str(tmp_path), "me@host", "/srv/p", 22)

    @pytest.mark.asyncio
    async def test_local_folder_is_a_file(self, transport: SshTransport, tmp_path: Path):
        occupied = tmp_path / "prompts"
        occupied.write_text("not a folder")
        with patch("subprocess.run") as run:
            with pytest.raises(BackendError, match="Local folder unusable"):
                await transport.sync_pull(str(occupied), "me@host", "/srv/p", 22)
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_binary_not_executable(self, transport: SshTransport, tmp_path: Path):
        with patch("subprocess.run", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(BackendError, match="could not start"):
                await transport.sync_pull(str(tmp_path), "me@host", "/srv/p", 22)


class TestPush:
    @pytest.mark.asyncio
    async def test_push_creates_remote_dir_then_copies(self, transport: SshTransport, tmp_path: Path):
        (tmp_path / "a").mkdir()
        (tmp_path / "x.md").write_text("x")
        (tmp_path / ".git").mkdir()

        with patch("subprocess.run", return_value=completed()) as run:
            outcome = await transport.sync_push(str(tmp_path), "me@host", "/srv/p", 22)

        assert outcome.ok
        mkdir_cmd, scp_cmd = (c.args[0] for c in run.call_args_list)
        assert mkdir_cmd[0] == "ssh"
        assert mkdir_cmd[-3:] == ["mkdir", "-p", "/srv/p"]
        assert scp_cmd[0] == "scp"
        assert str(tmp_path / "a") in scp_cmd
        assert str(tmp_path / "x.md") in scp_cmd
        assert str(tmp_path / ".git") not in scp_cmd
        assert scp_cmd[-1] == "me@host:/srv/p/"

    @pytest.mark.asyncio
    async def test_push_empty_folder(self, transport: SshTransport, tmp_path: Path):
        with patch("subprocess.run") as run:
            outcome = await transport.sync_push(str(tmp_path), "me@host", "/srv/p", 22)
        assert outcome.ok
        assert outcome.message == "Nothing to push"
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_push_missing_local(self, transport: SshTransport, tmp_path: Path):
        with pytest.raises(BackendError, match="does not exist"):
            await transport.sync_push(str(tmp_path / "nope"), "me@host", "/srv/p", 22)


class TestConnectionChecks:
    @pytest.mark.asyncio
    async def test_connection_ok(self, transport: SshTransport):
        with patch("subprocess.run", return_value=completed(stdout="ok\n")) as run:
            message = await transport.test_ssh_connection("me@host", 22)
        assert message == "Connected to me@host:22"
        assert run.call_args.args[0][-2:] == ["echo", "ok"]

    @pytest.mark.asyncio
    async def test_ssh_available(self, transport: SshTransport):
        with patch("shutil.which", return_value="/usr/bin/ssh"):
            assert await transport.check_ssh_available() is True
        with patch("shutil.which", return_value=None):
            assert await transport.check_ssh_available() is False
