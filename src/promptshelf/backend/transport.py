"""SSH/SCP transport — wraps the OpenSSH command-line tools.

Each operation collapses to one outcome: a ``SyncOutcome`` on success or a
``BackendError`` with a single message. Timeouts are owned here.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from promptshelf.backend.base import BackendError, SyncOutcome, SyncStatus

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 10


@dataclass
class SshTransport:
    """Pull/push the prompt folder with ``scp -r``.

    Uses BatchMode, so key-based authentication must already be set up.
    """

    timeout: int = 300

    def _ssh_options(self, port: int) -> list[str]:
        return ["-o", "BatchMode=yes", "-o", f"ConnectTimeout={_CONNECT_TIMEOUT}", "-P", str(port)]

    async def _run(self, cmd: list[str], timeout: int) -> str:
        logger.debug("Running: %s", " ".join(cmd[:6]) + " ...")
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise BackendError(f"{cmd[0]} timed out after {timeout}s")
        except FileNotFoundError:
            raise BackendError(f"`{cmd[0]}` not found. Is OpenSSH installed?")
        except OSError as e:
            raise BackendError(f"{cmd[0]} could not start: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error("%s error (rc=%d): %s", cmd[0], result.returncode, stderr)
            raise BackendError(stderr or f"{cmd[0]} exited with code {result.returncode}")
        return result.stdout.strip()

    async def sync_pull(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome:
        """Copy the remote folder's contents over the local folder."""
        try:
            Path(local_folder).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendError(f"Local folder unusable: {e}") from e
        source = f"{server}:{remote_path.rstrip('/')}/*"
        cmd = ["scp", "-r", *self._ssh_options(port), source, local_folder]
        await self._run(cmd, self.timeout)
        logger.info("Pulled %s into %s", source, local_folder)
        return SyncOutcome(SyncStatus.SUCCESS, f"Pulled from {server}:{remote_path}")

    async def sync_push(
        self, local_folder: str, server: str, remote_path: str, port: int
    ) -> SyncOutcome:
        """Copy every top-level entry of the local folder to the remote folder."""
        local = Path(local_folder)
        if not local.is_dir():
            raise BackendError("Local folder does not exist")
        try:
            entries = [str(p) for p in sorted(local.iterdir()) if not p.name.startswith(".")]
        except OSError as e:
            raise BackendError(f"Local folder unusable: {e}") from e
        if not entries:
            return SyncOutcome(SyncStatus.SUCCESS, "Nothing to push")

        mkdir = [
            "ssh", "-o", "BatchMode=yes", "-o", f"ConnectTimeout={_CONNECT_TIMEOUT}",
            "-p", str(port), server, "mkdir", "-p", remote_path,
        ]
        await self._run(mkdir, self.timeout)

        target = f"{server}:{remote_path.rstrip('/')}/"
        cmd = ["scp", "-r", *self._ssh_options(port), *entries, target]
        await self._run(cmd, self.timeout)
        logger.info("Pushed %d entries to %s", len(entries), target)
        return SyncOutcome(SyncStatus.SUCCESS, f"Pushed {len(entries)} items to {server}:{remote_path}")

    async def test_ssh_connection(self, server: str, port: int) -> str:
        cmd = [
            "ssh", "-p", str(port), "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={_CONNECT_TIMEOUT}", server, "echo", "ok",
        ]
        await self._run(cmd, _CONNECT_TIMEOUT + 5)
        return f"Connected to {server}:{port}"

    async def check_ssh_available(self) -> bool:
        return shutil.which("ssh") is not None and shutil.which("scp") is not None
