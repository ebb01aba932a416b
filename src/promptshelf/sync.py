"""Sync orchestrator — gate, run and reconcile one pull or push.

    Idle --run--> Busy --> Settled(success|error) --acknowledge--> Idle

Preconditions are checked locally and refuse without contacting the
backend. A successful sync always reloads the repository mirror.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from promptshelf.backend.base import BackendError, SyncOutcome, SyncStatus
from promptshelf.config import DEFAULT_SSH_PORT
from promptshelf.notify import Refusal

if TYPE_CHECKING:
    from promptshelf.mirror import RepositoryMirror
    from promptshelf.notify import Notifier

logger = logging.getLogger(__name__)


class SyncDirection(str, Enum):
    PULL = "pull"  # remote -> local
    PUSH = "push"  # local -> remote


class SyncPhase(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    SETTLED = "settled"


class SyncOrchestrator:
    """Runs user-triggered syncs against the mirror's backend."""

    def __init__(self, mirror: RepositoryMirror, notifier: Notifier) -> None:
        self.mirror = mirror
        self.notifier = notifier
        self.phase = SyncPhase.IDLE
        self.outcome: SyncOutcome | None = None
        self.triggers_enabled = True
        self.busy_indicator = False

    def check_preconditions(self) -> None:
        """Raise ``Refusal`` if the config does not allow a sync."""
        config = self.mirror.config
        sync = config.remote_sync
        if not sync.enabled:
            raise Refusal("Remote sync is not enabled")
        if not sync.server or not sync.remote_path:
            raise Refusal("Configure the server address and remote path first")
        if not config.root_folder:
            raise Refusal("Choose a local prompt folder first")

    def open(self) -> bool:
        """Prepare the sync surface; refuses to open when preconditions fail."""
        try:
            self.check_preconditions()
        except Refusal as e:
            self.notifier.notify(str(e), level="error")
            return False
        if self.phase is not SyncPhase.BUSY:
            self.phase = SyncPhase.IDLE
            self.outcome = None
            self.triggers_enabled = True
        return True

    async def run(self, direction: SyncDirection | str) -> SyncOutcome | None:
        """Run one sync. Returns None when refused locally."""
        direction = SyncDirection(direction)
        try:
            self.check_preconditions()
            if self.phase is SyncPhase.BUSY:
                raise Refusal("A sync is already running")
        except Refusal as e:
            self.notifier.notify(str(e), level="error")
            return None

        config = self.mirror.config
        local_folder = config.root_folder
        server = config.remote_sync.server
        remote_path = config.remote_sync.remote_path
        port = config.remote_sync.port or DEFAULT_SSH_PORT
        backend = self.mirror.backend
        call = backend.sync_pull if direction is SyncDirection.PULL else backend.sync_push

        self.phase = SyncPhase.BUSY
        self.triggers_enabled = False
        self.busy_indicator = True
        self.outcome = None
        logger.info("Sync %s started (%s:%s)", direction.value, server, remote_path)

        try:
            outcome = await self.mirror.mutate(
                lambda: call(local_folder, server, remote_path, port),
                reload=lambda result: result.ok,
            )
        except BackendError as e:
            outcome = SyncOutcome(SyncStatus.ERROR, e.message)
        except Exception as e:
            logger.exception("Sync %s crashed", direction.value)
            outcome = SyncOutcome(SyncStatus.ERROR, str(e) or type(e).__name__)
        finally:
            self.triggers_enabled = True
            self.busy_indicator = False
            self.phase = SyncPhase.SETTLED

        self.outcome = outcome
        if outcome.ok:
            logger.info("Sync %s finished: %s", direction.value, outcome.message)
            self.notifier.notify(outcome.message)
        else:
            logger.error("Sync %s failed: %s", direction.value, outcome.message)
            self.notifier.notify(outcome.message, level="error")
        return outcome

    def acknowledge(self) -> None:
        if self.phase is SyncPhase.SETTLED:
            self.phase = SyncPhase.IDLE

    # ── Read-only checks (not gated) ──────────────────────────

    async def test_connection(self, server: str, port: int = DEFAULT_SSH_PORT) -> bool:
        if not server.strip():
            self.notifier.notify("Enter a server address", level="error")
            return False
        try:
            message = await self.mirror.backend.test_ssh_connection(server.strip(), port)
        except BackendError as e:
            self.notifier.notify(e.message, level="error")
            return False
        self.notifier.notify(message)
        return True

    async def transport_available(self) -> bool:
        try:
            return await self.mirror.backend.check_ssh_available()
        except BackendError as e:
            logger.warning("SSH availability check failed: %s", e)
            return False
