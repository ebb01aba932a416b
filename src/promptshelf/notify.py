"""User-facing notifications and local refusals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Level = Literal["info", "error"]


class Refusal(Exception):
    """A local precondition failed. Never reaches the backend."""


@runtime_checkable
class Notifier(Protocol):
    """Transient notification surface (toast, status line, result panel)."""

    def notify(self, message: str, *, level: Level = "info") -> None: ...


@dataclass
class LogNotifier:
    """Notifier that logs and remembers what it showed."""

    history: list[tuple[Level, str]] = field(default_factory=list)

    @property
    def last(self) -> str | None:
        return self.history[-1][1] if self.history else None

    def notify(self, message: str, *, level: Level = "info") -> None:
        self.history.append((level, message))
        if level == "error":
            logger.error("%s", message)
        else:
            logger.info("%s", message)
