"""Entry point: python -m promptshelf [tree|list|pick QUERY|pull|push|check]

- No args / "tree": Print the folder tree, fully expanded
- "list":           List mnemonic bindings
- "pick QUERY":     Copy the first prompt matching QUERY to the clipboard
- "pull" / "push":  Run one remote sync
- "check":          Check that ssh/scp are installed and the server answers
"""

from __future__ import annotations

import asyncio
import logging
import sys

from promptshelf.backend.base import BackendError
from promptshelf.config import load_settings


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_session():
    settings = load_settings()
    _setup_logging(settings.log_level)

    from promptshelf.backend.local import LocalBackend
    from promptshelf.core import PromptShelf

    return PromptShelf(LocalBackend.from_settings(settings), settings)


async def _print_tree() -> None:
    shelf = _build_session()
    await shelf.start()
    rows = shelf.rows(expand_all=True)
    if not rows:
        print("(no prompts)")
    for row in rows:
        marker = "+" if row.kind == "folder" else "-"
        print(f"{'  ' * row.depth}{marker} {row.name}")
    await shelf.stop()


async def _print_mnemonics() -> None:
    shelf = _build_session()
    await shelf.start()
    await shelf.quick_insert.load()
    for row in shelf.quick_insert.rows():
        print(f"{row.mnemonic:<12} {row.title}")
    await shelf.stop()


async def _pick(query: str) -> int:
    shelf = _build_session()
    await shelf.start()
    engine = shelf.quick_insert
    await engine.load()
    engine.set_query(query)
    record = engine.selected
    try:
        if record is None:
            print(f"No prompt matches {query!r}")
            return 1
        await shelf.backend.copy_to_clipboard(record.content)
    except BackendError as e:
        print(f"Copy failed: {e}")
        return 1
    finally:
        await shelf.stop()
    print(f"Copied {record.title!r} to the clipboard")
    return 0


async def _sync(direction: str) -> int:
    shelf = _build_session()
    await shelf.start()
    outcome = await shelf.run_sync(direction)
    await shelf.stop()
    if outcome is None:
        print(shelf.notifier.last)
        return 1
    print(outcome.message)
    return 0 if outcome.ok else 1


async def _check() -> int:
    shelf = _build_session()
    await shelf.start()
    if not await shelf.sync.transport_available():
        print("ssh/scp not found on PATH")
        return 1
    remote = shelf.mirror.config.remote_sync
    if not remote.server:
        print("ssh/scp available; no server configured")
        return 0
    ok = await shelf.sync.test_connection(remote.server, remote.port)
    print(shelf.notifier.last)
    return 0 if ok else 1


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "tree"

    if cmd == "tree":
        asyncio.run(_print_tree())
    elif cmd == "list":
        asyncio.run(_print_mnemonics())
    elif cmd == "pick" and len(sys.argv) > 2:
        sys.exit(asyncio.run(_pick(" ".join(sys.argv[2:]))))
    elif cmd in ("pull", "push"):
        sys.exit(asyncio.run(_sync(cmd)))
    elif cmd == "check":
        sys.exit(asyncio.run(_check()))
    else:
        print("Usage: python -m promptshelf [tree|list|pick QUERY|pull|push|check]")
        print("  tree        — Print the prompt folder tree (default)")
        print("  list        — List mnemonic bindings")
        print("  pick QUERY  — Copy the first matching prompt")
        print("  pull|push   — Sync with the configured remote")
        print("  check       — Check ssh/scp and the remote server")
        sys.exit(1)


if __name__ == "__main__":
    main()
