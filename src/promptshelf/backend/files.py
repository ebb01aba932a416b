"""Filesystem store for prompts, folders, config and mnemonic metadata.

Prompt files (``*.md``/``*.txt``) under the root folder are the source of
truth. The repository config and the mnemonic table live beside each other
in the config directory as JSON. All methods are synchronous; ``LocalBackend``
moves them off the event loop.
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
from pathlib import Path

from promptshelf.backend.base import (
    DEFAULT_CATEGORY,
    BackendError,
    MnemonicRecord,
    PromptEntry,
)
from promptshelf.config import RepositoryConfig

logger = logging.getLogger(__name__)

PROMPT_SUFFIXES = (".md", ".txt")
CONFIG_FILENAME = "config.json"
META_FILENAME = "prompts-meta.json"

NEW_FILE_STEM = "新建提示词"
NEW_FOLDER_NAME = "新建文件夹"


def prompt_id(file_path: str) -> str:
    """Path-derived id: stable across reloads, changes on rename."""
    return hashlib.sha256(file_path.encode()).hexdigest()[:16]


class PromptFiles:
    """Read/write access to the prompt folder and its metadata."""

    def __init__(self, config_dir: Path) -> None:
        self.config_dir = config_dir

    @property
    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    @property
    def meta_path(self) -> Path:
        return self.config_dir / META_FILENAME

    # ── Config ────────────────────────────────────────────────

    def get_config(self) -> RepositoryConfig:
        if not self.config_path.exists():
            return RepositoryConfig()
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise BackendError(f"Failed to read config: {e}") from e
        except json.JSONDecodeError as e:
            raise BackendError(f"Failed to parse config: {e}") from e
        return RepositoryConfig.from_dict(data)

    def save_config(self, config: RepositoryConfig) -> None:
        content = json.dumps(config.to_dict(), ensure_ascii=False, indent=2)
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BackendError(f"Failed to save config: {e}") from e
        logger.info("Config written: %s", self.config_path)

    # ── Mnemonic metadata ─────────────────────────────────────

    def _load_meta(self) -> dict[str, str]:
        """Return the mnemonic -> file_path table."""
        if not self.meta_path.exists():
            return {}
        try:
            data = json.loads(self.meta_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise BackendError(f"Failed to read mnemonics: {e}") from e
        except json.JSONDecodeError as e:
            raise BackendError(f"Failed to parse mnemonics: {e}") from e
        return dict(data.get("mnemonics", {}))

    def _save_meta(self, mnemonics: dict[str, str]) -> None:
        content = json.dumps({"mnemonics": mnemonics}, ensure_ascii=False, indent=2)
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.meta_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BackendError(f"Failed to save mnemonics: {e}") from e

    def get_mnemonic_for_file(self, file_path: str) -> str | None:
        for mnemonic, path in self._load_meta().items():
            if path == file_path:
                return mnemonic
        return None

    def find_by_mnemonic(self, mnemonic: str) -> str | None:
        return self._load_meta().get(mnemonic.strip().lower())

    def set_mnemonic(self, file_path: str, mnemonic: str) -> None:
        mnemonic = mnemonic.strip().lower()
        if not mnemonic:
            raise BackendError("Mnemonic must not be empty")

        meta = self._load_meta()
        existing = meta.get(mnemonic)
        if existing and existing != file_path:
            raise BackendError(f"Mnemonic '{mnemonic}' is already used by another file")

        # One mnemonic per file
        meta = {m: p for m, p in meta.items() if p != file_path}
        meta[mnemonic] = file_path
        self._save_meta(meta)
        logger.info("Mnemonic '%s' -> %s", mnemonic, file_path)

    def remove_mnemonic(self, file_path: str) -> None:
        meta = self._load_meta()
        kept = {m: p for m, p in meta.items() if p != file_path}
        if len(kept) != len(meta):
            self._save_meta(kept)

    def _repoint_mnemonics(self, old_path: str, new_path: str | None) -> None:
        """Follow a moved file or folder; ``None`` drops the bindings."""
        meta = self._load_meta()
        old = Path(old_path)
        changed = False
        for mnemonic, path in list(meta.items()):
            p = Path(path)
            if p != old and old not in p.parents:
                continue
            changed = True
            if new_path is None:
                del meta[mnemonic]
            else:
                meta[mnemonic] = str(Path(new_path) / p.relative_to(old))
        if changed:
            self._save_meta(meta)

    def get_all_mnemonics(self) -> list[MnemonicRecord]:
        """One record per prompt file under the configured root, sorted by title."""
        root = self.get_config().root_folder
        if not root or not Path(root).is_dir():
            return []

        by_path = {p: m for m, p in self._load_meta().items()}
        records = [
            MnemonicRecord(
                mnemonic=by_path.get(str(path), ""),
                title=path.stem,
                content=self._read(path),
            )
            for path in self._iter_prompt_files(Path(root))
        ]
        records.sort(key=lambda r: r.title)
        return records

    # ── Scanning ──────────────────────────────────────────────

    def _require_dir(self, folder: str, message: str = "Folder does not exist") -> Path:
        path = Path(folder)
        if not path.is_dir():
            raise BackendError(message)
        return path

    def _is_hidden(self, path: Path, root: Path) -> bool:
        return any(part.startswith(".") for part in path.relative_to(root).parts)

    def _walk(self, root: Path) -> list[Path]:
        """Every non-hidden path under root, sorted."""
        try:
            return [p for p in sorted(root.rglob("*")) if not self._is_hidden(p, root)]
        except OSError as e:
            raise BackendError(f"Failed to scan {root}: {e}") from e

    def _iter_prompt_files(self, root: Path) -> list[Path]:
        return [p for p in self._walk(root) if p.is_file() and p.suffix.lower() in PROMPT_SUFFIXES]

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Unreadable prompt %s: %s", path, e)
            return ""

    def _category_for(self, path: Path, root: Path) -> str:
        rel = path.parent.relative_to(root).as_posix()
        return DEFAULT_CATEGORY if rel in ("", ".") else rel

    def scan_prompts(self, root_folder: str) -> list[PromptEntry]:
        root = self._require_dir(root_folder)
        entries = []
        for path in self._iter_prompt_files(root):
            file_path = str(path)
            entries.append(
                PromptEntry(
                    id=prompt_id(file_path),
                    title=path.stem,
                    content=self._read(path),
                    file_path=file_path,
                    category=self._category_for(path, root),
                )
            )
        logger.debug("Scanned %d prompts under %s", len(entries), root)
        return entries

    def scan_folders(self, root_folder: str) -> list[str]:
        root = self._require_dir(root_folder)
        return [str(p) for p in self._walk(root) if p.is_dir()]

    # ── Prompt CRUD ───────────────────────────────────────────

    def save_prompt(
        self,
        root_folder: str,
        category: str,
        title: str,
        content: str,
        original_path: str | None = None,
    ) -> str:
        target_dir = Path(root_folder)
        if category and category != DEFAULT_CATEGORY:
            target_dir = target_dir / category
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendError(f"Failed to create folder: {e}") from e

        # Keep the original extension, new prompts default to markdown
        suffix = Path(original_path).suffix if original_path else ""
        target = target_dir / f"{title}{suffix or '.md'}"

        if original_path:
            original = Path(original_path)
            if original != target and original.exists():
                try:
                    original.rename(target)
                except OSError as e:
                    raise BackendError(f"Rename failed: {e}") from e
                self._repoint_mnemonics(original_path, str(target))
                logger.info("Renamed %s -> %s", original, target)

        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BackendError(f"Save failed: {e}") from e
        return str(target)

    def delete_prompt(self, file_path: str) -> None:
        try:
            Path(file_path).unlink()
        except OSError as e:
            raise BackendError(f"Delete failed: {e}") from e
        self._repoint_mnemonics(file_path, None)
        logger.info("Deleted prompt: %s", file_path)

    def _first_free(self, parent: Path, stem: str, suffix: str = "") -> Path:
        path = parent / f"{stem}{suffix}"
        counter = 2
        while path.exists():
            path = parent / f"{stem} {counter}{suffix}"
            counter += 1
        return path

    def create_file(self, folder: str) -> str:
        parent = self._require_dir(folder)
        path = self._first_free(parent, NEW_FILE_STEM, ".md")
        try:
            path.write_text("", encoding="utf-8")
        except OSError as e:
            raise BackendError(f"Failed to create file: {e}") from e
        logger.info("Created prompt: %s", path)
        return str(path)

    # ── Folder CRUD ───────────────────────────────────────────

    def create_folder(self, parent_folder: str) -> str:
        parent = self._require_dir(parent_folder, "Parent folder does not exist")
        path = self._first_free(parent, NEW_FOLDER_NAME)
        try:
            path.mkdir()
        except OSError as e:
            raise BackendError(f"Failed to create folder: {e}") from e
        logger.info("Created folder: %s", path)
        return str(path)

    def rename_folder(self, old_path: str, new_name: str) -> str:
        old = self._require_dir(old_path)
        new = old.parent / new_name
        if new.exists():
            raise BackendError("Target name already exists")
        try:
            old.rename(new)
        except OSError as e:
            raise BackendError(f"Rename failed: {e}") from e
        self._repoint_mnemonics(old_path, str(new))
        logger.info("Renamed folder %s -> %s", old, new)
        return str(new)

    def delete_folder(self, folder_path: str) -> None:
        path = self._require_dir(folder_path)
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise BackendError(f"Failed to delete folder: {e}") from e
        self._repoint_mnemonics(folder_path, None)
        logger.info("Deleted folder: %s", path)
