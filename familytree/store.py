"""File-backed storage for the family document.

Layout:
    <DATA_DIR>/family.json                 <- current document
    <DATA_DIR>/family.backup.<ms>.json     <- previous versions, newest 10 kept

All read-modify-write cycles go through ``FamilyStore.edit`` which holds a global
lock, so concurrent requests never interleave writes.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

log = logging.getLogger(__name__)

DATA_FILE_NAME = "family.json"
BACKUP_PREFIX = "family.backup."
MAX_BACKUPS = 10
DEFAULT_TITLE = "Our Family Tree"

_lock = threading.RLock()


def get_data_dir() -> Path:
    raw = os.environ.get("DATA_DIR")
    if raw:
        return Path(raw)
    return Path.cwd() / "data"


def initial_document() -> dict[str, Any]:
    return {"members": [], "relationships": [], "settings": {"title": DEFAULT_TITLE}}


def _backup_stamp(path: Path) -> int:
    # family.backup.<ms>.json
    stem = path.name[len(BACKUP_PREFIX):].split(".", 1)[0]
    try:
        return int(stem)
    except ValueError:
        return -1


class FamilyStore:
    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / DATA_FILE_NAME

    def load(self) -> dict[str, Any]:
        with _lock:
            if not self.path.exists():
                data = initial_document()
                self.data_dir.mkdir(parents=True, exist_ok=True)
                self._write(data)
                return data
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)

        if not isinstance(data, dict):
            data = initial_document()
        # Older files may lack some top-level keys.
        if not isinstance(data.get("members"), list):
            data["members"] = []
        if not isinstance(data.get("relationships"), list):
            data["relationships"] = []
        if not isinstance(data.get("settings"), dict):
            data["settings"] = {"title": DEFAULT_TITLE}
        return data

    def save(self, data: dict[str, Any]) -> None:
        with _lock:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            if self.path.exists():
                backup = self._next_backup_path()
                shutil.copyfile(self.path, backup)
                log.debug("Backed up %s to %s", self.path.name, backup.name)
                self._prune_backups()
            self._write(data)

    @contextmanager
    def edit(self) -> Iterator[dict[str, Any]]:
        """Yield the document for modification and save it afterwards.

        Nothing is written if the block raises.
        """
        with _lock:
            data = self.load()
            yield data
            self.save(data)

    def backups(self) -> list[Path]:
        """Return backup files, newest first."""
        if not self.data_dir.exists():
            return []
        found = [p for p in self.data_dir.iterdir() if p.name.startswith(BACKUP_PREFIX)]
        return sorted(found, key=_backup_stamp, reverse=True)

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp.replace(self.path)

    def _next_backup_path(self) -> Path:
        # Stamps keep increasing even when saves land in the same millisecond.
        stamp = int(time.time() * 1000)
        existing = self.backups()
        if existing:
            stamp = max(stamp, _backup_stamp(existing[0]) + 1)
        return self.data_dir / f"{BACKUP_PREFIX}{stamp}.json"

    def _prune_backups(self) -> None:
        stale = self.backups()[MAX_BACKUPS:]
        for p in stale:
            p.unlink(missing_ok=True)
        if stale:
            log.debug("Pruned %d old backups", len(stale))


def get_store() -> FamilyStore:
    return FamilyStore(get_data_dir())
