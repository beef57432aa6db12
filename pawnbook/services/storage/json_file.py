"""
JSON File Storage Implementation

DESIGN DECISION: Each collection key maps to one JSON file in a data
directory, mirroring how the browser version kept one localStorage entry
per collection:
1. The shop owner can open and back up the files directly
2. No database setup required on the counter machine
3. A whole collection is rewritten on every change

TRADEOFFS:
- Every single-field update rewrites the full collection (fine at the size
  of one shop's ledger)
- No transactions across files; a crash between two writes can leave the
  bills and transactions files out of step

Writes go to a temporary file in the same directory and are moved into
place with an atomic rename, so a reader never sees a half-written file.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pawnbook.services.storage.interface import KeyValueStorage, PersistenceError


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage(KeyValueStorage):
    """
    Directory of JSON documents, one file per key.

    The directory is created on first use.
    """

    def __init__(self, data_dir: Path | str):
        self._data_dir = Path(data_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        """Read a collection file; a missing file means an empty key."""
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}")

    def write(self, key: str, payload: str) -> None:
        """Replace a collection file."""
        path = self._path_for(key)
        try:
            self._write_atomic(path, payload)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.exists():
            return []
        return sorted(p.stem for p in self._data_dir.glob("*.json"))

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def _write_atomic(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
