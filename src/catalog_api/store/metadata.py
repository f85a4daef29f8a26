"""
JSON sidecar backed metadata store.

The sidecar file is the source of truth: every read goes back to disk, and every
write is a load-merge-save done under a lock shared by all stores that point at
the same file. Writes go to a temp file that replaces the sidecar atomically.

Layout on disk::

    {
        "20240101_123456_1a2b3c4d": {"name": "book.pdf", "type": "application/pdf", "size": "512"}
    }
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import pydantic

from catalog_api.errors import MetadataStoreError
from catalog_api.schemas import Record

logger = logging.getLogger(__name__)

_LOCKS: Dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def get_lock(path: Path) -> threading.RLock:
    """Return the process-wide lock for a sidecar path."""
    key = Path(os.path.abspath(path))
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


class MetadataStore:
    """Map of record id -> Record mirrored to a JSON file."""

    def __init__(self, upload_dir: Union[str, Path], metadata_filename: str = "metadata.json"):
        self.upload_dir = Path(upload_dir)
        self.metadata_filename = metadata_filename
        self.lock = get_lock(self.path)

    @property
    def path(self) -> Path:
        return self.upload_dir / self.metadata_filename

    def load(self) -> Dict[str, Record]:
        """Read every record from the sidecar, creating an empty one if it is missing.

        Raises:
            MetadataStoreError: the file cannot be read or does not hold a valid mapping
        """
        with self.lock:
            if not self.path.exists():
                self._write({})
                logger.info(f"Metadata file {self.path} not found, created an empty one")
                return {}
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                raise MetadataStoreError(f"Could not read metadata file {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise MetadataStoreError(
                f"Metadata file {self.path} must hold a JSON object, got {type(raw).__name__}"
            )

        records = {}
        for record_id, entry in raw.items():
            if not isinstance(entry, dict):
                raise MetadataStoreError(f"Metadata entry '{record_id}' is not an object")
            try:
                records[record_id] = Record.from_metadata_entry(record_id, entry)
            except (KeyError, ValueError, pydantic.ValidationError) as e:
                raise MetadataStoreError(f"Metadata entry '{record_id}' is malformed: {e}") from e
        return records

    def load_or_empty(self) -> Dict[str, Record]:
        """Like `load`, but log the failure and return an empty mapping instead of raising."""
        try:
            return self.load()
        except MetadataStoreError as e:
            logger.error(f"Failed to load metadata: {e}")
            return {}

    def save(self, records: Mapping[str, Record]) -> None:
        """Merge `records` into the sidecar; on an id conflict the new record wins."""
        with self.lock:
            merged = self.load()
            merged.update(records)
            self._write(merged)
        logger.debug(f"Saved {len(records)} record(s), {len(merged)} total in {self.path}")

    def put(self, record: Record) -> None:
        self.save({record.id: record})

    def get(self, record_id: str) -> Optional[Record]:
        return self.load().get(record_id)

    def remove(self, record_id: str) -> bool:
        """Drop one entry. Returns False, leaving the file untouched, when the id is unknown."""
        with self.lock:
            records = self.load()
            if record_id not in records:
                return False
            del records[record_id]
            self._write(records)
        return True

    def list(self) -> List[Record]:
        """All records, oldest first (ids start with their creation timestamp)."""
        return [record for _, record in sorted(self.load().items())]

    def find_by_name(self, name: str) -> List[Record]:
        return [record for record in self.list() if record.name == name]

    def raw(self) -> str:
        """The sidecar's text as stored on disk."""
        with self.lock:
            if not self.path.exists():
                self.load()
            try:
                return self.path.read_text(encoding="utf-8")
            except OSError as e:
                raise MetadataStoreError(f"Could not read metadata file {self.path}: {e}") from e

    def _write(self, records: Mapping[str, Record]) -> None:
        payload = {record_id: record.to_metadata_entry() for record_id, record in records.items()}
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.upload_dir, prefix=f".{self.metadata_filename}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise MetadataStoreError(f"Could not write metadata file {self.path}: {e}") from e
