"""Raw file storage inside the upload directory, keyed by stored file name."""

import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterable, Set, Union

from catalog_api.errors import FileMissingError, InvalidFileNameError, StorageError

logger = logging.getLogger(__name__)


class FileStore:
    """Reads and writes uploaded files under a single root directory.

    Stored names are untrusted client input: `resolve` rejects anything that is not
    a plain file name directly inside the root, and any name reserved for the
    service's own files (plus the `.<name>.*` temp files written next to them).
    """

    def __init__(self, upload_dir: Union[str, Path], reserved_names: Iterable[str] = ()):
        self.upload_dir = Path(upload_dir)
        self.reserved_names: Set[str] = set(reserved_names)

    def reserve(self, name: str) -> None:
        """Keep uploads from ever being stored under `name`."""
        self.reserved_names.add(name)

    def is_reserved(self, name: str) -> bool:
        return any(name == reserved or name.startswith(f".{reserved}.") for reserved in self.reserved_names)

    def ensure_dir(self) -> Path:
        """Create the upload directory if it does not exist.

        Raises:
            StorageError: the directory cannot be created
        """
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create upload directory {self.upload_dir}: {e}")
            raise StorageError(f"Could not create upload directory {self.upload_dir}: {e}") from e
        return self.upload_dir

    def resolve(self, name: str) -> Path:
        """Join `name` onto the upload root, refusing names that could escape it."""
        if not name or not name.strip():
            raise InvalidFileNameError(name, "name is empty")
        if name in (".", ".."):
            raise InvalidFileNameError(name, "name is a directory reference")
        if "/" in name or "\\" in name:
            raise InvalidFileNameError(name, "name contains a path separator")
        if "\x00" in name:
            raise InvalidFileNameError(name, "name contains a NUL byte")
        if self.is_reserved(name):
            raise InvalidFileNameError(name, "name is reserved for the catalog's metadata")

        root = Path(os.path.abspath(self.upload_dir))
        path = Path(os.path.abspath(root / name))
        if path.parent != root:
            raise InvalidFileNameError(name, "name resolves outside the upload directory")
        return path

    def exists(self, name: str) -> bool:
        return self.resolve(name).is_file()

    def write(self, name: str, content: bytes) -> Path:
        path = self.resolve(name)
        self.ensure_dir()
        try:
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e
        logger.info(f"Stored file {name} ({len(content)} bytes)")
        return path

    def read(self, name: str) -> bytes:
        path = self.resolve(name)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise FileMissingError(name) from e
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def open(self, name: str) -> BinaryIO:
        """Open a stored file for streaming. The caller closes it."""
        path = self.resolve(name)
        try:
            return path.open("rb")
        except FileNotFoundError as e:
            raise FileMissingError(name) from e
        except OSError as e:
            raise StorageError(f"Could not open {path}: {e}") from e

    def delete(self, name: str) -> bool:
        """Remove a stored file. Returns False if there was nothing to remove."""
        path = self.resolve(name)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"File {name} was already missing from {self.upload_dir}")
            return False
        except OSError as e:
            raise StorageError(f"Could not delete {path}: {e}") from e
        logger.info(f"Deleted file {name}")
        return True
