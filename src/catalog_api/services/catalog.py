"""
Upload orchestration: ties the metadata store and the file store together.

Every public operation returns a typed result or raises one of the typed errors in
`catalog_api.errors`; none of them degrade to a silent no-op.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from catalog_api.errors import (
    CatalogIOError,
    DeleteResult,
    DeleteStatus,
    EmptyUploadError,
    FileMissingError,
    InvalidFileNameError,
    RecordNotFoundError,
    UploadResult,
    UploadStatus,
    UploadTooLargeError,
)
from catalog_api.schemas import DEFAULT_CONTENT_TYPE, Record
from catalog_api.store.files import FileStore
from catalog_api.store.metadata import MetadataStore
from catalog_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

RECORD_ID_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def generate_record_id(now: Optional[datetime] = None) -> str:
    """Build an id of the form `<yyyyMMdd_HHmmss>_<8 hex>`."""
    timestamp = (now or datetime.now()).strftime(RECORD_ID_TIMESTAMP_FORMAT)
    return f"{timestamp}_{uuid.uuid4().hex[:8]}"


def content_disposition(filename: str) -> str:
    """RFC 5987 attachment header carrying the percent-encoded original name."""
    return f"attachment; filename*=UTF-8''{quote(filename, safe='')}"


@dataclass
class Download:
    record: Record
    path: Path
    content_disposition: str


class CatalogService:
    """Upload, list, download and delete catalog records."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        file_store: FileStore,
        max_upload_bytes: Optional[int] = None,
    ):
        self.metadata_store = metadata_store
        self.file_store = file_store
        self.max_upload_bytes = max_upload_bytes
        # uploads share the directory with the sidecar and its temp files
        self.file_store.reserve(metadata_store.metadata_filename)

    @classmethod
    def from_settings(cls, settings) -> "CatalogService":
        file_store = FileStore(settings.upload_path, reserved_names={settings.metadata_filename})
        file_store.ensure_dir()
        return cls(
            metadata_store=MetadataStore(settings.upload_path, settings.metadata_filename),
            file_store=file_store,
            max_upload_bytes=settings.max_upload_bytes,
        )

    def find_duplicate(self, name: str, size: int) -> Optional[Record]:
        """Return the known record that makes an upload of `name` a duplicate.

        Any record with the same name counts, whatever its size; a size mismatch is
        only logged.
        """
        same_name = self.metadata_store.find_by_name(name)
        if not same_name:
            return None
        for record in same_name:
            if record.size == size:
                logger.info(f"Identical file already exists: {name}")
                return record
        logger.warning(
            f"A file named {name} already exists with a different size "
            f"({same_name[0].size} bytes stored, {size} bytes uploaded)"
        )
        return same_name[0]

    @log_execution_time
    def upload(self, content: bytes, name: str, content_type: Optional[str] = None) -> UploadResult:
        """Store a new file and record its metadata.

        Args:
            content: The uploaded bytes
            name: File name reported by the client; must be a bare file name
            content_type: MIME type reported by the client

        Returns:
            UploadResult with status CREATED and the new record, or DUPLICATE and the
            record that already holds this name

        Raises:
            EmptyUploadError: `content` is empty
            InvalidFileNameError: `name` is not a safe bare file name
            UploadTooLargeError: `content` exceeds `max_upload_bytes`
            StorageError, MetadataStoreError: the file or the sidecar could not be written
        """
        if not content:
            logger.warning("Rejected empty upload")
            raise EmptyUploadError(name)
        if self.max_upload_bytes is not None and len(content) > self.max_upload_bytes:
            raise UploadTooLargeError(len(content), self.max_upload_bytes)
        self.file_store.resolve(name)

        size = len(content)
        with self.metadata_store.lock:
            existing = self.find_duplicate(name, size)
            if existing is not None:
                return UploadResult(
                    status=UploadStatus.DUPLICATE,
                    record=existing,
                    message=f"A file named {name} already exists",
                )

            self.file_store.write(name, content)
            record = Record(
                id=generate_record_id(),
                name=name,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                size=size,
            )
            try:
                self.metadata_store.put(record)
            except CatalogIOError:
                logger.error(f"File {name} was written but its metadata could not be saved")
                raise

        logger.info(f"Added metadata for {name} as {record.id}")
        return UploadResult(status=UploadStatus.CREATED, record=record, message=f"Uploaded {name}")

    def list_records(self) -> List[Record]:
        records = self.metadata_store.list()
        if not records:
            logger.info("The catalog is empty")
        return records

    def get(self, record_id: str) -> Record:
        record = self.metadata_store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    @log_execution_time
    def download(self, record_id: str) -> Download:
        """Locate the file behind a record.

        Raises:
            RecordNotFoundError: no record has this id
            FileMissingError: the record exists but its file is gone
        """
        record = self.get(record_id)
        path = self.file_store.resolve(record.name)
        if not path.is_file():
            logger.error(f"Record {record_id} points at missing file {record.name}")
            raise FileMissingError(record.name)
        logger.info(f"Serving download of {record.name}")
        return Download(record=record, path=path, content_disposition=content_disposition(record.name))

    @log_execution_time
    def delete(self, record_id: str) -> DeleteResult:
        """Remove a record and its file. Unknown ids give a NOT_FOUND result."""
        with self.metadata_store.lock:
            record = self.metadata_store.get(record_id)
            if record is None:
                logger.info(f"Delete requested for unknown id {record_id}")
                return DeleteResult(status=DeleteStatus.NOT_FOUND, record_id=record_id)

            try:
                file_deleted = self.file_store.delete(record.name)
            except InvalidFileNameError as e:
                # never touch a path outside the upload directory, but drop the entry
                logger.warning(f"Record {record_id} has an unsafe stored name, skipping the file: {e}")
                file_deleted = False
            self.metadata_store.remove(record_id)

        logger.info(f"Deleted {record.name} and its metadata ({record_id})")
        return DeleteResult(
            status=DeleteStatus.DELETED,
            record_id=record_id,
            record=record,
            file_deleted=file_deleted,
        )

    def metadata_json(self) -> str:
        return self.metadata_store.raw()
