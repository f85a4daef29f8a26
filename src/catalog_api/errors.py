"""
Error taxonomy, operation results and FastAPI error handlers.

Store and service code raise the typed exceptions below; the HTTP layer maps
them onto status codes in `handle_catalog_errors`.
"""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from catalog_api.schemas import Record

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base class for every error raised by the catalog."""


class CatalogIOError(CatalogError, IOError):
    """Filesystem or JSON read/write failure."""


class StorageError(CatalogIOError):
    """The upload directory or a stored file could not be created, written or read."""


class MetadataStoreError(CatalogIOError):
    """The metadata sidecar is unreadable, corrupt or could not be written."""


class NotFoundError(CatalogError):
    """Something addressed by id or name does not exist."""


class RecordNotFoundError(NotFoundError):
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"No record with id '{record_id}'")


class FileMissingError(NotFoundError):
    """A record exists but the file it points at is gone from disk."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"File '{name}' is missing from the upload directory")


class CatalogValidationError(CatalogError, ValueError):
    """Client supplied input that cannot be accepted."""


class EmptyUploadError(CatalogValidationError):
    def __init__(self, name: Optional[str] = None):
        self.name = name
        super().__init__("Please choose a non-empty file to upload")


class InvalidFileNameError(CatalogValidationError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid file name {name!r}: {reason}")


class UploadTooLargeError(CatalogValidationError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Upload of {size} bytes exceeds the {limit} byte limit")


class UploadStatus(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"


class DeleteStatus(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"


@dataclass
class UploadResult:
    """Outcome of `CatalogService.upload`."""

    status: UploadStatus
    record: Optional["Record"]
    message: str

    @property
    def created(self) -> bool:
        return self.status is UploadStatus.CREATED


@dataclass
class DeleteResult:
    """Outcome of `CatalogService.delete`. `record` is None when the id was unknown."""

    status: DeleteStatus
    record_id: str
    record: Optional["Record"] = None
    file_deleted: bool = False

    @property
    def deleted(self) -> bool:
        return self.status is DeleteStatus.DELETED


async def handle_catalog_errors(request: Request, exc: CatalogError) -> JSONResponse:
    """Map catalog exceptions onto HTTP status codes."""
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, UploadTooLargeError):
        status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(exc, CatalogValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": [
                {
                    "msg": error["msg"],
                    "input": error.get("input"),
                }
                for error in errors
            ]
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:  # pylint: disable=broad-except
        logger.error(f"Unhandled error on {request.method} {request.url.path}:\n{traceback.format_exc()}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
