####################################
# --- Request/response schemas --- #
####################################

from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator
)

from catalog_api.errors import DeleteStatus, UploadStatus

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class Record(BaseModel):
    """One catalog entry: an uploaded file and its metadata."""
    id: str = Field(
        description="Generated id, `<yyyyMMdd_HHmmss>_<8 hex>`.",
        json_schema_extra={"example": "20240101_123456_1a2b3c4d"},
    )
    name: str = Field(
        description="Stored file name inside the upload directory.",
        json_schema_extra={"example": "moby_dick.epub"},
    )
    content_type: str = Field(
        DEFAULT_CONTENT_TYPE,
        description="MIME type reported by the client at upload time.",
    )
    size: int = Field(ge=0, description="The size of the file in bytes.")

    model_config = ConfigDict(frozen=True)

    @field_validator("size", mode="before")
    @classmethod
    def parse_stringified_size(cls, v: Any) -> Any:
        # the sidecar stores sizes as strings
        if isinstance(v, str):
            return int(v.strip())
        return v

    def to_metadata_entry(self) -> Dict[str, str]:
        """Serialize to the sidecar's `{name, type, size}` layout, size as a string."""
        return {
            "name": self.name,
            "type": self.content_type,
            "size": str(self.size),
        }

    @classmethod
    def from_metadata_entry(cls, record_id: str, entry: Mapping[str, Any]) -> "Record":
        return cls(
            id=record_id,
            name=entry["name"],
            content_type=entry.get("type") or DEFAULT_CONTENT_TYPE,
            size=entry["size"],
        )


class UploadResponse(BaseModel):
    """Response model for `POST /upload`."""
    status: UploadStatus
    message: str = Field(description="A message about the operation.")
    record: Optional[Record] = Field(
        None,
        description="The created record, or the existing one for a duplicate upload.",
    )


class ListRecordsResponse(BaseModel):
    """Response model for `GET /books` when JSON is requested."""
    records: List[Record]
    total_count: int = Field(description="Total number of records")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "records": [
                    {
                        "id": "20240101_123456_1a2b3c4d",
                        "name": "moby_dick.epub",
                        "content_type": "application/epub+zip",
                        "size": 512,
                    }
                ],
                "total_count": 1,
            }
        }
    )


class DeleteResponse(BaseModel):
    """Response model for `DELETE /books/:id`."""
    id: str
    status: DeleteStatus
    file_deleted: bool = Field(description="Whether a file was removed from disk.")
    message: str


class HealthResponse(BaseModel):
    status: str
    upload_dir: str
    upload_dir_writable: bool
    record_count: Optional[int] = None
