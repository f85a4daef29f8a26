import logging
from pathlib import Path as FilePath
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Path,
    Query,
    Request,
    Response,
    UploadFile,
    status
)
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from catalog_api.errors import DeleteStatus, UploadStatus
from catalog_api.schemas import (
    DeleteResponse,
    ListRecordsResponse,
    Record,
    UploadResponse,
)
from catalog_api.services.catalog import CatalogService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = FilePath(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog


def wants_json(request: Request, response_format: Optional[str] = None) -> bool:
    if response_format is not None:
        return response_format.lower() == "json"
    return "application/json" in request.headers.get("accept", "")


@router.get("/", response_class=HTMLResponse)
async def show_upload_form(request: Request):
    """Render the upload form."""
    return templates.TemplateResponse(request, "upload.html", {})


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        status.HTTP_201_CREATED: {"model": UploadResponse, "description": "File stored."},
        status.HTTP_200_OK: {"model": UploadResponse, "description": "Duplicate, nothing stored."},
        status.HTTP_400_BAD_REQUEST: {"description": "Empty file or unusable file name."},
    },
)
async def upload_file(
    response: Response,
    file: UploadFile = File(..., description="The file to add to the catalog"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> UploadResponse:
    """
    Upload a file into the catalog.

    A file whose name is already in the catalog is not stored again, even when its
    size differs; the response then carries the existing record.
    """
    content = await file.read()
    result = catalog.upload(content=content, name=file.filename or "", content_type=file.content_type)

    if result.status is UploadStatus.CREATED:
        response.status_code = status.HTTP_201_CREATED
    else:
        response.status_code = status.HTTP_200_OK
    return UploadResponse(status=result.status, message=result.message, record=result.record)


@router.get(
    "/books",
    responses={
        status.HTTP_200_OK: {
            "description": "HTML list of books, or JSON when requested.",
            "content": {"application/json": {"schema": ListRecordsResponse.model_json_schema()}},
        },
    },
)
async def list_books(
    request: Request,
    response_format: Optional[str] = Query(None, alias="format", description="Set to `json` for a JSON response"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """List every record in the catalog."""
    records = catalog.list_records()
    if wants_json(request, response_format):
        return ListRecordsResponse(records=records, total_count=len(records))
    return templates.TemplateResponse(request, "list.html", {"books": records})


@router.get(
    "/books/{record_id}",
    response_model=Record,
    responses={status.HTTP_404_NOT_FOUND: {"description": "No record with this id."}},
)
async def get_book(
    record_id: str = Path(..., description="The id of the record"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> Record:
    """Retrieve one record's metadata."""
    return catalog.get(record_id)


@router.get(
    "/download/{record_id}",
    responses={
        status.HTTP_404_NOT_FOUND: {
            "description": "Unknown id, or the file is missing from disk.",
        },
        status.HTTP_200_OK: {
            "description": "The file content.",
            "content": {
                "application/octet-stream": {
                    "schema": {"type": "string", "format": "binary"},
                },
            },
        },
    },
)
async def download_file(
    record_id: str = Path(..., description="The id of the record to download"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> FileResponse:
    """Download the file behind a record."""
    download = catalog.download(record_id)
    return FileResponse(
        path=download.path,
        media_type="application/octet-stream",
        headers={"Content-Disposition": download.content_disposition},
    )


@router.get("/delete/{record_id}")
async def delete_file_and_redirect(
    request: Request,
    record_id: str = Path(..., description="The id of the record to delete"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Delete a record and its file, then go back to the book list."""
    result = catalog.delete(record_id)
    if result.status is DeleteStatus.NOT_FOUND and wants_json(request):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No record with id '{record_id}'")
    return RedirectResponse(url="/books", status_code=status.HTTP_303_SEE_OTHER)


@router.delete(
    "/books/{record_id}",
    response_model=DeleteResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "No record with this id."},
    },
)
async def delete_book(
    record_id: str = Path(..., description="The id of the record to delete"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> DeleteResponse:
    """Delete a record and its file."""
    result = catalog.delete(record_id)
    if result.status is DeleteStatus.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No record with id '{record_id}'")
    message = f"Deleted {result.record.name}"
    if not result.file_deleted:
        message += " (file was already missing)"
    return DeleteResponse(
        id=record_id,
        status=result.status,
        file_deleted=result.file_deleted,
        message=message,
    )


@router.get("/metadata")
async def get_metadata(catalog: CatalogService = Depends(get_catalog_service)) -> Response:
    """Return the metadata sidecar exactly as stored."""
    return Response(content=catalog.metadata_json(), media_type="application/json")
