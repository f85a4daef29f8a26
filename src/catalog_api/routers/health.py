import logging
import os

from fastapi import APIRouter, Depends

from catalog_api.errors import MetadataStoreError
from catalog_api.routers.books import get_catalog_service
from catalog_api.schemas import HealthResponse
from catalog_api.services.catalog import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(catalog: CatalogService = Depends(get_catalog_service)) -> HealthResponse:
    """
    Health check endpoint for monitoring API status.

    Reports whether the upload directory is writable and how many records the
    metadata file holds; a sidecar that cannot be read marks the service degraded.
    """
    upload_dir = catalog.file_store.upload_dir
    writable = upload_dir.is_dir() and os.access(upload_dir, os.W_OK)

    health_status = "ok" if writable else "degraded"
    record_count = None
    try:
        record_count = len(catalog.metadata_store.load())
    except MetadataStoreError as e:
        logger.warning(f"Health check could not read metadata: {e}")
        health_status = "degraded"

    return HealthResponse(
        status=health_status,
        upload_dir=str(upload_dir),
        upload_dir_writable=writable,
        record_count=record_count,
    )
