import logging
from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from catalog_api.config.settings import Settings
from catalog_api.errors import (
    CatalogError,
    handle_broad_exceptions,
    handle_catalog_errors,
    handle_pydantic_validation_errors,
)
from catalog_api.logging_config import configure_logging
from catalog_api.routers.books import router as books_router
from catalog_api.routers.health import router as health_router
from catalog_api.services.catalog import CatalogService

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Book Catalog",
        summary="Upload, list, download and delete files",
        version="v1",
        description=dedent(
            """\
        Files are stored in the upload directory; their name, content type and size
        are kept in a JSON metadata file next to them, keyed by a generated id.

        | Endpoint | Notes |
        | --- | --- |
        | `GET /books?format=json` | JSON listing |
        | `GET /metadata` | the raw metadata file |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    logger.info(f"Using upload directory {settings.upload_path.resolve()}")
    app.state.catalog = CatalogService.from_settings(settings)

    app.include_router(books_router, tags=["books"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=CatalogError,
        handler=handle_catalog_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
