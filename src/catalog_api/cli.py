# cli.py
import logging
import mimetypes
from pathlib import Path

import click

from catalog_api.config.settings import get_settings
from catalog_api.errors import CatalogError, UploadStatus
from catalog_api.logging_config import configure_logging
from catalog_api.services.catalog import CatalogService

# Configure logging
logger = logging.getLogger(__name__)


def _catalog() -> CatalogService:
    return CatalogService.from_settings(get_settings())


@click.group()
def cli():
    """CLI commands for the book catalog"""
    configure_logging(get_settings().log_level)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the HTTP service with uvicorn"""
    import uvicorn

    uvicorn.run("catalog_api.main:create_app", host=host, port=port, reload=reload, factory=True)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  App Name: {settings.app_name}")
    click.echo(f"  Upload Directory: {settings.upload_path.resolve()}")
    click.echo(f"  Metadata File: {settings.metadata_filename}")
    click.echo(f"  Max Upload Bytes: {settings.max_upload_bytes or 'unlimited'}")
    click.echo(f"  Log Level: {settings.log_level}")


@cli.command(name="list")
def list_records():
    """List catalog records"""
    records = _catalog().list_records()
    if not records:
        click.echo("The catalog is empty")
        return
    for record in records:
        click.echo(f"{record.id}\t{record.size}\t{record.content_type}\t{record.name}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--content-type", default=None, help="MIME type (guessed from the file name if omitted)")
def upload(path, content_type):
    """Add a local file to the catalog"""
    content_type = content_type or mimetypes.guess_type(path.name)[0]
    try:
        result = _catalog().upload(path.read_bytes(), path.name, content_type)
    except CatalogError as e:
        raise click.ClickException(str(e))

    if result.status is UploadStatus.DUPLICATE:
        click.echo(f"Skipped: {result.message} ({result.record.id})")
    else:
        click.echo(f"Uploaded {result.record.name} as {result.record.id}")


@cli.command()
@click.argument("record_id")
def delete(record_id):
    """Delete a record and its file"""
    result = _catalog().delete(record_id)
    if not result.deleted:
        raise click.ClickException(f"No record with id '{record_id}'")
    click.echo(f"Deleted {result.record.name}")


if __name__ == "__main__":
    cli()
