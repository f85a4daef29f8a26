from tests.fixtures.catalog_fixtures import (  # noqa: F401
    catalog,
    client,
    env_upload_dir,
    file_store,
    metadata_store,
    settings,
    upload_dir,
)
