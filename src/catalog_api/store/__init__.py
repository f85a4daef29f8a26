from catalog_api.store.files import FileStore
from catalog_api.store.metadata import MetadataStore

__all__ = ["FileStore", "MetadataStore"]
