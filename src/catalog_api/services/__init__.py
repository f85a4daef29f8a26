from catalog_api.services.catalog import CatalogService

__all__ = ["CatalogService"]
