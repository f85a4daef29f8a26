"""
Configuration management for the catalog.

Contains the Pydantic settings model and the cached accessor used by the app
factory and the CLI.
"""

from catalog_api.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
