from .base import CatalogClient, CatalogError
from .jellyfin import JellyfinClient, jellyfin_client

__all__ = ["CatalogClient", "CatalogError", "JellyfinClient", "jellyfin_client"]
