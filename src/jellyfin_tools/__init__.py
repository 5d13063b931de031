"""Favorites export/import, duplicate detection and resolution filtering for Jellyfin."""

__version__ = "0.1.0"

__all__ = ["__version__"]
