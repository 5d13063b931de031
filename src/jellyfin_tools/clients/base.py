from __future__ import annotations

from typing import Protocol

from jellyfin_tools.models import CatalogUser, MovieRecord, PersonRecord


class CatalogClient(Protocol):
    """Capabilities the favorites, duplicate and resolution services need from a media catalog.

    Implementations convert transport and HTTP failures into empty results or ``False``
    instead of raising, so batch operations can continue past individual failures.
    """

    @property
    def server_url(self) -> str: ...

    async def test_connection(self) -> bool: ...

    async def list_users(self) -> list[CatalogUser]: ...

    async def list_all_movies(self, user_id: str) -> list[MovieRecord]: ...

    async def list_favorite_movies(self, user_id: str) -> list[MovieRecord]: ...

    async def list_favorite_people(self, user_id: str) -> list[PersonRecord]: ...

    async def set_movie_favorite(self, user_id: str, movie_id: str, flag: bool) -> bool: ...

    async def set_person_favorite(self, user_id: str, person_id: str, flag: bool) -> bool: ...

    async def search_movies_by_name(self, name: str) -> list[MovieRecord]: ...

    async def search_people_by_name(self, name: str) -> list[PersonRecord]: ...


class CatalogError(RuntimeError):
    """Raised by the HTTP layer when a catalog request fails."""


__all__ = ["CatalogClient", "CatalogError"]
