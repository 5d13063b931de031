from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from jellyfin_tools import __version__
from jellyfin_tools.clients.base import CatalogError
from jellyfin_tools.models import CatalogUser, MovieRecord, PersonRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
FAVORITE_DELAY_SECONDS = 0.1
USER_AGENT = f"jellyfin-tools/{__version__}"

LIBRARY_FIELDS = (
    "Genres,People,UserData,Overview,Path,FileName,DateCreated,MediaSources,Size,"
    "Container,Width,Height,AspectRatio,Bitrate,VideoCodec,AudioCodec,DateModified"
)
FAVORITE_FIELDS = "Genres,People,UserData,Overview"

ModelT = TypeVar("ModelT", bound=BaseModel)


class JellyfinClient:
    """Thin asynchronous wrapper around the Jellyfin REST API.

    Failures never escape the public methods: reads return empty lists and
    favorite toggles return ``False`` so callers can aggregate per-item results.
    """

    def __init__(
        self,
        server_url: str,
        api_token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        favorite_delay: float = FAVORITE_DELAY_SECONDS,
        max_attempts: int = 3,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._favorite_delay = favorite_delay
        self._max_attempts = max(1, max_attempts)

        headers = {
            "X-Emby-Token": api_token,
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            headers=headers,
            timeout=timeout,
        )

    @property
    def server_url(self) -> str:
        return self._server_url

    async def close(self) -> None:
        await self._client.aclose()

    async def test_connection(self) -> bool:
        try:
            await self._get_json("/System/Info")
        except CatalogError as exc:
            logger.warning(f"Connection test failed: {exc}")
            return False
        return True

    async def list_users(self) -> list[CatalogUser]:
        return await self._fetch_items("/Users", None, CatalogUser, context="List users")

    async def resolve_user_id(self, preferred: str | None = None) -> str | None:
        """Return ``preferred`` when given, otherwise the first user reported by the server."""
        if preferred:
            return preferred
        users = await self.list_users()
        return users[0].id if users else None

    async def list_all_movies(self, user_id: str) -> list[MovieRecord]:
        params = {
            "IncludeItemTypes": "Movie",
            "Fields": LIBRARY_FIELDS,
            "Recursive": "true",
            "Limit": "10000",
            "SortBy": "SortName",
            "SortOrder": "Ascending",
        }
        return await self._fetch_items(
            f"/Users/{user_id}/Items", params, MovieRecord, context="List library movies"
        )

    async def list_favorite_movies(self, user_id: str) -> list[MovieRecord]:
        params = {
            "IncludeItemTypes": "Movie",
            "Filters": "IsFavorite",
            "Fields": FAVORITE_FIELDS,
            "Recursive": "true",
            "Limit": "1000",
        }
        return await self._fetch_items(
            f"/Users/{user_id}/Items", params, MovieRecord, context="List favorite movies"
        )

    async def list_favorite_people(self, user_id: str) -> list[PersonRecord]:
        params = {
            "StartIndex": "0",
            "Limit": "100",
            "Fields": "PrimaryImageAspectRatio,SortName",
            "ImageTypeLimit": "1",
            "Recursive": "true",
            "IsFavorite": "true",
            "SortBy": "SortName",
            "SortOrder": "Ascending",
            "userId": user_id,
        }
        people = await self._fetch_items(
            "/Persons", params, PersonRecord, context="List favorite people"
        )
        if not people:
            logger.info(
                f"No favorite people returned for user {user_id}; "
                "check the user id and the token's permissions"
            )
        return people

    async def set_movie_favorite(self, user_id: str, movie_id: str, flag: bool) -> bool:
        return await self._set_favorite(user_id, movie_id, flag, kind="movie")

    async def set_person_favorite(self, user_id: str, person_id: str, flag: bool) -> bool:
        return await self._set_favorite(user_id, person_id, flag, kind="person")

    async def search_movies_by_name(self, name: str) -> list[MovieRecord]:
        params = {
            "searchTerm": name,
            "IncludeItemTypes": "Movie",
            "Fields": FAVORITE_FIELDS,
            "Recursive": "true",
            "Limit": "10",
        }
        return await self._fetch_items(
            "/Items", params, MovieRecord, context=f"Search movies '{name}'"
        )

    async def search_people_by_name(self, name: str) -> list[PersonRecord]:
        params = {
            "searchTerm": name,
            "IncludeItemTypes": "Person",
            "Fields": "UserData",
            "Recursive": "true",
            "Limit": "10",
        }
        return await self._fetch_items(
            "/Items", params, PersonRecord, context=f"Search people '{name}'"
        )

    async def _set_favorite(self, user_id: str, item_id: str, flag: bool, *, kind: str) -> bool:
        method = "POST" if flag else "DELETE"
        try:
            response = await self._client.request(method, f"/Users/{user_id}/FavoriteItems/{item_id}")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(f"Setting {kind} favorite failed (id: {item_id}): {exc}")
            return False
        finally:
            # Upstream rate limit: pace every toggle, successful or not.
            await asyncio.sleep(self._favorite_delay)
        return True

    async def _fetch_items(
        self,
        path: str,
        params: Mapping[str, str] | None,
        model: type[ModelT],
        *,
        context: str,
    ) -> list[ModelT]:
        try:
            payload = await self._get_json(path, params=params)
            return [model.model_validate(item) for item in _items_of(payload)]
        except (CatalogError, ValidationError) as exc:
            logger.warning(f"{context} failed: {exc}")
            return []

    async def _get_json(self, path: str, params: Mapping[str, str] | None = None) -> Any:
        try:
            async for attempt in _retry_policy(self._max_attempts):
                with attempt:
                    response = await self._client.get(path, params=params)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPError as exc:
            raise CatalogError(f"GET {path}: {exc}") from exc
        except ValueError as exc:  # body was not JSON
            raise CatalogError(f"GET {path} returned a non-JSON body") from exc
        raise CatalogError(f"GET {path}: no attempt was made")

    async def __aenter__(self) -> JellyfinClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


@asynccontextmanager
async def jellyfin_client(
    server_url: str,
    api_token: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
):
    client = JellyfinClient(server_url=server_url, api_token=api_token, timeout=timeout)
    try:
        yield client
    finally:
        await client.close()


def movie_web_url(server_url: str, movie_id: str) -> str:
    """Link to the movie's details page in the Jellyfin web client."""
    return f"{server_url.rstrip('/')}/web/index.html#!/details?id={movie_id}"


def _items_of(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("Items") or []
    raise CatalogError(f"Unexpected payload type: {type(payload).__name__}")


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _retry_policy(max_attempts: int) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, max=6),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


__all__ = ["JellyfinClient", "jellyfin_client", "movie_web_url"]
