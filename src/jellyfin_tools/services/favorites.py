"""Favorites export, snapshot persistence, and re-import with name-based reconciliation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import ValidationError

from jellyfin_tools.clients.base import CatalogClient
from jellyfin_tools.models import FavoritesSnapshot, ImportOutcome, MovieRecord, PersonRecord
from jellyfin_tools.services.progress import ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)

IMPORT_PACING_SECONDS = 0.2


class _Named(Protocol):
    name: str


RecordT = TypeVar("RecordT", bound=_Named)


class SnapshotError(RuntimeError):
    """Raised when a snapshot file cannot be read or parsed."""


class FavoritesSynchronizer:
    """Exports a user's favorites and re-applies them to a (possibly different) server."""

    def __init__(self, client: CatalogClient, *, pacing_delay: float = IMPORT_PACING_SECONDS) -> None:
        self._client = client
        self._pacing_delay = pacing_delay

    async def export_favorites(self, user_id: str) -> FavoritesSnapshot:
        # The client returns [] on failure, so one failing list never aborts the export.
        movies = await self._client.list_favorite_movies(user_id)
        logger.info(f"Found {len(movies)} favorite movies")
        people = await self._client.list_favorite_people(user_id)
        logger.info(f"Found {len(people)} favorite people")

        return FavoritesSnapshot(
            export_date=datetime.now().isoformat(timespec="seconds"),
            server_url=self._client.server_url,
            user_id=user_id,
            favorite_movies=movies,
            favorite_people=people,
        )

    async def import_favorites(
        self,
        user_id: str,
        snapshot: FavoritesSnapshot,
        *,
        progress: ProgressCallback | None = None,
    ) -> ImportOutcome:
        """Mark every snapshot movie and person as favorite for ``user_id``.

        Items are attempted strictly in order, movies first. Each item is tried by its
        snapshot id, then by an exact-name search match. Failures are counted and
        reported in ``errors``; the batch never stops early.
        """
        errors: list[str] = []

        logger.info(f"Importing {len(snapshot.favorite_movies)} movies for user {user_id}")
        imported_movies, failed_movies = await self._reconcile_all(
            snapshot.favorite_movies,
            category="movie",
            reconcile=lambda movie: self._import_movie(user_id, movie),
            errors=errors,
            progress=progress,
        )

        logger.info(f"Importing {len(snapshot.favorite_people)} people for user {user_id}")
        imported_people, failed_people = await self._reconcile_all(
            snapshot.favorite_people,
            category="person",
            reconcile=lambda person: self._import_person(user_id, person),
            errors=errors,
            progress=progress,
        )

        outcome = ImportOutcome(
            total_movies=len(snapshot.favorite_movies),
            imported_movies=imported_movies,
            failed_movies=failed_movies,
            total_people=len(snapshot.favorite_people),
            imported_people=imported_people,
            failed_people=failed_people,
            errors=errors,
        )
        logger.info(
            f"Import finished: movies {imported_movies}/{outcome.total_movies}, "
            f"people {imported_people}/{outcome.total_people}"
        )
        return outcome

    async def _reconcile_all(
        self,
        items: Sequence[RecordT],
        *,
        category: str,
        reconcile: Callable[[RecordT], Awaitable[bool]],
        errors: list[str],
        progress: ProgressCallback | None,
    ) -> tuple[int, int]:
        imported = 0
        failed = 0
        total = len(items)
        for index, item in enumerate(items, start=1):
            name = item.name
            try:
                success = await reconcile(item)
            except Exception as exc:  # one item never aborts the batch
                success = False
                errors.append(f"Error importing {category}: {name} - {exc}")
            else:
                if not success:
                    errors.append(f"Failed to import {category}: {name}")

            if success:
                imported += 1
                logger.info(f"Imported {category}: {name} ({index}/{total})")
            else:
                failed += 1
                logger.info(f"Could not import {category}: {name} ({index}/{total})")

            if progress is not None:
                event = ProgressEvent(
                    category=category,
                    processed=index,
                    total=total,
                    name=name,
                    succeeded=success,
                )
                try:
                    progress(event)
                except Exception as exc:  # a broken listener never stops the import
                    logger.warning(f"Progress callback failed for {category} {name}: {exc}")

            await asyncio.sleep(self._pacing_delay)
        return imported, failed

    async def _import_movie(self, user_id: str, movie: MovieRecord) -> bool:
        if await self._client.set_movie_favorite(user_id, movie.id, True):
            return True

        # Ids are not stable across servers; fall back to an exact title match.
        candidates = await self._client.search_movies_by_name(movie.name)
        match = next(
            (
                candidate
                for candidate in candidates
                if candidate.name == movie.name or candidate.original_title == movie.name
            ),
            None,
        )
        if match is None:
            return False
        return await self._client.set_movie_favorite(user_id, match.id, True)

    async def _import_person(self, user_id: str, person: PersonRecord) -> bool:
        if await self._client.set_person_favorite(user_id, person.id, True):
            return True

        candidates = await self._client.search_people_by_name(person.name)
        match = next((candidate for candidate in candidates if candidate.name == person.name), None)
        if match is None:
            return False
        return await self._client.set_person_favorite(user_id, match.id, True)


def dump_snapshot(snapshot: FavoritesSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True, exclude_defaults=True, indent=2)


def parse_snapshot(text: str) -> FavoritesSnapshot:
    try:
        return FavoritesSnapshot.model_validate_json(text)
    except ValidationError as exc:
        raise SnapshotError(f"Malformed snapshot: {exc}") from exc


def write_snapshot(path: Path, snapshot: FavoritesSnapshot) -> Path:
    path.write_text(dump_snapshot(snapshot), encoding="utf-8")
    return path


def read_snapshot(path: Path) -> FavoritesSnapshot:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Unable to read {path}: {exc}") from exc
    return parse_snapshot(text)


__all__ = [
    "FavoritesSynchronizer",
    "SnapshotError",
    "dump_snapshot",
    "parse_snapshot",
    "read_snapshot",
    "write_snapshot",
]
