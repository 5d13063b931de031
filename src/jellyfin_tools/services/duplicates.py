"""Duplicate movie detection and keep/delete recommendations."""

from __future__ import annotations

import logging
import re
from datetime import datetime

from jellyfin_tools.clients.base import CatalogClient
from jellyfin_tools.models import DuplicateGroup, DuplicateScanResult, MovieRecord
from jellyfin_tools.services.resolution import resolve_dimensions

logger = logging.getLogger(__name__)

TICKS_PER_SECOND = 10_000_000

EDITION_MARKERS = (
    "director's cut",
    "extended",
    "unrated",
    "remastered",
    "4k",
    "1080p",
    "720p",
    "bluray",
    "dvd",
)

_TRAILING_YEAR = re.compile(r"\s*\(\d{4}\)$")
_EDITION_MARKER = re.compile(
    r"(?<!\w)(?:" + "|".join(re.escape(marker) for marker in EDITION_MARKERS) + r")(?!\w)",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")
_DISALLOWED_CHARS = re.compile(r"[^\w\s\u4e00-\u9fff]")


def normalize_title(name: str) -> str:
    """Reduce a display title to the key used for duplicate grouping.

    >>> normalize_title("Inception (2010)")
    'inception'
    >>> normalize_title("FOO Extended")
    'foo'
    """
    normalized = name.strip().lower()
    normalized = _TRAILING_YEAR.sub("", normalized)
    normalized = _EDITION_MARKER.sub(" ", normalized)
    normalized = _WHITESPACE.sub(" ", normalized)
    normalized = _DISALLOWED_CHARS.sub("", normalized)
    return normalized.strip()


def detect_duplicates(movies: list[MovieRecord]) -> DuplicateScanResult:
    buckets: dict[str, list[MovieRecord]] = {}
    for movie in movies:
        buckets.setdefault(normalize_title(movie.name), []).append(movie)

    groups: list[DuplicateGroup] = []
    for members in buckets.values():
        if len(members) < 2:
            continue
        ordered = sorted(members, key=lambda movie: movie.name)
        groups.append(DuplicateGroup(representative_name=ordered[0].name, members=ordered))

    # sorted() is stable, so equal-sized groups keep discovery order.
    groups = sorted(groups, key=lambda group: group.count, reverse=True)

    return DuplicateScanResult(
        total_movies_scanned=len(movies),
        groups=groups,
        scan_timestamp=datetime.now().isoformat(timespec="seconds"),
    )


def rank_members(group: DuplicateGroup) -> list[MovieRecord]:
    """Order group members best-first by resolution, size, bitrate, rating, runtime, year, name."""
    return sorted(group.members, key=_quality_key)


def recommend_for_deletion(group: DuplicateGroup) -> list[MovieRecord]:
    """Return every member except the best-ranked one, in ranked order."""
    if len(group.members) <= 1:
        return []
    return rank_members(group)[1:]


def _quality_key(movie: MovieRecord) -> tuple[float, ...]:
    width, height, _ = resolve_dimensions(movie)
    area = (width or 0) * (height or 0)
    return (
        -area,
        -(movie.effective_size or 0),
        -(movie.effective_bitrate or 0),
        -(movie.community_rating or 0.0),
        -(movie.run_time_ticks or 0),
        -(movie.production_year or 0),
        len(movie.name),
    )


def format_file_size(size_bytes: int) -> str:
    units = ("B", "KB", "MB", "GB", "TB")
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.1f}{units[unit_index]}"


def format_runtime(run_time_ticks: int | None) -> str:
    if run_time_ticks is None:
        return "unknown"
    total_minutes = run_time_ticks // TICKS_PER_SECOND // 60
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def movie_tech_summary(movie: MovieRecord) -> str:
    parts: list[str] = []
    width, height, _ = resolve_dimensions(movie)
    if width is not None and height is not None:
        parts.append(f"{width}x{height}")
    if container := movie.effective_container:
        parts.append(container.upper())
    size = movie.effective_size
    if size is not None:
        parts.append(format_file_size(size))
    if codec := movie.effective_video_codec:
        parts.append(codec.upper())
    return " | ".join(parts) if parts else "incomplete info"


def movie_display_info(movie: MovieRecord) -> dict[str, str]:
    return {
        "Name": movie.name,
        "Original title": movie.original_title or "none",
        "Year": str(movie.production_year) if movie.production_year else "unknown",
        "Genres": ", ".join(movie.genres) or "unknown",
        "Rating": str(movie.community_rating) if movie.community_rating is not None else "none",
        "Runtime": format_runtime(movie.run_time_ticks),
        "ID": movie.id,
    }


class DuplicateMovieService:
    """Scans a user's library for duplicate movie entries."""

    def __init__(self, client: CatalogClient) -> None:
        self._client = client

    async def scan(self, user_id: str) -> DuplicateScanResult:
        movies = await self._client.list_all_movies(user_id)
        logger.info(f"Scanning {len(movies)} movies for duplicates")
        result = detect_duplicates(movies)
        logger.info(
            f"Found {len(result.groups)} duplicate groups, "
            f"{result.total_duplicate_excess} redundant entries"
        )
        return result


__all__ = [
    "DuplicateMovieService",
    "detect_duplicates",
    "format_file_size",
    "format_runtime",
    "movie_display_info",
    "movie_tech_summary",
    "normalize_title",
    "rank_members",
    "recommend_for_deletion",
]
