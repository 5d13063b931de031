"""Resolution classification and low-resolution filtering."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from jellyfin_tools.clients.base import CatalogClient
from jellyfin_tools.models import (
    MovieRecord,
    MovieResolution,
    ResolutionFilterResult,
    ResolutionInfo,
    ResolutionStatistics,
)

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"

# Ascending; a resolution falls in the first bucket whose width AND height bound it.
RESOLUTION_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("480p", 854, 480),
    ("720p", 1280, 720),
    ("1080p", 1920, 1080),
    ("4K", 3840, 2160),
)
ABOVE_4K_BUCKET = "above-4K"


class ResolutionPreset(str, Enum):
    SD_480P = "480p"
    HD_720P = "720p"
    HD_1080P = "1080p"
    UHD_4K = "4k"

    @property
    def max_dimensions(self) -> tuple[int, int]:
        return _PRESET_DIMENSIONS[self]


_PRESET_DIMENSIONS: dict[ResolutionPreset, tuple[int, int]] = {
    ResolutionPreset.SD_480P: (854, 480),
    ResolutionPreset.HD_720P: (1280, 720),
    ResolutionPreset.HD_1080P: (1920, 1080),
    ResolutionPreset.UHD_4K: (3840, 2160),
}


def resolve_dimensions(movie: MovieRecord) -> tuple[int | None, int | None, str]:
    """Return ``(width, height, source)`` using movie > media source > video stream precedence.

    A level supplies values only when both width and height are present there.
    Zero or negative values count as present.
    """
    if movie.width is not None and movie.height is not None:
        return movie.width, movie.height, "movie"

    source = movie.primary_source
    if source is None:
        return None, None, UNKNOWN_LABEL
    if source.width is not None and source.height is not None:
        return source.width, source.height, "mediaSource"

    stream = source.first_video_stream()
    if stream is not None and stream.width is not None and stream.height is not None:
        return stream.width, stream.height, "mediaStream"

    return None, None, UNKNOWN_LABEL


def classify(
    movie: MovieRecord,
    max_width: int,
    max_height: int,
    include_unknown_as_match: bool = False,
) -> ResolutionInfo:
    width, height, source = resolve_dimensions(movie)
    if width is None or height is None:
        return ResolutionInfo(
            width=None,
            height=None,
            display_label=UNKNOWN_LABEL,
            is_below_threshold=include_unknown_as_match,
            source=UNKNOWN_LABEL,
        )

    return ResolutionInfo(
        width=width,
        height=height,
        display_label=f"{width}x{height}",
        is_below_threshold=width < max_width or height < max_height,
        source=source,
    )


def categorize_resolution(width: int, height: int) -> str:
    for label, bucket_width, bucket_height in RESOLUTION_BUCKETS:
        if width <= bucket_width and height <= bucket_height:
            return label
    return ABOVE_4K_BUCKET


class ResolutionFilterService:
    """Finds library movies below a target resolution."""

    def __init__(self, client: CatalogClient) -> None:
        self._client = client

    async def filter_below(
        self,
        user_id: str,
        max_width: int,
        max_height: int,
        *,
        include_unknown: bool = False,
    ) -> ResolutionFilterResult:
        movies = await self._client.list_all_movies(user_id)
        logger.info(f"Filtering {len(movies)} movies below {max_width}x{max_height}")

        matches: list[MovieResolution] = []
        for movie in movies:
            info = classify(movie, max_width, max_height, include_unknown)
            if info.is_below_threshold:
                matches.append(MovieResolution(movie=movie, resolution=info))

        logger.info(f"Found {len(matches)} movies below {max_width}x{max_height}")
        return ResolutionFilterResult(
            total_movies=len(movies),
            movies=matches,
            scan_date=datetime.now().isoformat(timespec="seconds"),
        )

    async def statistics(self, user_id: str) -> ResolutionStatistics:
        movies = await self._client.list_all_movies(user_id)
        counts: dict[str, int] = {}
        unknown = 0
        for movie in movies:
            width, height, _ = resolve_dimensions(movie)
            if width is None or height is None:
                unknown += 1
                continue
            bucket = categorize_resolution(width, height)
            counts[bucket] = counts.get(bucket, 0) + 1

        return ResolutionStatistics(
            total_movies=len(movies),
            resolution_counts=counts,
            unknown_count=unknown,
        )


__all__ = [
    "ABOVE_4K_BUCKET",
    "ResolutionFilterService",
    "ResolutionPreset",
    "categorize_resolution",
    "classify",
    "resolve_dimensions",
]
