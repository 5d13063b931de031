from .catalog import CastMember, CatalogUser, MediaSource, MediaStream, MovieRecord, PersonRecord, UserData
from .results import (
    DuplicateGroup,
    DuplicateScanResult,
    FavoritesSnapshot,
    ImportOutcome,
    MovieResolution,
    ResolutionFilterResult,
    ResolutionInfo,
    ResolutionStatistics,
)

__all__ = [
    "CastMember",
    "CatalogUser",
    "DuplicateGroup",
    "DuplicateScanResult",
    "FavoritesSnapshot",
    "ImportOutcome",
    "MediaSource",
    "MediaStream",
    "MovieRecord",
    "MovieResolution",
    "PersonRecord",
    "ResolutionFilterResult",
    "ResolutionInfo",
    "ResolutionStatistics",
    "UserData",
]
