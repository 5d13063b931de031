from __future__ import annotations

from pydantic import BaseModel, Field, computed_field

from jellyfin_tools.models.catalog import MovieRecord, PersonRecord

_RESULT_MODEL_CONFIG = {
    "populate_by_name": True,
    "extra": "ignore",
}


class FavoritesSnapshot(BaseModel):
    """Point-in-time export of a user's favorite movies and people."""

    export_date: str = Field(alias="exportDate")
    server_url: str = Field(alias="serverUrl")
    user_id: str = Field(alias="userId")
    favorite_movies: list[MovieRecord] = Field(default_factory=list, alias="favoriteMovies")
    favorite_people: list[PersonRecord] = Field(default_factory=list, alias="favoritePeople")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "frozen": True,
    }


class ImportOutcome(BaseModel):
    """Counts and per-item error messages produced by a favorites import."""

    total_movies: int = Field(default=0, alias="totalMovies")
    imported_movies: int = Field(default=0, alias="importedMovies")
    failed_movies: int = Field(default=0, alias="failedMovies")
    total_people: int = Field(default=0, alias="totalPeople")
    imported_people: int = Field(default=0, alias="importedPeople")
    failed_people: int = Field(default=0, alias="failedPeople")
    errors: list[str] = Field(default_factory=list)

    model_config = _RESULT_MODEL_CONFIG

    @property
    def succeeded(self) -> bool:
        return self.failed_movies == 0 and self.failed_people == 0


class DuplicateGroup(BaseModel):
    representative_name: str = Field(alias="representativeName")
    members: list[MovieRecord]

    model_config = _RESULT_MODEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.members)


class DuplicateScanResult(BaseModel):
    total_movies_scanned: int = Field(alias="totalMoviesScanned")
    groups: list[DuplicateGroup] = Field(default_factory=list)
    scan_timestamp: str = Field(alias="scanTimestamp")

    model_config = _RESULT_MODEL_CONFIG

    @computed_field(alias="totalDuplicateExcess")  # type: ignore[prop-decorator]
    @property
    def total_duplicate_excess(self) -> int:
        return sum(group.count - 1 for group in self.groups)


class ResolutionInfo(BaseModel):
    width: int | None = None
    height: int | None = None
    display_label: str = Field(alias="displayLabel")
    is_below_threshold: bool = Field(default=False, alias="isBelowThreshold")
    source: str = "unknown"

    model_config = _RESULT_MODEL_CONFIG


class MovieResolution(BaseModel):
    movie: MovieRecord
    resolution: ResolutionInfo

    model_config = _RESULT_MODEL_CONFIG


class ResolutionFilterResult(BaseModel):
    total_movies: int = Field(alias="totalMovies")
    movies: list[MovieResolution] = Field(default_factory=list)
    scan_date: str = Field(alias="scanDate")

    model_config = _RESULT_MODEL_CONFIG

    @computed_field(alias="filteredCount")  # type: ignore[prop-decorator]
    @property
    def filtered_count(self) -> int:
        return len(self.movies)


class ResolutionStatistics(BaseModel):
    total_movies: int = Field(alias="totalMovies")
    resolution_counts: dict[str, int] = Field(default_factory=dict, alias="resolutionCounts")
    unknown_count: int = Field(default=0, alias="unknownCount")

    model_config = _RESULT_MODEL_CONFIG


__all__ = [
    "DuplicateGroup",
    "DuplicateScanResult",
    "FavoritesSnapshot",
    "ImportOutcome",
    "MovieResolution",
    "ResolutionFilterResult",
    "ResolutionInfo",
    "ResolutionStatistics",
]
