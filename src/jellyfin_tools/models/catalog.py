from __future__ import annotations

from pydantic import BaseModel, Field

_CATALOG_MODEL_CONFIG = {
    "populate_by_name": True,
    "extra": "ignore",
}


class UserData(BaseModel):
    """Per-user state the catalog attaches to an item."""

    is_favorite: bool = Field(default=False, alias="IsFavorite")
    played: bool = Field(default=False, alias="Played")
    play_count: int = Field(default=0, alias="PlayCount")
    playback_position_ticks: int = Field(default=0, alias="PlaybackPositionTicks")
    last_played_date: str | None = Field(default=None, alias="LastPlayedDate")

    model_config = _CATALOG_MODEL_CONFIG


class CatalogUser(BaseModel):
    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    server_id: str | None = Field(default=None, alias="ServerId")
    has_password: bool = Field(default=False, alias="HasPassword")
    last_login_date: str | None = Field(default=None, alias="LastLoginDate")
    last_activity_date: str | None = Field(default=None, alias="LastActivityDate")

    model_config = _CATALOG_MODEL_CONFIG


class CastMember(BaseModel):
    """Person credited on a movie (actor, director, ...)."""

    id: str | None = Field(default=None, alias="Id")
    name: str = Field(alias="Name")
    role: str | None = Field(default=None, alias="Role")
    type: str | None = Field(default=None, alias="Type")
    primary_image_tag: str | None = Field(default=None, alias="PrimaryImageTag")

    model_config = _CATALOG_MODEL_CONFIG


class MediaStream(BaseModel):
    index: int = Field(default=0, alias="Index")
    codec: str | None = Field(default=None, alias="Codec")
    type: str | None = Field(default=None, alias="Type")
    width: int | None = Field(default=None, alias="Width")
    height: int | None = Field(default=None, alias="Height")
    bit_rate: int | None = Field(default=None, alias="BitRate")
    language: str | None = Field(default=None, alias="Language")
    display_title: str | None = Field(default=None, alias="DisplayTitle")

    model_config = _CATALOG_MODEL_CONFIG


class MediaSource(BaseModel):
    """A playable file behind a movie; may carry its own technical metadata."""

    id: str = Field(alias="Id")
    name: str | None = Field(default=None, alias="Name")
    path: str | None = Field(default=None, alias="Path")
    size: int | None = Field(default=None, alias="Size")
    container: str | None = Field(default=None, alias="Container")
    bitrate: int | None = Field(default=None, alias="Bitrate")
    video_type: str | None = Field(default=None, alias="VideoType")
    width: int | None = Field(default=None, alias="Width")
    height: int | None = Field(default=None, alias="Height")
    aspect_ratio: str | None = Field(default=None, alias="AspectRatio")
    video_codec: str | None = Field(default=None, alias="VideoCodec")
    audio_codec: str | None = Field(default=None, alias="AudioCodec")
    media_streams: list[MediaStream] = Field(default_factory=list, alias="MediaStreams")

    model_config = _CATALOG_MODEL_CONFIG

    def first_video_stream(self) -> MediaStream | None:
        for stream in self.media_streams:
            if stream.type == "Video":
                return stream
        return None


class MovieRecord(BaseModel):
    """Movie item as returned by the catalog, keyed by PascalCase field names."""

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    original_title: str | None = Field(default=None, alias="OriginalTitle")
    overview: str | None = Field(default=None, alias="Overview")
    production_year: int | None = Field(default=None, alias="ProductionYear")
    genres: list[str] = Field(default_factory=list, alias="Genres")
    community_rating: float | None = Field(default=None, alias="CommunityRating")
    run_time_ticks: int | None = Field(default=None, alias="RunTimeTicks")
    user_data: UserData | None = Field(default=None, alias="UserData")
    people: list[CastMember] = Field(default_factory=list, alias="People")

    # Technical attributes; media sources and their streams may repeat these.
    path: str | None = Field(default=None, alias="Path")
    file_name: str | None = Field(default=None, alias="FileName")
    size: int | None = Field(default=None, alias="Size")
    container: str | None = Field(default=None, alias="Container")
    media_sources: list[MediaSource] = Field(default_factory=list, alias="MediaSources")
    width: int | None = Field(default=None, alias="Width")
    height: int | None = Field(default=None, alias="Height")
    aspect_ratio: str | None = Field(default=None, alias="AspectRatio")
    bitrate: int | None = Field(default=None, alias="Bitrate")
    video_codec: str | None = Field(default=None, alias="VideoCodec")
    audio_codec: str | None = Field(default=None, alias="AudioCodec")
    date_created: str | None = Field(default=None, alias="DateCreated")
    date_modified: str | None = Field(default=None, alias="DateModified")

    model_config = _CATALOG_MODEL_CONFIG

    @property
    def primary_source(self) -> MediaSource | None:
        """Only the first media source is ever consulted for technical metadata."""
        return self.media_sources[0] if self.media_sources else None

    @property
    def effective_size(self) -> int | None:
        if self.size is not None:
            return self.size
        source = self.primary_source
        return source.size if source else None

    @property
    def effective_bitrate(self) -> int | None:
        if self.bitrate is not None:
            return self.bitrate
        source = self.primary_source
        return source.bitrate if source else None

    @property
    def effective_container(self) -> str | None:
        if self.container is not None:
            return self.container
        source = self.primary_source
        return source.container if source else None

    @property
    def effective_video_codec(self) -> str | None:
        if self.video_codec is not None:
            return self.video_codec
        source = self.primary_source
        return source.video_codec if source else None


class PersonRecord(BaseModel):
    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    type: str | None = Field(default=None, alias="Type")
    role: str | None = Field(default=None, alias="Role")
    primary_image_tag: str | None = Field(default=None, alias="PrimaryImageTag")
    user_data: UserData | None = Field(default=None, alias="UserData")

    model_config = _CATALOG_MODEL_CONFIG


__all__ = [
    "CastMember",
    "CatalogUser",
    "MediaSource",
    "MediaStream",
    "MovieRecord",
    "PersonRecord",
    "UserData",
]
