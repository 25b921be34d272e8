"""Track and resolution result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from streamfall.models.enums import FailureKind, Platform, ResolutionSource


class TrackMetadata(BaseModel):
    """Optional provider-specific details carried on a track."""

    model_config = ConfigDict(frozen=True)

    genre: str | None = None
    release_date: str | None = None
    play_count: int | None = None
    like_count: int | None = None
    waveform_url: str | None = None


class Track(BaseModel):
    """A piece of audio content as supplied by the calling layer.

    Tracks are immutable. Substitutions produce new values through
    ``model_copy`` and never mutate the original.

    Attributes:
        id: Platform-prefixed identifier (e.g. ``sc-123``).
        title: Track title.
        artist: Display artist string.
        duration: Length in whole seconds.
        platform: Backend the track originates from.
        artwork_url: Cover art URL.
        stream_url: Previously resolved stream URL, if any.
        url: Canonical source URL for sharing.
        album: Album name, when the provider knows it.
        metadata: Provider-specific extras.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    artist: str
    duration: int = Field(default=0, ge=0)
    platform: Platform = Platform.UNKNOWN
    artwork_url: str | None = None
    stream_url: str | None = None
    url: str | None = None
    album: str | None = None
    metadata: TrackMetadata = Field(default_factory=TrackMetadata)

    @field_validator("id")
    @classmethod
    def non_empty_id(cls, v: str) -> str:
        """Validate that the id is a non-empty string."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("stream_url", "artwork_url", "url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty URLs (common in provider payloads) as missing."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def provider_id(self) -> str:
        """Identifier as the provider knows it, without the platform prefix."""
        prefix = self.platform.id_prefix
        if prefix and self.id.startswith(prefix):
            return self.id[len(prefix) :]
        return self.id

    @property
    def search_query(self) -> str:
        """Query used to look this track up on another provider."""
        return f"{self.artist} {self.title}".strip()


class ResolutionResult(BaseModel):
    """Outcome of resolving a track into a playable stream.

    A substituted stream is always tagged: ``source`` is
    ``FALLBACK_PROVIDER`` and ``substituted_track`` holds the match.

    Attributes:
        stream_url: Playable URL, or None when every strategy failed.
        source: Which strategy produced the stream.
        source_provider: Provider that served the stream (the original
            platform when nothing was found).
        substituted_track: Matched track from another provider.
        match_score: Score of the substituted match (0-100).
        failure: Most specific failure seen when stream_url is None.
    """

    model_config = ConfigDict(frozen=True)

    stream_url: str | None
    source: ResolutionSource
    source_provider: str
    substituted_track: Track | None = None
    match_score: float | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        """Whether a playable stream was found."""
        return self.stream_url is not None

    @property
    def is_substitution(self) -> bool:
        """Whether the stream belongs to a different track than requested."""
        return self.substituted_track is not None
