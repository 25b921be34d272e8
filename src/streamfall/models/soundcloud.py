"""Models for parsing SoundCloud API v2 responses.

These are internal models used to parse and validate responses from
the SoundCloud API. They may change if the API changes.
"""

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "Collection",
    "SoundCloudPlaylist",
    "SoundCloudTrack",
    "SoundCloudUser",
    "StreamLocation",
    "Transcoding",
    "TranscodingFormat",
]


class SoundCloudModel(BaseModel):
    """Base model for SoundCloud responses."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class SoundCloudUser(SoundCloudModel):
    """Track uploader."""

    id: int | None = None
    username: str = "Unknown Artist"
    avatar_url: str | None = None


class TranscodingFormat(SoundCloudModel):
    """Delivery protocol and codec of a transcoding."""

    protocol: str
    mime_type: str = ""


class Transcoding(SoundCloudModel):
    """One playable variant of a track.

    The url is not playable itself; requesting it (with a client id)
    returns a signed stream location.
    """

    url: str
    format: TranscodingFormat

    @property
    def is_progressive(self) -> bool:
        return self.format.protocol == "progressive"

    @property
    def is_hls(self) -> bool:
        return self.format.protocol == "hls"

    @property
    def label(self) -> str:
        return f"{self.format.protocol} ({self.format.mime_type})"


class Media(SoundCloudModel):
    """Media block listing available transcodings."""

    transcodings: list[Transcoding] = Field(default_factory=list)


class SoundCloudTrack(SoundCloudModel):
    """Track resource from /tracks/{id} or search results."""

    id: int
    kind: str = "track"
    title: str | None = None
    user: SoundCloudUser | None = None
    artwork_url: str | None = None
    duration: int = 0  # milliseconds
    media: Media | None = None
    genre: str | None = None
    created_at: str | None = None
    playback_count: int | None = None
    likes_count: int | None = None
    waveform_url: str | None = None
    permalink_url: str | None = None

    @property
    def transcodings(self) -> list[Transcoding]:
        return self.media.transcodings if self.media else []


class Collection(SoundCloudModel):
    """Paged collection wrapper (search, user tracks)."""

    collection: list[SoundCloudTrack] = Field(default_factory=list)
    next_href: str | None = None


class SoundCloudPlaylist(SoundCloudModel):
    """Playlist resource from /playlists/{id}."""

    id: int
    title: str | None = None
    tracks: list[SoundCloudTrack] = Field(default_factory=list)


class StreamLocation(SoundCloudModel):
    """Signed stream location returned by a transcoding URL."""

    url: str | None = None
