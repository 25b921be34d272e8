"""Models for parsing Yandex Music API responses."""

from pydantic import BaseModel, ConfigDict, Field


class YandexModel(BaseModel):
    """Base model for Yandex Music responses."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class YandexArtist(YandexModel):
    name: str


class YandexAlbum(YandexModel):
    id: int | str
    title: str | None = None
    cover_uri: str | None = Field(default=None, alias="coverUri")


class YandexTrack(YandexModel):
    id: int | str
    title: str
    artists: list[YandexArtist] = Field(default_factory=list)
    albums: list[YandexAlbum] = Field(default_factory=list)
    duration_ms: int = Field(default=0, alias="durationMs")
    available: bool = True


class DownloadInfo(YandexModel):
    """One entry of /tracks/{id}/download-info."""

    codec: str = "mp3"
    bitrate_in_kbps: int = Field(default=0, alias="bitrateInKbps")
    download_info_url: str = Field(alias="downloadInfoUrl")


class TrackPage(YandexModel):
    results: list[YandexTrack] = Field(default_factory=list)


class SearchResult(YandexModel):
    tracks: TrackPage | None = None


class SearchResponse(YandexModel):
    """Envelope of /search."""

    result: SearchResult | None = None


class TracksResponse(YandexModel):
    """Envelope of /tracks/{id}."""

    result: list[YandexTrack] = Field(default_factory=list)


class DownloadInfoResponse(YandexModel):
    """Envelope of /tracks/{id}/download-info."""

    result: list[DownloadInfo] = Field(default_factory=list)
