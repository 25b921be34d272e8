"""Models for parsing VK API audio responses."""

from pydantic import BaseModel, ConfigDict, Field


class VKModel(BaseModel):
    """Base model for VK API responses."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class VKThumb(VKModel):
    photo_300: str | None = None
    photo_600: str | None = None


class VKAlbum(VKModel):
    title: str | None = None
    thumb: VKThumb | None = None


class VKAudio(VKModel):
    id: int
    owner_id: int
    artist: str
    title: str
    duration: int = 0
    url: str = ""
    date: int | None = None
    album: VKAlbum | None = None


class VKError(VKModel):
    error_code: int
    error_msg: str = ""


class VKSearchResult(VKModel):
    count: int = 0
    items: list[VKAudio] = Field(default_factory=list)


class VKSearchResponse(VKModel):
    """Envelope of audio.search."""

    response: VKSearchResult = Field(default_factory=VKSearchResult)


class VKAudioListResponse(VKModel):
    """Envelope of audio.getById."""

    response: list[VKAudio] = Field(default_factory=list)


class VKErrorResponse(VKModel):
    error: VKError
