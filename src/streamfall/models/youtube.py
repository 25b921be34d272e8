"""Models for parsing YouTube Data API v3 responses."""

from pydantic import BaseModel, ConfigDict, Field


class YouTubeModel(BaseModel):
    """Base model for YouTube Data API responses."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class Thumbnail(YouTubeModel):
    url: str


class Thumbnails(YouTubeModel):
    default: Thumbnail | None = None
    medium: Thumbnail | None = None
    high: Thumbnail | None = None

    @property
    def best_url(self) -> str | None:
        for thumb in (self.high, self.medium, self.default):
            if thumb is not None:
                return thumb.url
        return None


class Snippet(YouTubeModel):
    title: str
    channel_title: str | None = Field(default=None, alias="channelTitle")
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class SearchItemId(YouTubeModel):
    video_id: str | None = Field(default=None, alias="videoId")


class SearchItem(YouTubeModel):
    """Item of a /search response."""

    id: SearchItemId
    snippet: Snippet


class SearchResponse(YouTubeModel):
    items: list[SearchItem] = Field(default_factory=list)


class ContentDetails(YouTubeModel):
    duration: str = ""  # ISO-8601, e.g. PT3M20S


class VideoItem(YouTubeModel):
    """Item of a /videos?part=contentDetails response."""

    id: str
    snippet: Snippet | None = None
    content_details: ContentDetails = Field(
        default_factory=ContentDetails, alias="contentDetails"
    )


class VideosResponse(YouTubeModel):
    items: list[VideoItem] = Field(default_factory=list)
