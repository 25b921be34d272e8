"""YouTube Data API v3 client.

YouTube is a search-only provider: its streams cannot be played
directly, so tracks found here are re-resolved through another provider.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any, ClassVar

from streamfall.exceptions import ContentUnavailableError
from streamfall.models.enums import Platform, Priority
from streamfall.models.track import Track
from streamfall.models.youtube import SearchResponse, VideoItem, VideosResponse
from streamfall.providers.base import BaseProviderClient
from streamfall.utils.duration import parse_iso8601_duration

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
WATCH_URL = "https://youtube.com/watch?v="

# Music category, keeps vlogs and reactions out of results
_MUSIC_CATEGORY_ID = "10"

# Videos outside this range (seconds) are unlikely to be songs
_MIN_DURATION = 30
_MAX_DURATION = 900

_BRACKET_NOISE = re.compile(
    r"\s*[(\[][^)\]]*?(official|video|audio|lyrics|hd|4k|music video)[^)\]]*?[)\]]",
    re.IGNORECASE,
)
_TRAILING_NOISE = re.compile(r"\s*-\s*(official|video|audio|lyrics).*$", re.IGNORECASE)


def clean_title(title: str) -> str:
    """Strip promotional brackets and suffixes from a video title."""
    title = html.unescape(title)
    title = _BRACKET_NOISE.sub("", title)
    title = _TRAILING_NOISE.sub("", title)
    return title.strip()


def clean_channel(channel: str | None) -> str:
    """Turn an auto-generated "Artist - Topic" channel into the artist."""
    if not channel:
        return "Unknown"
    return html.unescape(channel).removesuffix(" - Topic").strip() or "Unknown"


class YouTubeClient(BaseProviderClient):
    """YouTube client authenticated with Data API keys."""

    platform: ClassVar[Platform] = Platform.YOUTUBE

    def _authorize(
        self, token: str, params: dict[str, Any], headers: dict[str, str]
    ) -> None:
        params["key"] = token

    def _verify_request(self) -> tuple[str, dict[str, Any]]:
        return f"{API_BASE}/videos", {
            "part": "id",
            "chart": "mostPopular",
            "maxResults": 1,
        }

    async def _search(self, query: str, limit: int) -> list[Track]:
        data = await self._get_json(
            f"{API_BASE}/search",
            params={
                "part": "snippet",
                "q": f"{query} music",
                "type": "video",
                "videoCategoryId": _MUSIC_CATEGORY_ID,
                "maxResults": limit,
            },
            priority=Priority.LOW,
            timeout=self._timeouts.search,
        )
        results = self._parse(SearchResponse, data)
        items = [item for item in results.items if item.id.video_id]
        if not items:
            return []

        durations = await self._fetch_durations(
            [item.id.video_id for item in items if item.id.video_id]
        )

        tracks: list[Track] = []
        for item in items:
            video_id = item.id.video_id
            duration = durations.get(video_id or "", 0)
            if not _MIN_DURATION < duration < _MAX_DURATION:
                logger.debug("Skipping video %s (%ds)", video_id, duration)
                continue
            tracks.append(
                Track(
                    id=f"yt-{video_id}",
                    title=clean_title(item.snippet.title),
                    artist=clean_channel(item.snippet.channel_title),
                    duration=duration,
                    platform=Platform.YOUTUBE,
                    artwork_url=item.snippet.thumbnails.best_url,
                    url=f"{WATCH_URL}{video_id}",
                )
            )
        logger.debug("YouTube search '%s' kept %d tracks", query, len(tracks))
        return tracks

    async def _fetch_durations(self, video_ids: list[str]) -> dict[str, int]:
        data = await self._get_json(
            f"{API_BASE}/videos",
            params={"part": "contentDetails", "id": ",".join(video_ids)},
            priority=Priority.LOW,
            timeout=self._timeouts.search,
        )
        videos = self._parse(VideosResponse, data)
        return {
            video.id: parse_iso8601_duration(video.content_details.duration)
            for video in videos.items
        }

    async def _get_track(self, track_id: str) -> Track | None:
        video_id = self._strip_prefix(track_id)
        data = await self._get_json(
            f"{API_BASE}/videos",
            params={"part": "snippet,contentDetails", "id": video_id},
            timeout=self._timeouts.search,
        )
        videos = self._parse(VideosResponse, data)
        if not videos.items:
            return None
        return self._video_to_track(videos.items[0])

    def _video_to_track(self, video: VideoItem) -> Track:
        snippet = video.snippet
        return Track(
            id=f"yt-{video.id}",
            title=clean_title(snippet.title) if snippet else video.id,
            artist=clean_channel(snippet.channel_title if snippet else None),
            duration=parse_iso8601_duration(video.content_details.duration),
            platform=Platform.YOUTUBE,
            artwork_url=snippet.thumbnails.best_url if snippet else None,
            url=f"{WATCH_URL}{video.id}",
        )

    async def fetch_stream_url(self, track_id: str) -> str:
        """Always raises ContentUnavailableError, with or without an API key."""
        return await self._fetch_stream_url(track_id)

    async def _fetch_stream_url(self, track_id: str) -> str:
        raise ContentUnavailableError(
            "YouTube does not expose direct streams", provider=self.name
        )
