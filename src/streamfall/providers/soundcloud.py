"""SoundCloud API v2 client."""

from __future__ import annotations

import logging
import re
from typing import Any, ClassVar

from streamfall.exceptions import ContentUnavailableError, StreamfallError
from streamfall.models.enums import Platform, Priority
from streamfall.models.soundcloud import (
    Collection,
    SoundCloudPlaylist,
    SoundCloudTrack,
    StreamLocation,
    Transcoding,
)
from streamfall.models.track import Track, TrackMetadata
from streamfall.providers.base import BaseProviderClient
from streamfall.utils.duration import milliseconds_to_seconds

logger = logging.getLogger(__name__)

API_BASE = "https://api-v2.soundcloud.com"
WEB_URL = "https://soundcloud.com"

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
}
_ASSET_PATTERN = re.compile(r'https://a-v2\.sndcdn\.com/assets/[^"]+\.js')
_CLIENT_ID_PATTERN = re.compile(
    r"""(?:client_id|clientId)\s*[=:]\s*["']([a-zA-Z0-9]{20,40})["']"""
)


def order_transcodings(transcodings: list[Transcoding]) -> list[Transcoding]:
    """Sort variants into playback preference order.

    Progressive first, then HLS MP3, HLS Opus, any other HLS, and finally
    whatever else the API offers. Ties keep API order.
    """

    def rank(t: Transcoding) -> int:
        mime = t.format.mime_type.lower()
        if t.is_progressive:
            return 0
        if t.is_hls and "mpeg" in mime:
            return 1
        if t.is_hls and "opus" in mime:
            return 2
        if t.is_hls:
            return 3
        return 4

    return sorted(transcodings, key=rank)


def extract_client_id(script: str) -> str | None:
    """Find a web client id in a JavaScript bundle."""
    match = _CLIENT_ID_PATTERN.search(script)
    return match.group(1) if match else None


class SoundCloudClient(BaseProviderClient):
    """SoundCloud client authenticated with a public ``client_id``.

    Used both as a primary source and as the richest-catalog fallback.
    When every configured client id has been rejected, a fresh one is
    scraped from the SoundCloud web player (once per session).
    """

    platform: ClassVar[Platform] = Platform.SOUNDCLOUD
    supports_refresh: ClassVar[bool] = True

    def _authorize(
        self, token: str, params: dict[str, Any], headers: dict[str, str]
    ) -> None:
        params["client_id"] = token

    def _verify_request(self) -> tuple[str, dict[str, Any]]:
        return f"{API_BASE}/search/tracks", {"q": "test", "limit": 1}

    async def _search(self, query: str, limit: int) -> list[Track]:
        data = await self._get_json(
            f"{API_BASE}/search/tracks",
            params={"q": query, "limit": limit},
            priority=Priority.LOW,
            timeout=self._timeouts.search,
        )
        collection = self._parse(Collection, data)
        return [self._to_track(t) for t in collection.collection]

    async def _fetch_track(self, sc_id: str, priority: Priority) -> SoundCloudTrack:
        data = await self._get_json(
            f"{API_BASE}/tracks/{sc_id}",
            priority=priority,
            timeout=self._timeouts.stream,
        )
        return self._parse(SoundCloudTrack, data)

    async def _get_track(self, track_id: str) -> Track | None:
        track = await self._fetch_track(self._strip_prefix(track_id), Priority.LOW)
        return self._to_track(track)

    async def _fetch_stream_url(self, track_id: str) -> str:
        sc_id = self._strip_prefix(track_id)
        track = await self._fetch_track(sc_id, Priority.HIGH)

        transcodings = track.transcodings
        if not transcodings:
            # Geo-restricted or snipped tracks; another client id won't help
            raise ContentUnavailableError(
                f"SoundCloud track {sc_id} has no playable variants",
                provider=self.name,
            )

        for transcoding in order_transcodings(transcodings):
            try:
                url = await self._resolve_transcoding(transcoding)
            except StreamfallError as e:
                logger.warning(
                    "SoundCloud variant %s failed for %s: %s",
                    transcoding.label,
                    sc_id,
                    e,
                )
                continue
            if url:
                logger.debug("Resolved %s via %s", sc_id, transcoding.label)
                return url

        raise ContentUnavailableError(
            f"No SoundCloud variant of {sc_id} returned a stream", provider=self.name
        )

    async def _resolve_transcoding(self, transcoding: Transcoding) -> str | None:
        data = await self._get_json(
            transcoding.url,
            priority=Priority.HIGH,
            timeout=self._timeouts.stream,
        )
        return self._parse(StreamLocation, data).url

    async def get_playlist_tracks(self, playlist_id: str) -> list[Track]:
        """Fetch a playlist's tracks. Returns [] on any failure."""
        playlist_id = playlist_id.removeprefix("sc-playlist-")
        try:
            data = await self._get_json(f"{API_BASE}/playlists/{playlist_id}")
            playlist = self._parse(SoundCloudPlaylist, data)
        except StreamfallError as e:
            logger.warning("Could not fetch SoundCloud playlist %s: %s", playlist_id, e)
            return []
        return [self._to_track(t) for t in playlist.tracks if t.title]

    async def get_user_tracks(self, user_id: str | int, limit: int = 20) -> list[Track]:
        """Fetch an uploader's tracks. Returns [] on any failure."""
        try:
            data = await self._get_json(
                f"{API_BASE}/users/{user_id}/tracks", params={"limit": limit}
            )
            collection = self._parse(Collection, data)
        except StreamfallError as e:
            logger.warning("Could not fetch SoundCloud user %s tracks: %s", user_id, e)
            return []
        return [self._to_track(t) for t in collection.collection]

    async def resolve_url(self, url: str) -> Track | None:
        """Look up a track from its soundcloud.com page URL."""
        try:
            data = await self._get_json(f"{API_BASE}/resolve", params={"url": url})
            resource = self._parse(SoundCloudTrack, data)
        except StreamfallError as e:
            logger.warning("Could not resolve SoundCloud URL %s: %s", url, e)
            return None
        if resource.kind != "track":
            logger.debug("SoundCloud URL %s is a %s, not a track", url, resource.kind)
            return None
        return self._to_track(resource)

    async def refresh_credentials(self) -> str | None:
        """Scrape a current client id from the SoundCloud web player."""
        page = await self._request(
            WEB_URL,
            headers=_BROWSER_HEADERS,
            timeout=self._timeouts.search,
            authenticated=False,
        )
        scripts = _ASSET_PATTERN.findall(page.text)
        if not scripts:
            logger.warning("No script bundles found on the SoundCloud page")
            return None

        for script_url in scripts:
            try:
                script = await self._request(
                    script_url,
                    timeout=self._timeouts.search,
                    authenticated=False,
                )
            except StreamfallError as e:
                logger.debug("Could not fetch bundle %s: %s", script_url, e)
                continue
            if client_id := extract_client_id(script.text):
                logger.info("Found fresh SoundCloud client id %s...", client_id[:8])
                return client_id
        return None

    def _to_track(self, sc: SoundCloudTrack) -> Track:
        artwork = (
            sc.artwork_url.replace("-large", "-t500x500") if sc.artwork_url else None
        )
        return Track(
            id=f"sc-{sc.id}",
            title=sc.title or "Unknown",
            artist=sc.user.username if sc.user else "Unknown Artist",
            duration=milliseconds_to_seconds(sc.duration),
            platform=Platform.SOUNDCLOUD,
            artwork_url=artwork,
            url=sc.permalink_url or f"{WEB_URL}/track/{sc.id}",
            metadata=TrackMetadata(
                genre=sc.genre,
                release_date=sc.created_at,
                play_count=sc.playback_count,
                like_count=sc.likes_count,
                waveform_url=sc.waveform_url,
            ),
        )
