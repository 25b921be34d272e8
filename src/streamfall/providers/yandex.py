"""Yandex Music API client."""

from __future__ import annotations

import hashlib
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, ClassVar

from streamfall.exceptions import ContentUnavailableError, UpstreamError
from streamfall.models.enums import Platform, Priority
from streamfall.models.track import Track
from streamfall.models.yandex import (
    DownloadInfoResponse,
    SearchResponse,
    TracksResponse,
    YandexTrack,
)
from streamfall.providers.base import BaseProviderClient
from streamfall.utils.duration import milliseconds_to_seconds

logger = logging.getLogger(__name__)

API_BASE = "https://api.music.yandex.net"
WEB_URL = "https://music.yandex.ru"

# Salt of the download link signature used by the official clients
_SIGN_SALT = "XGRlBW9FXlekgbPrRHuSiA"
_COVER_SIZE = "400x400"


@dataclass(frozen=True)
class DownloadLocation:
    """Storage location from a download-info XML document."""

    host: str
    path: str
    ts: str
    s: str

    @property
    def sign(self) -> str:
        return hashlib.md5(
            f"{_SIGN_SALT}{self.path[1:]}{self.s}".encode(), usedforsecurity=False
        ).hexdigest()

    @property
    def url(self) -> str:
        """Signed direct MP3 URL."""
        return f"https://{self.host}/get-mp3/{self.sign}/{self.ts}{self.path}"


def parse_download_location(document: str) -> DownloadLocation | None:
    """Read host, path, ts and s from a download-info XML document.

    Returns None when the document is malformed or a field is missing.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError:
        logger.warning("Malformed Yandex download info document")
        return None

    values = {name: root.findtext(name) for name in ("host", "path", "ts", "s")}
    if not all(values.values()):
        logger.warning("Incomplete Yandex download info: %s", sorted(values))
        return None
    return DownloadLocation(**values)  # type: ignore[arg-type]


class YandexMusicClient(BaseProviderClient):
    """Yandex Music client authenticated with a user OAuth token."""

    platform: ClassVar[Platform] = Platform.YANDEX

    def _authorize(
        self, token: str, params: dict[str, Any], headers: dict[str, str]
    ) -> None:
        headers["Authorization"] = f"OAuth {token}"

    def _verify_request(self) -> tuple[str, dict[str, Any]]:
        return f"{API_BASE}/account/status", {}

    async def _search(self, query: str, limit: int) -> list[Track]:
        data = await self._get_json(
            f"{API_BASE}/search",
            params={"text": query, "type": "track", "page": 0, "page-size": limit},
            priority=Priority.LOW,
            timeout=self._timeouts.search,
        )
        response = self._parse(SearchResponse, data)
        if response.result is None or response.result.tracks is None:
            return []
        return [
            self._to_track(track)
            for track in response.result.tracks.results
            if track.available
        ]

    async def _get_track(self, track_id: str) -> Track | None:
        data = await self._get_json(
            f"{API_BASE}/tracks/{self._strip_prefix(track_id)}",
            timeout=self._timeouts.search,
        )
        response = self._parse(TracksResponse, data)
        return self._to_track(response.result[0]) if response.result else None

    async def _fetch_stream_url(self, track_id: str) -> str:
        yandex_id = self._strip_prefix(track_id)
        data = await self._get_json(
            f"{API_BASE}/tracks/{yandex_id}/download-info",
            priority=Priority.HIGH,
            timeout=self._timeouts.stream,
        )
        variants = self._parse(DownloadInfoResponse, data).result
        if not variants:
            raise ContentUnavailableError(
                f"Yandex track {yandex_id} has no download variants",
                provider=self.name,
            )

        best = max(variants, key=lambda v: v.bitrate_in_kbps)
        logger.debug(
            "Using %s %dkbps for Yandex track %s",
            best.codec,
            best.bitrate_in_kbps,
            yandex_id,
        )
        document = await self._request(
            best.download_info_url,
            priority=Priority.HIGH,
            timeout=self._timeouts.stream,
            authenticated=False,
        )
        location = parse_download_location(document.text)
        if location is None:
            raise UpstreamError(
                f"Unreadable download info for Yandex track {yandex_id}",
                provider=self.name,
            )
        return location.url

    def _to_track(self, track: YandexTrack) -> Track:
        album = track.albums[0] if track.albums else None
        artwork = (
            f"https://{album.cover_uri.replace('%%', _COVER_SIZE)}"
            if album and album.cover_uri
            else None
        )
        return Track(
            id=f"yandex-{track.id}",
            title=track.title,
            artist=", ".join(a.name for a in track.artists) or "Unknown Artist",
            duration=milliseconds_to_seconds(track.duration_ms),
            platform=Platform.YANDEX,
            artwork_url=artwork,
            url=f"{WEB_URL}/album/{album.id}/track/{track.id}"
            if album
            else f"{WEB_URL}/track/{track.id}",
            album=album.title if album else None,
        )
