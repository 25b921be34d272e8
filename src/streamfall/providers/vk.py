"""VK audio API client."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError

from streamfall.exceptions import (
    AuthError,
    ContentUnavailableError,
    RateLimitedError,
    UpstreamError,
)
from streamfall.models.enums import Platform, Priority
from streamfall.models.track import Track
from streamfall.models.vk import (
    VKAudio,
    VKAudioListResponse,
    VKError,
    VKErrorResponse,
    VKSearchResponse,
)
from streamfall.providers.base import BaseProviderClient

logger = logging.getLogger(__name__)

API_BASE = "https://api.vk.com/method"
API_VERSION = "5.131"
WEB_URL = "https://vk.com"

_AUTH_ERROR_CODES = frozenset({5})
_RATE_LIMIT_ERROR_CODES = frozenset({6, 9, 29})
_ACCESS_DENIED_ERROR_CODES = frozenset({15, 18, 201, 203})
_SERVER_ERROR_CODES = frozenset({1, 10})


def _parse_error(payload: Any) -> VKError | None:
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    try:
        return VKErrorResponse.model_validate(payload).error
    except ValidationError:
        return VKError(error_code=0, error_msg=str(payload["error"]))


class VKMusicClient(BaseProviderClient):
    """VK client authenticated with a user access token.

    VK reports failures inside HTTP 200 bodies, so every response is
    inspected for an ``error`` object and classified by its code.
    Search results already carry playable URLs.
    """

    platform: ClassVar[Platform] = Platform.VK

    def _authorize(
        self, token: str, params: dict[str, Any], headers: dict[str, str]
    ) -> None:
        params["access_token"] = token
        params["v"] = API_VERSION

    def _verify_request(self) -> tuple[str, dict[str, Any]]:
        return f"{API_BASE}/users.get", {}

    def _token_valid(self, response: httpx.Response) -> bool:
        if not response.is_success:
            return False
        try:
            error = _parse_error(response.json())
        except ValueError:
            return False
        if error is not None:
            logger.info("VK token rejected: %s", error.error_msg)
            return False
        return True

    def _check_response(self, response: httpx.Response) -> None:
        try:
            payload = response.json()
        except ValueError:
            return  # Reported by the JSON decoding step
        error = _parse_error(payload)
        if error is None:
            return

        message = f"VK error {error.error_code}: {error.error_msg}"
        code = error.error_code
        if code in _AUTH_ERROR_CODES:
            raise AuthError(message, provider=self.name)
        if code in _RATE_LIMIT_ERROR_CODES:
            raise RateLimitedError(message, provider=self.name)
        if code in _ACCESS_DENIED_ERROR_CODES:
            raise ContentUnavailableError(message, provider=self.name)
        if code in _SERVER_ERROR_CODES:
            raise UpstreamError(message, provider=self.name, http_status=500)
        raise UpstreamError(message, provider=self.name)

    async def _search(self, query: str, limit: int) -> list[Track]:
        data = await self._get_json(
            f"{API_BASE}/audio.search",
            params={"q": query, "count": limit, "auto_complete": 1},
            priority=Priority.LOW,
            timeout=self._timeouts.search,
        )
        result = self._parse(VKSearchResponse, data).response
        # Items without a URL are blocked for the token's region
        return [self._to_track(audio) for audio in result.items if audio.url]

    async def _fetch_audio(self, track_id: str, priority: Priority) -> VKAudio | None:
        data = await self._get_json(
            f"{API_BASE}/audio.getById",
            params={"audios": self._strip_prefix(track_id)},
            priority=priority,
            timeout=self._timeouts.stream,
        )
        audios = self._parse(VKAudioListResponse, data).response
        return audios[0] if audios else None

    async def _get_track(self, track_id: str) -> Track | None:
        audio = await self._fetch_audio(track_id, Priority.LOW)
        return self._to_track(audio) if audio else None

    async def _fetch_stream_url(self, track_id: str) -> str:
        audio = await self._fetch_audio(track_id, Priority.HIGH)
        if audio is None or not audio.url:
            raise ContentUnavailableError(
                f"VK audio {track_id} has no playable URL", provider=self.name
            )
        return audio.url

    def _to_track(self, audio: VKAudio) -> Track:
        thumb = audio.album.thumb if audio.album else None
        full_id = f"{audio.owner_id}_{audio.id}"
        return Track(
            id=f"vk-{full_id}",
            title=audio.title,
            artist=audio.artist,
            duration=audio.duration,
            platform=Platform.VK,
            artwork_url=(thumb.photo_600 or thumb.photo_300) if thumb else None,
            stream_url=audio.url or None,
            url=f"{WEB_URL}/audio{full_id}",
            album=audio.album.title if audio.album else None,
        )
