"""Tests for the Yandex Music client."""

from collections.abc import Callable

import httpx
import pytest
from streamfall.exceptions import ContentUnavailableError, UpstreamError
from streamfall.models.enums import Platform
from streamfall.providers.base import ProviderContext
from streamfall.providers.yandex import (
    DownloadLocation,
    YandexMusicClient,
    parse_download_location,
)

INFO_URL = "https://storage.mds.yandex.net/download-info/12/2.mp3"
DOCUMENT = (
    '<?xml version="1.0" encoding="utf-8"?>'
    "<download-info><host>s1.storage.test</host><path>/music/12/track.mp3</path>"
    "<ts>0005f3a1</ts><region>-1</region><s>deadbeef</s></download-info>"
)
EXPECTED_SIGN = "a4eeb26d5d1d3e35bd22f040c3b46b4d"


def yandex_track(track_id: int = 12, **overrides: object) -> dict:
    payload = {
        "id": track_id,
        "title": "Midnight",
        "artists": [{"name": "Nova"}, {"name": "Lumen"}],
        "albums": [{"id": 5, "title": "Night", "coverUri": "avatars.test/cover/%%"}],
        "durationMs": 200000,
        "available": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client_factory(
    make_context: Callable[..., ProviderContext],
) -> Callable[..., YandexMusicClient]:
    """Build Yandex clients with a user OAuth token over a mock transport."""

    def factory(handler) -> YandexMusicClient:
        context = make_context(handler)
        context.credentials.set_user_token(Platform.YANDEX, "oauth-token")
        return YandexMusicClient(context)

    return factory


class TestDownloadLocation:
    """Tests for download-info parsing and link signing."""

    def test_parse_and_sign(self) -> None:
        """Should build the signed MP3 URL from the document."""
        location = parse_download_location(DOCUMENT)

        assert location == DownloadLocation(
            host="s1.storage.test",
            path="/music/12/track.mp3",
            ts="0005f3a1",
            s="deadbeef",
        )
        assert location.sign == EXPECTED_SIGN
        assert location.url == (
            "https://s1.storage.test/get-mp3/"
            f"{EXPECTED_SIGN}/0005f3a1/music/12/track.mp3"
        )

    @pytest.mark.parametrize(
        "document",
        [
            "not xml at all <",
            "<download-info><host>h</host><path>/p</path></download-info>",
        ],
    )
    def test_invalid_documents(self, document: str) -> None:
        """Malformed or incomplete documents yield None."""
        assert parse_download_location(document) is None


class TestStreamResolution:
    """Tests for stream URL resolution."""

    @pytest.mark.asyncio
    async def test_picks_highest_bitrate(self, client_factory) -> None:
        """Should follow the best variant and sign its location."""
        auth_headers: dict[str, str | None] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            auth_headers[request.url.path] = request.headers.get("Authorization")
            if request.url.path == "/tracks/12/download-info":
                return httpx.Response(
                    200,
                    json={
                        "result": [
                            {
                                "codec": "mp3",
                                "bitrateInKbps": 192,
                                "downloadInfoUrl": "https://storage.test/low",
                            },
                            {
                                "codec": "mp3",
                                "bitrateInKbps": 320,
                                "downloadInfoUrl": INFO_URL,
                            },
                        ]
                    },
                )
            assert str(request.url) == INFO_URL
            return httpx.Response(200, text=DOCUMENT)

        client = client_factory(handler)

        url = await client.fetch_stream_url("yandex-12")

        assert EXPECTED_SIGN in url
        assert auth_headers["/tracks/12/download-info"] == "OAuth oauth-token"
        assert auth_headers["/download-info/12/2.mp3"] is None

    @pytest.mark.asyncio
    async def test_no_variants_unavailable(self, client_factory) -> None:
        """Tracks without download variants are unavailable."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"result": []})

        client = client_factory(handler)

        with pytest.raises(ContentUnavailableError):
            await client.fetch_stream_url("yandex-12")

    @pytest.mark.asyncio
    async def test_unreadable_document_is_upstream_error(self, client_factory) -> None:
        """A broken download-info document is an upstream failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/tracks/12/download-info":
                return httpx.Response(
                    200,
                    json={
                        "result": [
                            {"bitrateInKbps": 320, "downloadInfoUrl": INFO_URL}
                        ]
                    },
                )
            return httpx.Response(200, text="<download-info/>")

        client = client_factory(handler)

        with pytest.raises(UpstreamError):
            await client.fetch_stream_url("yandex-12")


class TestSearch:
    """Tests for search and track mapping."""

    @pytest.mark.asyncio
    async def test_maps_available_tracks(self, client_factory) -> None:
        """Should skip unavailable tracks and map the rest."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["text"] == "midnight"
            return httpx.Response(
                200,
                json={
                    "result": {
                        "tracks": {
                            "results": [
                                yandex_track(12),
                                yandex_track(13, available=False),
                            ]
                        }
                    }
                },
            )

        client = client_factory(handler)

        [track] = await client.search("midnight")

        assert track.id == "yandex-12"
        assert track.artist == "Nova, Lumen"
        assert track.duration == 200
        assert track.album == "Night"
        assert track.artwork_url == "https://avatars.test/cover/400x400"
        assert track.url == "https://music.yandex.ru/album/5/track/12"

    @pytest.mark.asyncio
    async def test_no_track_block(self, client_factory) -> None:
        """A result without tracks is an empty search."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"result": {}})

        client = client_factory(handler)

        assert await client.search("midnight") == []

    @pytest.mark.asyncio
    async def test_get_track(self, client_factory) -> None:
        """Should fetch one track by its provider id."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/tracks/12"
            return httpx.Response(200, json={"result": [yandex_track(12)]})

        client = client_factory(handler)

        track = await client.get_track("yandex-12")

        assert track is not None
        assert track.title == "Midnight"
