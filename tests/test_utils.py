"""Tests for utility functions."""

import pytest
from streamfall.models.enums import Platform
from streamfall.models.track import Track
from streamfall.utils import (
    detect_platform,
    ensure_platform,
    milliseconds_to_seconds,
    parse_iso8601_duration,
)


class TestDetectPlatform:
    """Tests for detect_platform function."""

    @pytest.mark.parametrize(
        ("track_id", "expected"),
        [
            ("sc-123", Platform.SOUNDCLOUD),
            ("yt-abc", Platform.YOUTUBE),
            ("yandex-42", Platform.YANDEX),
            ("vk--1_7", Platform.VK),
            ("spotify-x", Platform.SPOTIFY),
            ("local-file", Platform.LOCAL),
        ],
    )
    def test_from_id_prefix(self, track_id: str, expected: Platform) -> None:
        """Should detect the platform from the id prefix."""
        assert detect_platform(track_id) == expected

    def test_from_url(self) -> None:
        """Should fall back to the source URL host."""
        assert detect_platform("123", "https://soundcloud.com/nova/midnight") == (
            Platform.SOUNDCLOUD
        )
        assert detect_platform("abc", "https://www.youtube.com/watch?v=abc") == (
            Platform.YOUTUBE
        )
        assert detect_platform("1", "https://music.yandex.ru/track/1") == (
            Platform.YANDEX
        )

    def test_bare_vk_id(self) -> None:
        """VK owner-audio pairs are recognized without a prefix."""
        assert detect_platform("-1_7") == Platform.VK

    def test_unknown(self) -> None:
        """Should return UNKNOWN when nothing matches."""
        assert detect_platform("mystery", "https://example.com/a") == Platform.UNKNOWN

    def test_ignores_very_long_url(self) -> None:
        """Should not inspect URLs exceeding max length."""
        url = "https://soundcloud.com/" + "x" * 2100
        assert detect_platform("123", url) == Platform.UNKNOWN


class TestEnsurePlatform:
    """Tests for ensure_platform function."""

    def test_tagged_track_unchanged(self, sample_track: Track) -> None:
        """Should return tagged tracks as they are."""
        assert ensure_platform(sample_track) is sample_track

    def test_tags_untagged_track(self) -> None:
        """Should return a copy with the detected platform."""
        track = Track(id="yt-abc", title="Midnight", artist="Nova")

        tagged = ensure_platform(track)

        assert tagged.platform == Platform.YOUTUBE
        assert track.platform == Platform.UNKNOWN


class TestDurations:
    """Tests for duration helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("PT3M20S", 200),
            ("PT1H2M3S", 3723),
            ("PT45S", 45),
            ("P1DT1S", 86401),
            ("", 0),
            ("PT", 0),
            ("garbage", 0),
        ],
    )
    def test_parse_iso8601_duration(self, value: str, expected: int) -> None:
        """Should convert ISO-8601 durations to seconds."""
        assert parse_iso8601_duration(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"), [(200500, 200), (999, 0), (None, 0), (-5, 0)]
    )
    def test_milliseconds_to_seconds(self, value: int | None, expected: int) -> None:
        """Should floor milliseconds to whole seconds."""
        assert milliseconds_to_seconds(value) == expected
