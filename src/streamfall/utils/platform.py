"""Heuristic platform detection for untagged tracks.

Tracks created by streamfall clients always carry an explicit platform
tag. These helpers exist only for externally sourced data (imports,
legacy storage) where the tag is missing.
"""

import re
from urllib.parse import urlparse

from streamfall.models.enums import Platform
from streamfall.models.track import Track

# Longest prefixes first so "yandex-" is not shadowed by a shorter one
_ID_PREFIXES: tuple[tuple[str, Platform], ...] = (
    ("yandex-", Platform.YANDEX),
    ("sc-", Platform.SOUNDCLOUD),
    ("yt-", Platform.YOUTUBE),
    ("vk-", Platform.VK),
    ("spotify-", Platform.SPOTIFY),
    ("local-", Platform.LOCAL),
    ("offline-", Platform.OFFLINE),
)

_HOST_PLATFORMS: dict[str, Platform] = {
    "soundcloud.com": Platform.SOUNDCLOUD,
    "youtube.com": Platform.YOUTUBE,
    "youtu.be": Platform.YOUTUBE,
    "music.yandex.ru": Platform.YANDEX,
    "music.yandex.com": Platform.YANDEX,
    "vk.com": Platform.VK,
    "open.spotify.com": Platform.SPOTIFY,
}

# Maximum URL length to prevent potential abuse (standard browser limit)
MAX_URL_LENGTH = 2048

_VK_ID_PATTERN = re.compile(r"^-?\d+_\d+$")


def _platform_from_url(url: str) -> Platform | None:
    if not url or len(url) > MAX_URL_LENGTH:
        return None
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www.") or host.startswith("m."):
        host = host.split(".", 1)[1]
    for known_host, platform in _HOST_PLATFORMS.items():
        if host == known_host or host.endswith(f".{known_host}"):
            return platform
    return None


def detect_platform(track_id: str, url: str | None = None) -> Platform:
    """Guess a track's platform from its id prefix or source URL.

    Args:
        track_id: Track identifier, possibly platform-prefixed.
        url: Canonical source URL, if known.

    Returns:
        The detected platform, or Platform.UNKNOWN.
    """
    for prefix, platform in _ID_PREFIXES:
        if track_id.startswith(prefix):
            return platform

    if url and (platform := _platform_from_url(url)):
        return platform

    # Bare VK ids look like "<owner>_<audio>"
    if _VK_ID_PATTERN.match(track_id):
        return Platform.VK

    return Platform.UNKNOWN


def ensure_platform(track: Track) -> Track:
    """Return the track with a platform tag, detecting it when missing.

    Tagged tracks are returned unchanged. Untagged tracks get a new
    value with the detected platform.
    """
    if track.platform != Platform.UNKNOWN:
        return track
    platform = detect_platform(track.id, track.url)
    if platform == Platform.UNKNOWN:
        return track
    return track.model_copy(update={"platform": platform})
