"""Streaming backend clients.

Each client composes the shared request pipeline from
``streamfall.providers.base`` with one backend's API.
"""

from streamfall.models.enums import Platform
from streamfall.providers.base import (
    BaseProviderClient,
    ProviderClient,
    ProviderContext,
)
from streamfall.providers.soundcloud import SoundCloudClient
from streamfall.providers.vk import VKMusicClient
from streamfall.providers.yandex import YandexMusicClient
from streamfall.providers.youtube import YouTubeClient

PROVIDER_CLASSES: dict[Platform, type[BaseProviderClient]] = {
    Platform.SOUNDCLOUD: SoundCloudClient,
    Platform.YOUTUBE: YouTubeClient,
    Platform.YANDEX: YandexMusicClient,
    Platform.VK: VKMusicClient,
}


def create_providers(context: ProviderContext) -> dict[Platform, ProviderClient]:
    """Instantiate one client per supported platform."""
    return {platform: cls(context) for platform, cls in PROVIDER_CLASSES.items()}


__all__ = [
    "PROVIDER_CLASSES",
    "BaseProviderClient",
    "ProviderClient",
    "ProviderContext",
    "SoundCloudClient",
    "VKMusicClient",
    "YandexMusicClient",
    "YouTubeClient",
    "create_providers",
]
