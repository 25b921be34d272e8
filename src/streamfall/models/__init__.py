"""Data models for streamfall.

Public API:
    Track - Audio content reference supplied by the calling layer
    ResolutionResult - Outcome of resolving a track to a stream
    Credential - Active provider credential
    Notification - User-facing notice published on the event bus
    Platform, Priority, ResolutionSource, ... - Enumerations

Internal (not exported):
    soundcloud.py, youtube.py, yandex.py, vk.py - Provider response models
"""

from streamfall.models.credential import Credential, ProviderSession
from streamfall.models.enums import (
    CredentialKind,
    FailureKind,
    NotificationKind,
    NotificationLevel,
    Platform,
    Priority,
    ResolutionSource,
    RetryDecision,
)
from streamfall.models.events import Notification
from streamfall.models.track import ResolutionResult, Track, TrackMetadata

__all__ = [
    "Credential",
    "CredentialKind",
    "FailureKind",
    "Notification",
    "NotificationKind",
    "NotificationLevel",
    "Platform",
    "Priority",
    "ProviderSession",
    "ResolutionResult",
    "ResolutionSource",
    "RetryDecision",
    "Track",
    "TrackMetadata",
]
