"""Notification events published to the host application."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from streamfall.models.enums import NotificationKind, NotificationLevel


class Notification(BaseModel):
    """A human-readable success or failure notice.

    Rendering is the host's concern; the core only supplies the
    localized message and enough context to route it.
    """

    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    level: NotificationLevel
    message: str
    provider: str | None = None
    track_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
