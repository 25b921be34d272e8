"""Event bus for user-facing notifications."""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from streamfall.messages import DEFAULT_LOCALE, render_message
from streamfall.models.enums import FailureKind, NotificationKind, NotificationLevel
from streamfall.models.events import Notification

logger = logging.getLogger(__name__)

Listener = Callable[[Notification], None]


class EventBus:
    """Delivers notifications to sync listeners and async subscribers.

    Listeners are called inline from ``publish()``; a listener that raises
    is logged and skipped so one broken consumer does not starve the rest.
    Async subscribers get their own queue. Backpressure is handled by
    drop-oldest: if a subscriber's queue is full, the oldest notification
    is dropped to make room for the new one.
    """

    SUBSCRIBER_QUEUE_SIZE = 100

    def __init__(self, locale: str = DEFAULT_LOCALE) -> None:
        self._locale = locale
        self._listeners: list[Listener] = []
        self._subscribers: list[asyncio.Queue[Notification]] = []
        self._lock = threading.Lock()

    @property
    def locale(self) -> str:
        return self._locale

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a sync listener. Returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[Notification]]:
        """Subscribe to notifications via context manager."""
        queue: asyncio.Queue[Notification] = asyncio.Queue(
            maxsize=self.SUBSCRIBER_QUEUE_SIZE
        )
        with self._lock:
            self._subscribers.append(queue)
        try:
            yield queue
        finally:
            with self._lock:
                self._subscribers.remove(queue)

    def publish(self, notification: Notification) -> None:
        """Deliver a notification to every listener and subscriber."""
        with self._lock:
            listeners = list(self._listeners)
            subscribers = list(self._subscribers)

        for queue in subscribers:
            self._safe_put(queue, notification)

        for listener in listeners:
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener %r failed", listener)

    def _safe_put(
        self, queue: asyncio.Queue[Notification], notification: Notification
    ) -> None:
        """Put with drop-oldest backpressure."""
        try:
            queue.put_nowait(notification)
        except asyncio.QueueFull:
            try:
                queue.get_nowait()  # Drop oldest
                queue.put_nowait(notification)
            except asyncio.QueueEmpty:
                pass  # Race condition

    def notify_failure(
        self,
        *,
        title: str,
        provider: str,
        failure: FailureKind | None = None,
        track_id: str | None = None,
    ) -> Notification:
        """Publish a resolution failure notice."""
        notification = Notification(
            kind=NotificationKind.RESOLUTION_FAILED,
            level=NotificationLevel.ERROR,
            message=render_message(
                NotificationKind.RESOLUTION_FAILED,
                self._locale,
                failure,
                title=title,
                provider=provider,
            ),
            provider=provider,
            track_id=track_id,
        )
        self.publish(notification)
        return notification

    def notify_substitution(
        self,
        *,
        title: str,
        artist: str,
        provider: str,
        track_id: str | None = None,
    ) -> Notification:
        """Publish a notice that a matched track from another provider plays."""
        notification = Notification(
            kind=NotificationKind.TRACK_SUBSTITUTED,
            level=NotificationLevel.INFO,
            message=render_message(
                NotificationKind.TRACK_SUBSTITUTED,
                self._locale,
                title=title,
                artist=artist,
                provider=provider,
            ),
            provider=provider,
            track_id=track_id,
        )
        self.publish(notification)
        return notification

    def notify_credential_updated(self, provider: str) -> Notification:
        notification = Notification(
            kind=NotificationKind.CREDENTIAL_UPDATED,
            level=NotificationLevel.INFO,
            message=render_message(
                NotificationKind.CREDENTIAL_UPDATED, self._locale, provider=provider
            ),
            provider=provider,
        )
        self.publish(notification)
        return notification
