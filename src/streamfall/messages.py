"""Localized notification messages.

Messages are keyed by (NotificationKind, FailureKind | None). Templates use
``str.format`` placeholders: ``title``, ``artist``, ``provider``.
"""

from streamfall.models.enums import FailureKind, NotificationKind

DEFAULT_LOCALE = "en"

_Key = tuple[NotificationKind, FailureKind | None]

_MESSAGES: dict[str, dict[_Key, str]] = {
    "en": {
        (NotificationKind.RESOLUTION_FAILED, None): (
            "Could not load “{title}”: no source is available"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NO_CREDENTIAL): (
            "{provider}: token is not configured. Add one in service settings"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.AUTH): (
            "{provider}: every token was rejected, could not load “{title}”"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.RATE_LIMITED): (
            "{provider}: too many requests, try “{title}” again later"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.CONTENT_UNAVAILABLE): (
            "“{title}” is not available for playback"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NETWORK): (
            "Network error while loading “{title}”"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NO_MATCH): (
            "Could not find a replacement for “{title}”"
        ),
        (NotificationKind.TRACK_SUBSTITUTED, None): (
            "Playing “{title}” by {artist} from {provider}"
        ),
        (NotificationKind.CREDENTIAL_UPDATED, None): "{provider}: token updated",
    },
    "ru": {
        (NotificationKind.RESOLUTION_FAILED, None): (
            "Не удалось загрузить «{title}»: нет доступных источников"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NO_CREDENTIAL): (
            "{provider}: токен не настроен. Перейдите в настройки сервисов"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.AUTH): (
            "{provider}: все токены не работают, не удалось загрузить «{title}»"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.RATE_LIMITED): (
            "{provider}: слишком много запросов, попробуйте «{title}» позже"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.CONTENT_UNAVAILABLE): (
            "«{title}» недоступен для воспроизведения"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NETWORK): (
            "Ошибка сети при загрузке «{title}»"
        ),
        (NotificationKind.RESOLUTION_FAILED, FailureKind.NO_MATCH): (
            "Не удалось найти замену для «{title}»"
        ),
        (NotificationKind.TRACK_SUBSTITUTED, None): (
            "Воспроизводится «{title}» ({artist}) из {provider}"
        ),
        (NotificationKind.CREDENTIAL_UPDATED, None): "{provider}: токен обновлён",
    },
}

SUPPORTED_LOCALES = frozenset(_MESSAGES)


def render_message(
    kind: NotificationKind,
    locale: str = DEFAULT_LOCALE,
    failure: FailureKind | None = None,
    **params: str,
) -> str:
    """Render a localized notification message.

    Falls back to the generic message of the kind when no failure-specific
    template exists, and to the default locale for unknown locales.

    Args:
        kind: Notification kind.
        locale: Language code.
        failure: Failure classification for failure notifications.
        **params: Template values (title, artist, provider).

    Returns:
        Formatted message.
    """
    catalog = _MESSAGES.get(locale, _MESSAGES[DEFAULT_LOCALE])
    template = catalog.get((kind, failure)) or catalog[(kind, None)]
    values = {"title": "", "artist": "", "provider": ""} | params
    return template.format(**values)
