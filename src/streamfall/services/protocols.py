"""Collaborator protocols for dependency injection."""

from collections.abc import Awaitable, Callable
from typing import Protocol

TokenProbe = Callable[[str], Awaitable[bool]]


class TokenStorage(Protocol):
    """Persistent key-value store owned by the host application.

    The credential store reads seed and user tokens from it and writes
    user tokens and rotation positions back. All methods are synchronous
    and expected to be cheap.
    """

    def get(self, key: str) -> str | None:
        """Read a value, or None when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Write a value."""
        ...

    def delete(self, key: str) -> None:
        """Remove a value if present."""
        ...


class InMemoryTokenStorage:
    """Dict-backed TokenStorage, used when the host supplies none."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
