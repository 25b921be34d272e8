"""Per-provider credential management with circular fallback rotation."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime

from streamfall.exceptions import NoCredentialError, StreamfallError
from streamfall.models.credential import Credential, ProviderSession
from streamfall.models.enums import CredentialKind
from streamfall.services.protocols import (
    InMemoryTokenStorage,
    TokenProbe,
    TokenStorage,
)

logger = logging.getLogger(__name__)


def _user_token_key(provider: str) -> str:
    return f"{provider}.user_token"


def _fallback_index_key(provider: str) -> str:
    return f"{provider}.fallback_index"


class CredentialStore:
    """Holds each provider's user and builtin fallback credentials.

    Exactly one credential is active per provider: the user-supplied
    token unless it was rotated away from, otherwise the builtin
    fallback at the session's index. Rotation advances the index
    circularly and is serialized with a lock, so concurrent auth
    failures racing to rotate advance it only once.

    Usage::

        store = CredentialStore({"soundcloud": ["id1", "id2"]})
        token = store.require_active("soundcloud")
        token = store.rotate("soundcloud", failed_token=token)
    """

    def __init__(
        self,
        fallbacks: Mapping[str, Sequence[str]] | None = None,
        storage: TokenStorage | None = None,
        *,
        verify_cache_seconds: float = 30.0,
        verify_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            fallbacks: Builtin fallback tokens per provider, in rotation order.
            storage: Key-value store to seed from and write back to.
            verify_cache_seconds: How long a positive verification is trusted.
            verify_timeout: Timeout for a verification probe.
            clock: Monotonic clock, injectable for tests.
        """
        self._fallbacks: dict[str, list[str]] = {
            str(provider): [t for t in tokens if t]
            for provider, tokens in (fallbacks or {}).items()
        }
        self._storage = storage if storage is not None else InMemoryTokenStorage()
        self._verify_cache_seconds = verify_cache_seconds
        self._verify_timeout = verify_timeout
        self._clock = clock
        self._user_tokens: dict[str, str] = {}
        self._sessions: dict[str, ProviderSession] = {}
        self._verified_at: dict[str, float] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session(self, provider: str) -> ProviderSession:
        """Get the provider's session, creating it from storage on first use."""
        provider = str(provider)
        with self._lock:
            session = self._sessions.get(provider)
            if session is None:
                session = self._load_session(provider)
                self._sessions[provider] = session
            return session

    def _load_session(self, provider: str) -> ProviderSession:
        session = ProviderSession()
        if user_token := self._storage.get(_user_token_key(provider)):
            self._user_tokens[provider] = user_token
        stored_index = self._storage.get(_fallback_index_key(provider))
        tokens = self._fallbacks.get(provider) or []
        if stored_index and tokens:
            try:
                session.fallback_index = int(stored_index) % len(tokens)
            except ValueError:
                logger.warning(
                    "Ignoring invalid stored fallback index for %s: %r",
                    provider,
                    stored_index,
                )
        return session

    def set_enabled(self, provider: str, enabled: bool) -> None:
        """Enable or disable a provider."""
        self.session(provider).enabled = enabled
        logger.info("Provider %s %s", provider, "enabled" if enabled else "disabled")

    def is_enabled(self, provider: str) -> bool:
        return self.session(provider).enabled

    # ------------------------------------------------------------------
    # Active credential
    # ------------------------------------------------------------------

    def _active_locked(self, provider: str) -> tuple[str, CredentialKind] | None:
        session = self.session(provider)
        user_token = self._user_tokens.get(provider)
        if user_token and not session.user_token_suspended:
            return user_token, CredentialKind.USER_SUPPLIED
        tokens = self._fallbacks.get(provider) or []
        if tokens:
            return tokens[session.fallback_index % len(tokens)], (
                CredentialKind.BUILTIN_FALLBACK
            )
        if user_token:
            # Suspended but nothing else to fall back to
            return user_token, CredentialKind.USER_SUPPLIED
        return None

    def get_active(self, provider: str) -> str | None:
        """Get the active token for a provider, or None when there is none."""
        provider = str(provider)
        with self._lock:
            active = self._active_locked(provider)
        return active[0] if active else None

    def get_active_credential(self, provider: str) -> Credential | None:
        """Get the active credential with its kind and verification time."""
        provider = str(provider)
        with self._lock:
            active = self._active_locked(provider)
            if active is None:
                return None
            value, kind = active
            return Credential(
                provider=provider,
                value=value,
                kind=kind,
                last_verified_at=self.session(provider).last_verified_at,
            )

    def require_active(self, provider: str) -> str:
        """Get the active token.

        Raises:
            NoCredentialError: If the provider has no credential at all.
        """
        token = self.get_active(provider)
        if token is None:
            raise NoCredentialError(
                f"No credential configured for {provider}", provider=str(provider)
            )
        return token

    def has_credential(self, provider: str) -> bool:
        return self.get_active(provider) is not None

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def rotate(self, provider: str, failed_token: str | None = None) -> str:
        """Switch to the next credential after an auth failure.

        The first rotation away from a user-supplied token suspends it and
        activates the fallback at the current index. Later rotations
        advance the index circularly, wrapping to 0 after the last entry.

        Args:
            provider: Provider name.
            failed_token: Token that was rejected. If another caller already
                rotated away from it, the current token is returned unchanged.

        Returns:
            The newly active token.

        Raises:
            NoCredentialError: If the provider has no credential at all.
        """
        provider = str(provider)
        with self._lock:
            active = self._active_locked(provider)
            if active is None:
                raise NoCredentialError(
                    f"No credential configured for {provider}", provider=provider
                )
            current, kind = active
            if failed_token is not None and failed_token != current:
                logger.debug("Credential for %s already rotated", provider)
                return current

            session = self.session(provider)
            tokens = self._fallbacks.get(provider) or []
            if not tokens:
                logger.warning("No fallback credentials to rotate to for %s", provider)
                return current

            if kind == CredentialKind.USER_SUPPLIED:
                session.user_token_suspended = True
            else:
                session.fallback_index = (session.fallback_index + 1) % len(tokens)
            self._verified_at.pop(provider, None)
            self._storage.set(
                _fallback_index_key(provider), str(session.fallback_index)
            )
            logger.warning(
                "Switching %s to fallback credential %d/%d",
                provider,
                session.fallback_index + 1,
                len(tokens),
            )
            return tokens[session.fallback_index]

    def active_index(self, provider: str) -> int:
        """Current position in the provider's fallback list."""
        return self.session(provider).fallback_index

    def fallback_tokens(self, provider: str) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._fallbacks.get(str(provider)) or ())

    def add_fallback(
        self, provider: str, token: str, *, activate: bool = False
    ) -> None:
        """Register an extra fallback token.

        Args:
            provider: Provider name.
            token: Token to add. Duplicates are not added twice.
            activate: Put the token first and make it the active credential
                (used for freshly refreshed tokens).
        """
        provider = str(provider)
        with self._lock:
            tokens = self._fallbacks.setdefault(provider, [])
            session = self.session(provider)
            if activate:
                if token in tokens:
                    tokens.remove(token)
                tokens.insert(0, token)
                session.fallback_index = 0
                if provider in self._user_tokens:
                    session.user_token_suspended = True
                self._verified_at.pop(provider, None)
                self._storage.set(_fallback_index_key(provider), "0")
            elif token not in tokens:
                tokens.append(token)
        logger.info("Added fallback credential for %s", provider)

    # ------------------------------------------------------------------
    # User tokens
    # ------------------------------------------------------------------

    def set_user_token(self, provider: str, token: str) -> None:
        """Set a user-supplied token, preferred over builtins from now on.

        Raises:
            ValueError: If the token is empty.
        """
        provider = str(provider)
        token = token.strip()
        if not token:
            raise ValueError("token cannot be empty")
        with self._lock:
            session = self.session(provider)
            self._user_tokens[provider] = token
            session.user_token_suspended = False
            session.last_verified_at = None
            self._verified_at.pop(provider, None)
            self._storage.set(_user_token_key(provider), token)
        logger.info("User credential updated for %s", provider)

    def clear_user_token(self, provider: str) -> None:
        """Forget the user-supplied token and fall back to builtins."""
        provider = str(provider)
        with self._lock:
            self.session(provider).user_token_suspended = False
            self._user_tokens.pop(provider, None)
            self._verified_at.pop(provider, None)
            self._storage.delete(_user_token_key(provider))

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def mark_verified(self, provider: str) -> None:
        """Record that the active credential just passed verification."""
        provider = str(provider)
        with self._lock:
            self.session(provider).last_verified_at = datetime.now(UTC)
            self._verified_at[provider] = self._clock()

    def is_verified(self, provider: str) -> bool:
        """Whether a positive verification is still cached."""
        verified_at = self._verified_at.get(str(provider))
        if verified_at is None:
            return False
        return self._clock() - verified_at < self._verify_cache_seconds

    async def verify(self, provider: str, probe: TokenProbe) -> bool:
        """Verify the active credential with a cheap provider call.

        A positive result is cached, so repeated resolutions do not
        re-verify. Failures and timeouts return False and are not cached.

        Args:
            provider: Provider name.
            probe: Coroutine function taking a token, returning validity.

        Returns:
            True if the credential is (recently) known to work.
        """
        token = self.get_active(provider)
        if token is None:
            return False
        if self.is_verified(provider):
            return True

        try:
            async with asyncio.timeout(self._verify_timeout):
                is_valid = await probe(token)
        except TimeoutError:
            logger.warning("Credential verification timed out for %s", provider)
            return False
        except StreamfallError as e:
            logger.warning("Credential verification failed for %s: %s", provider, e)
            return False

        if is_valid:
            self.mark_verified(provider)
        return is_valid
