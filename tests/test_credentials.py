"""Tests for the credential store."""

import asyncio

import pytest
from streamfall.exceptions import NetworkError, NoCredentialError
from streamfall.models.enums import CredentialKind
from streamfall.services.credentials import CredentialStore
from streamfall.services.protocols import InMemoryTokenStorage

from tests.conftest import FakeClock


@pytest.fixture
def store() -> CredentialStore:
    """Create a store with three SoundCloud fallbacks."""
    return CredentialStore({"soundcloud": ["id-a", "id-b", "id-c"]})


class TestActiveCredential:
    """Tests for active credential selection."""

    def test_defaults_to_first_fallback(self, store: CredentialStore) -> None:
        """Should use the first builtin when no user token exists."""
        assert store.get_active("soundcloud") == "id-a"

    def test_user_token_preferred(self, store: CredentialStore) -> None:
        """Should prefer a user-supplied token over builtins."""
        store.set_user_token("soundcloud", "mine")

        credential = store.get_active_credential("soundcloud")

        assert credential is not None
        assert credential.value == "mine"
        assert credential.kind == CredentialKind.USER_SUPPLIED

    def test_unknown_provider_has_none(self, store: CredentialStore) -> None:
        """Should return None for providers without credentials."""
        assert store.get_active("yandex") is None
        assert store.has_credential("yandex") is False

    def test_require_active_raises_without_credential(
        self, store: CredentialStore
    ) -> None:
        """Should raise NoCredentialError when nothing is configured."""
        with pytest.raises(NoCredentialError) as exc_info:
            store.require_active("vk")

        assert exc_info.value.provider == "vk"

    def test_empty_user_token_rejected(self, store: CredentialStore) -> None:
        """Should reject blank tokens."""
        with pytest.raises(ValueError, match="empty"):
            store.set_user_token("soundcloud", "   ")

    def test_clear_user_token_restores_builtin(self, store: CredentialStore) -> None:
        """Should fall back to builtins after the user token is cleared."""
        store.set_user_token("soundcloud", "mine")
        store.clear_user_token("soundcloud")

        assert store.get_active("soundcloud") == "id-a"


class TestRotation:
    """Tests for circular rotation."""

    def test_advances_to_next_fallback(self, store: CredentialStore) -> None:
        """Should move to the next builtin on rotation."""
        assert store.rotate("soundcloud") == "id-b"
        assert store.active_index("soundcloud") == 1

    def test_full_cycle_returns_to_first(self, store: CredentialStore) -> None:
        """After N rotations the first credential is active again."""
        used = [store.get_active("soundcloud")]
        for _ in range(3):
            used.append(store.rotate("soundcloud"))

        assert store.active_index("soundcloud") == 0
        assert used == ["id-a", "id-b", "id-c", "id-a"]

    def test_stale_failed_token_does_not_advance(
        self, store: CredentialStore
    ) -> None:
        """Concurrent failures of the same token should rotate only once."""
        first = store.rotate("soundcloud", failed_token="id-a")
        second = store.rotate("soundcloud", failed_token="id-a")

        assert first == second == "id-b"
        assert store.active_index("soundcloud") == 1

    def test_user_token_suspended_on_rotation(self, store: CredentialStore) -> None:
        """Should switch from a rejected user token to the builtins."""
        store.set_user_token("soundcloud", "mine")

        token = store.rotate("soundcloud", failed_token="mine")

        assert token == "id-a"
        assert store.session("soundcloud").user_token_suspended is True
        credential = store.get_active_credential("soundcloud")
        assert credential is not None
        assert credential.kind == CredentialKind.BUILTIN_FALLBACK

    def test_setting_user_token_lifts_suspension(
        self, store: CredentialStore
    ) -> None:
        """A newly set user token should be active again."""
        store.set_user_token("soundcloud", "mine")
        store.rotate("soundcloud")

        store.set_user_token("soundcloud", "new")

        assert store.get_active("soundcloud") == "new"

    def test_rotation_without_fallbacks_keeps_token(self) -> None:
        """Should keep the only token when there is nothing to rotate to."""
        store = CredentialStore()
        store.set_user_token("yandex", "oauth")

        assert store.rotate("yandex") == "oauth"

    def test_rotation_without_any_credential_raises(
        self, store: CredentialStore
    ) -> None:
        """Should raise when the provider has no credential at all."""
        with pytest.raises(NoCredentialError):
            store.rotate("vk")

    def test_activated_fallback_goes_first(self, store: CredentialStore) -> None:
        """A refreshed token should be prepended and become active."""
        store.rotate("soundcloud")

        store.add_fallback("soundcloud", "fresh", activate=True)

        assert store.fallback_tokens("soundcloud")[0] == "fresh"
        assert store.active_index("soundcloud") == 0
        assert store.get_active("soundcloud") == "fresh"

    def test_added_fallback_not_duplicated(self, store: CredentialStore) -> None:
        """Should not append a token twice."""
        store.add_fallback("soundcloud", "id-b")

        assert store.fallback_tokens("soundcloud") == ("id-a", "id-b", "id-c")


class TestStorage:
    """Tests for seeding from and writing back to token storage."""

    def test_writes_user_token_and_index(self) -> None:
        """Should persist user tokens and rotated indices."""
        storage = InMemoryTokenStorage()
        store = CredentialStore({"soundcloud": ["a", "b"]}, storage)

        store.set_user_token("vk", "vk-token")
        store.rotate("soundcloud")

        assert storage.get("vk.user_token") == "vk-token"
        assert storage.get("soundcloud.fallback_index") == "1"

    def test_seeds_from_storage(self) -> None:
        """Should restore user tokens and the rotation index."""
        storage = InMemoryTokenStorage(
            {"yandex.user_token": "saved", "soundcloud.fallback_index": "1"}
        )
        store = CredentialStore({"soundcloud": ["a", "b"]}, storage)

        assert store.get_active("yandex") == "saved"
        assert store.get_active("soundcloud") == "b"

    def test_ignores_invalid_stored_index(self) -> None:
        """Should start at 0 when the stored index is garbage."""
        storage = InMemoryTokenStorage({"soundcloud.fallback_index": "nope"})
        store = CredentialStore({"soundcloud": ["a", "b"]}, storage)

        assert store.get_active("soundcloud") == "a"

    def test_clear_removes_stored_token(self) -> None:
        """Should delete the stored user token."""
        storage = InMemoryTokenStorage()
        store = CredentialStore(storage=storage)
        store.set_user_token("vk", "t")

        store.clear_user_token("vk")

        assert storage.get("vk.user_token") is None


class TestVerification:
    """Tests for cached credential verification."""

    @pytest.mark.asyncio
    async def test_positive_result_cached(self, fake_clock: FakeClock) -> None:
        """Should not call the probe again within the cache window."""
        store = CredentialStore({"soundcloud": ["a"]}, clock=fake_clock)
        calls: list[str] = []

        async def probe(token: str) -> bool:
            calls.append(token)
            return True

        assert await store.verify("soundcloud", probe) is True
        fake_clock.now += 10
        assert await store.verify("soundcloud", probe) is True

        assert calls == ["a"]
        assert store.session("soundcloud").last_verified_at is not None

    @pytest.mark.asyncio
    async def test_cache_expires(self, fake_clock: FakeClock) -> None:
        """Should probe again once the cache window has passed."""
        store = CredentialStore({"soundcloud": ["a"]}, clock=fake_clock)
        calls: list[str] = []

        async def probe(token: str) -> bool:
            calls.append(token)
            return True

        await store.verify("soundcloud", probe)
        fake_clock.now += 31
        await store.verify("soundcloud", probe)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_negative_result_not_cached(self) -> None:
        """Should not remember failures."""
        store = CredentialStore({"soundcloud": ["a"]})

        async def probe(token: str) -> bool:
            return False

        assert await store.verify("soundcloud", probe) is False
        assert store.is_verified("soundcloud") is False

    @pytest.mark.asyncio
    async def test_probe_errors_return_false(self) -> None:
        """Should turn provider errors into a negative result."""
        store = CredentialStore({"soundcloud": ["a"]})

        async def probe(token: str) -> bool:
            raise NetworkError("down", provider="soundcloud")

        assert await store.verify("soundcloud", probe) is False

    @pytest.mark.asyncio
    async def test_probe_timeout_returns_false(self) -> None:
        """Should give up on probes exceeding the timeout."""
        store = CredentialStore({"soundcloud": ["a"]}, verify_timeout=0.01)

        async def probe(token: str) -> bool:
            await asyncio.sleep(1)
            return True

        assert await store.verify("soundcloud", probe) is False

    @pytest.mark.asyncio
    async def test_rotation_invalidates_cache(self) -> None:
        """A rotated credential has not been verified yet."""
        store = CredentialStore({"soundcloud": ["a", "b"]})
        store.mark_verified("soundcloud")

        store.rotate("soundcloud")

        assert store.is_verified("soundcloud") is False

    @pytest.mark.asyncio
    async def test_without_credential_returns_false(self) -> None:
        """Should not probe when there is nothing to verify."""
        store = CredentialStore()

        async def probe(token: str) -> bool:
            raise AssertionError("should not be called")

        assert await store.verify("vk", probe) is False


class TestEnablement:
    """Tests for enabling and disabling providers."""

    def test_enabled_by_default(self, store: CredentialStore) -> None:
        """Providers start enabled."""
        assert store.is_enabled("soundcloud") is True

    def test_disable(self, store: CredentialStore) -> None:
        """Should record disabled providers on the session."""
        store.set_enabled("soundcloud", False)

        assert store.is_enabled("soundcloud") is False
