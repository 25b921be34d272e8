"""Test fixtures and configuration."""

from collections.abc import AsyncIterator, Callable, Mapping, Sequence

import httpx
import pytest
import pytest_asyncio
from streamfall.config import ProxyConfig, RetryConfig, TimeoutConfig
from streamfall.models.enums import Platform
from streamfall.models.track import Track
from streamfall.providers.base import ProviderContext
from streamfall.services.credentials import CredentialStore
from streamfall.services.protocols import InMemoryTokenStorage
from streamfall.services.proxy import ProxyGateway
from streamfall.services.retry import RetryPolicy
from streamfall.services.scheduler import SchedulerRegistry

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingSleep:
    """Sleep replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Monotonic clock advanced only by the paired sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Create a sleep that records requested delays."""
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def sample_track() -> Track:
    """Create a sample SoundCloud track."""
    return Track(
        id="sc-123",
        title="Midnight",
        artist="Nova",
        duration=200,
        platform=Platform.SOUNDCLOUD,
    )


@pytest.fixture
def youtube_track() -> Track:
    """Create a sample YouTube track (search-only provider)."""
    return Track(
        id="yt-abc123",
        title="Midnight",
        artist="Nova",
        duration=200,
        platform=Platform.YOUTUBE,
    )


@pytest_asyncio.fixture
async def make_context(
    recording_sleep: RecordingSleep,
) -> AsyncIterator[Callable[..., ProviderContext]]:
    """Factory building provider contexts backed by a mock transport.

    Schedulers and HTTP clients created by the factory are closed after
    the test.
    """
    created: list[ProviderContext] = []

    def factory(
        handler: Handler,
        *,
        fallbacks: Mapping[str, Sequence[str]] | None = None,
        storage: InMemoryTokenStorage | None = None,
        proxy: ProxyConfig | None = None,
        max_attempts: int = 4,
    ) -> ProviderContext:
        credentials = CredentialStore(fallbacks or {}, storage)
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        context = ProviderContext(
            credentials=credentials,
            schedulers=SchedulerRegistry(0.0, session_for=credentials.session),
            gateway=ProxyGateway(client, proxy or ProxyConfig(local_relay=None)),
            retry=RetryPolicy(
                RetryConfig(max_attempts=max_attempts), sleep=recording_sleep
            ),
            timeouts=TimeoutConfig(),
        )
        created.append(context)
        return context

    yield factory

    for context in created:
        await context.schedulers.close()
        await context.gateway.client.aclose()
