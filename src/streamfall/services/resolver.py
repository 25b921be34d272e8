"""Fallback chain that turns a track into a playable stream."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping

from streamfall.config import ResolverConfig
from streamfall.exceptions import NoMatchError, StreamfallError
from streamfall.lib.matching import MatchResult, MatchScorer
from streamfall.models.enums import FailureKind, Platform, ResolutionSource
from streamfall.models.track import ResolutionResult, Track
from streamfall.providers.base import ProviderClient
from streamfall.services.events import EventBus
from streamfall.utils.platform import ensure_platform

logger = logging.getLogger(__name__)

StreamProbe = Callable[[str], Awaitable[bool]]

# Most specific first: the kind that best explains a failed resolution
_FAILURE_PRECEDENCE = (
    FailureKind.NO_CREDENTIAL,
    FailureKind.AUTH,
    FailureKind.RATE_LIMITED,
    FailureKind.NETWORK,
    FailureKind.NO_MATCH,
    FailureKind.CONTENT_UNAVAILABLE,
    FailureKind.UPSTREAM,
)


def most_specific_failure(failures: list[FailureKind]) -> FailureKind | None:
    """Pick the failure kind that best explains an unresolved track."""
    for kind in _FAILURE_PRECEDENCE:
        if kind in failures:
            return kind
    return None


class FallbackResolver:
    """Resolves tracks through an ordered chain of strategies.

    1. A previously resolved stream URL, if it still answers a HEAD probe.
    2. The owning provider's stream resolution.
    3. A scored search on the fallback provider (artist and title, then
       title alone).
    4. A search on the secondary provider whose best hit seeds step 3.
    5. A tagged null-stream result.

    No strategy raises past ``resolve()``. Exactly one notification is
    published per substituted or failed resolution.
    """

    def __init__(
        self,
        providers: Mapping[Platform, ProviderClient],
        *,
        probe: StreamProbe,
        scorer: MatchScorer | None = None,
        events: EventBus | None = None,
        config: ResolverConfig | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            providers: Provider clients by platform.
            probe: Checks whether a stream URL is still reachable.
            scorer: Candidate scorer. Uses the configured threshold if omitted.
            events: Bus receiving substitution and failure notifications.
            config: Fallback chain configuration.
        """
        self._providers = providers
        self._probe = probe
        self._config = config or ResolverConfig()
        self._scorer = scorer or MatchScorer(self._config.match_threshold)
        self._events = events

    async def resolve(self, track: Track) -> ResolutionResult:
        """Resolve a track to a playable stream URL.

        Args:
            track: Track to play.

        Returns:
            The resolution outcome. ``stream_url`` is None when every
            strategy failed; ``failure`` then names the likeliest cause.
        """
        track = ensure_platform(track)
        failures: list[FailureKind] = []

        if result := await self._try_existing_stream(track):
            return result

        if result := await self._try_original_provider(track, failures):
            return result

        if result := await self._try_fallback_search(track, track, failures):
            self._notify_substitution(track, result)
            return result

        if result := await self._try_two_hop(track, failures):
            self._notify_substitution(track, result)
            return result

        failure = most_specific_failure(failures)
        logger.error(
            "No stream for '%s' by %s (%s)",
            track.title,
            track.artist,
            failure.label if failure else "no provider",
        )
        if self._events is not None:
            self._events.notify_failure(
                title=track.title,
                provider=track.platform.value,
                failure=failure,
                track_id=track.id,
            )
        return ResolutionResult(
            stream_url=None,
            source=ResolutionSource.FALLBACK,
            source_provider=track.platform.value,
            failure=failure,
        )

    async def _try_existing_stream(self, track: Track) -> ResolutionResult | None:
        if not track.stream_url:
            return None
        if await self._probe(track.stream_url):
            logger.debug("Existing stream for %s is reachable", track.id)
            return ResolutionResult(
                stream_url=track.stream_url,
                source=ResolutionSource.ORIGINAL,
                source_provider=track.platform.value,
            )
        logger.info("Stored stream for %s is no longer reachable", track.id)
        return None

    async def _try_original_provider(
        self, track: Track, failures: list[FailureKind]
    ) -> ResolutionResult | None:
        provider = self._providers.get(track.platform)
        if provider is None:
            logger.debug("No client for %s, going to fallback", track.platform)
            return None

        try:
            stream_url = await provider.fetch_stream_url(track.id)
        except StreamfallError as e:
            logger.warning("%s could not resolve %s: %s", provider.name, track.id, e)
            failures.append(e.failure_kind)
            return None

        return ResolutionResult(
            stream_url=stream_url,
            source=ResolutionSource.ORIGINAL,
            source_provider=provider.name,
        )

    async def _search_candidates(
        self, provider: ProviderClient, reference: Track
    ) -> list[Track]:
        limit = self._config.search_limit
        candidates = await provider.search(reference.search_query, limit)
        if not candidates and reference.artist:
            logger.debug(
                "No results for '%s', trying title only", reference.search_query
            )
            candidates = await provider.search(reference.title, limit)
        return candidates

    async def _try_fallback_search(
        self,
        original: Track,
        reference: Track,
        failures: list[FailureKind],
    ) -> ResolutionResult | None:
        """Search the fallback provider for ``reference`` and resolve the best hit."""
        provider = self._providers.get(self._config.fallback_provider)
        if provider is None or not provider.is_available():
            logger.debug(
                "Fallback provider %s unavailable", self._config.fallback_provider
            )
            return None

        candidates = [
            c for c in await self._search_candidates(provider, reference)
            if c.id != original.id
        ]
        try:
            match = self._pick_match(provider, reference, candidates)
        except NoMatchError as e:
            logger.info("%s", e)
            failures.append(e.failure_kind)
            return None

        return await self._resolve_match(provider, match, failures)

    def _pick_match(
        self, provider: ProviderClient, reference: Track, candidates: list[Track]
    ) -> MatchResult:
        """Best candidate above the threshold.

        Raises:
            NoMatchError: If no candidate reaches the threshold.
        """
        match = self._scorer.best_match(reference, candidates)
        if match is None:
            raise NoMatchError(
                f"No {provider.name} match for '{reference.search_query}' "
                f"among {len(candidates)} candidates",
                provider=provider.name,
            )
        return match

    async def _resolve_match(
        self,
        provider: ProviderClient,
        match: MatchResult,
        failures: list[FailureKind],
    ) -> ResolutionResult | None:
        candidate = match.candidate
        stream_url = candidate.stream_url
        if not stream_url:
            try:
                stream_url = await provider.fetch_stream_url(candidate.id)
            except StreamfallError as e:
                logger.warning(
                    "Matched %s track %s could not be resolved: %s",
                    provider.name,
                    candidate.id,
                    e,
                )
                failures.append(e.failure_kind)
                return None

        logger.info(
            "Substituting '%s' by %s from %s (score %.1f)",
            candidate.title,
            candidate.artist,
            provider.name,
            match.score,
        )
        return ResolutionResult(
            stream_url=stream_url,
            source=ResolutionSource.FALLBACK_PROVIDER,
            source_provider=provider.name,
            substituted_track=candidate.model_copy(update={"stream_url": stream_url}),
            match_score=match.score,
        )

    async def _try_two_hop(
        self, track: Track, failures: list[FailureKind]
    ) -> ResolutionResult | None:
        secondary = self._config.secondary_provider
        if track.platform == secondary:
            return None
        provider = self._providers.get(secondary)
        if provider is None or not provider.is_available():
            return None

        hits = await self._search_candidates(provider, track)
        seed = self._scorer.best_match(track, hits)
        if seed is None:
            logger.debug("Secondary provider %s found nothing usable", secondary)
            return None

        logger.info(
            "Retrying fallback with %s hit '%s' by %s",
            provider.name,
            seed.candidate.title,
            seed.candidate.artist,
        )
        return await self._try_fallback_search(track, seed.candidate, failures)

    def _notify_substitution(self, track: Track, result: ResolutionResult) -> None:
        if self._events is None or result.substituted_track is None:
            return
        substitute = result.substituted_track
        self._events.notify_substitution(
            title=substitute.title,
            artist=substitute.artist,
            provider=result.source_provider,
            track_id=track.id,
        )
