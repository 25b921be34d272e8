"""Provider client interface and the shared request pipeline."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from streamfall.config import TimeoutConfig
from streamfall.exceptions import (
    AuthError,
    ContentUnavailableError,
    RateLimitedError,
    StreamfallError,
    UpstreamError,
)
from streamfall.models.enums import Platform, Priority
from streamfall.models.track import Track
from streamfall.services.credentials import CredentialStore
from streamfall.services.proxy import ProxyGateway
from streamfall.services.retry import RetryPolicy
from streamfall.services.scheduler import SchedulerRegistry

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ProviderClient(Protocol):
    """Protocol for streaming backend clients.

    This protocol enables dependency injection and testing.
    Implement this protocol to create fake providers for testing.
    """

    platform: Platform

    @property
    def name(self) -> str: ...

    def is_available(self) -> bool:
        """Whether the provider is enabled and has a credential."""
        ...

    async def search(self, query: str, limit: int = 20) -> list[Track]:
        """Search tracks. Returns [] on any failure."""
        ...

    async def resolve_stream(self, track_id: str) -> str | None:
        """Resolve a playable URL. Returns None on any failure."""
        ...

    async def fetch_stream_url(self, track_id: str) -> str:
        """Resolve a playable URL, raising StreamfallError on failure."""
        ...

    async def get_track(self, track_id: str) -> Track | None:
        """Fetch one track's metadata."""
        ...

    async def verify_token(self, token: str | None = None) -> bool:
        """Check a token (the active one by default) with a cheap call."""
        ...


@dataclass(frozen=True)
class ProviderContext:
    """Collaborators shared by every provider client."""

    credentials: CredentialStore
    schedulers: SchedulerRegistry
    gateway: ProxyGateway
    retry: RetryPolicy
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class BaseProviderClient(ABC):
    """Shared request pipeline for provider clients.

    Every authenticated call attaches the active credential, waits for a
    slot on the provider's scheduler, goes out through the proxy gateway
    and has its status classified into the error taxonomy. The retry
    policy then rotates, backs off or gives up.

    Subclasses set ``platform``, implement the underscore hooks and
    override ``_authorize`` to place the credential on the request.
    """

    platform: ClassVar[Platform]
    # Subclasses with a way to obtain a fresh credential set this and
    # implement refresh_credentials()
    supports_refresh: ClassVar[bool] = False

    def __init__(self, context: ProviderContext) -> None:
        self._credentials = context.credentials
        self._schedulers = context.schedulers
        self._gateway = context.gateway
        self._retry = context.retry
        self._timeouts = context.timeouts

    @property
    def name(self) -> str:
        return self.platform.value

    def is_available(self) -> bool:
        return self._credentials.is_enabled(self.platform) and (
            self._credentials.has_credential(self.platform)
        )

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def _authorize(
        self,
        token: str,
        params: dict[str, Any],
        headers: dict[str, str],
    ) -> None:
        """Attach a credential to an outgoing request (in place)."""
        params["key"] = token

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Classify an HTTP response into the error taxonomy."""
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise AuthError(
                f"{self.name} rejected the credential ({status})", provider=self.name
            )
        if status == 429:
            raise RateLimitedError(
                f"{self.name} rate limit exceeded",
                provider=self.name,
                retry_after=_retry_after(response),
            )
        if status == 404:
            raise ContentUnavailableError(
                f"{self.name} resource not found", provider=self.name
            )
        raise UpstreamError(
            f"{self.name} answered {status}", provider=self.name, http_status=status
        )

    def _check_response(self, response: httpx.Response) -> None:
        """Raise for API-level errors carried in a successful response."""

    def _token_valid(self, response: httpx.Response) -> bool:
        """Whether a verification response accepts the token."""
        return response.is_success

    async def _send(
        self,
        url: str,
        token: str | None,
        *,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        timeout: float,
    ) -> httpx.Response:
        request_params = dict(params or {})
        request_headers = dict(headers or {})
        if token is not None:
            self._authorize(token, request_params, request_headers)
        response = await self._gateway.fetch(
            self.name,
            url,
            params=request_params or None,
            headers=request_headers or None,
            timeout=timeout,
        )
        self._raise_for_status(response)
        self._check_response(response)
        return response

    async def _request(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        priority: Priority = Priority.LOW,
        timeout: float | None = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        """Send a request through the scheduler, gateway and retry policy.

        Args:
            url: Target URL.
            params: Query parameters (credential excluded).
            headers: Request headers (credential excluded).
            priority: Scheduler lane; HIGH for playback, LOW for search.
            timeout: Request timeout, the search timeout by default.
            authenticated: Whether to attach and rotate credentials.

        Returns:
            A successful response.

        Raises:
            StreamfallError: Classified failure after retries.
        """
        timeout = timeout if timeout is not None else self._timeouts.search
        token: str | None = None

        async def send() -> httpx.Response:
            nonlocal token
            token = (
                self._credentials.require_active(self.platform)
                if authenticated
                else None
            )
            return await self._send(
                url, token, params=params, headers=headers, timeout=timeout
            )

        async def attempt() -> httpx.Response:
            return await self._schedulers.schedule(self.name, send, priority)

        def rotate() -> None:
            if token is not None:
                self._credentials.rotate(self.platform, failed_token=token)

        return await self._retry.execute(
            attempt,
            priority=priority,
            provider=self.name,
            rotate=rotate if authenticated else None,
            refresh=self._refresh_once
            if authenticated and self.supports_refresh
            else None,
        )

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        """Request a URL and decode its JSON body."""
        response = await self._request(url, **kwargs)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{self.name} returned invalid JSON", provider=self.name
            ) from e
        return payload

    def _parse(self, model: type[M], data: Any) -> M:
        """Validate a payload, reporting schema drift as an upstream error."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning("Unexpected %s response shape: %s", self.name, e)
            raise UpstreamError(
                f"{self.name} returned an unexpected response", provider=self.name
            ) from e

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def refresh_credentials(self) -> str | None:
        """Obtain a fresh credential from outside the configured ones."""
        return None

    async def _refresh_once(self) -> bool:
        """Run the refresh mechanism at most once per session."""
        session = self._credentials.session(self.platform)
        if session.refresh_attempted:
            return False
        session.refresh_attempted = True

        logger.info("Attempting to obtain a fresh %s credential", self.name)
        try:
            token = await self.refresh_credentials()
        except StreamfallError as e:
            logger.warning("Credential refresh for %s failed: %s", self.name, e)
            return False
        if not token:
            logger.warning("Credential refresh for %s found nothing", self.name)
            return False

        self._credentials.add_fallback(self.platform, token, activate=True)
        return True

    async def _probe_token(self, token: str) -> bool:
        """Make the cheapest authenticated call with an explicit token."""
        url, params = self._verify_request()
        response = await self._schedulers.schedule(
            self.name,
            lambda: self._send_unchecked(url, token, params=params),
            Priority.LOW,
        )
        return self._token_valid(response)

    async def _send_unchecked(
        self, url: str, token: str, *, params: Mapping[str, Any]
    ) -> httpx.Response:
        request_params = dict(params)
        request_headers: dict[str, str] = {}
        self._authorize(token, request_params, request_headers)
        return await self._gateway.fetch(
            self.name,
            url,
            params=request_params,
            headers=request_headers or None,
            timeout=self._timeouts.verify,
        )

    @abstractmethod
    def _verify_request(self) -> tuple[str, dict[str, Any]]:
        """URL and params of the cheap call used to verify a token."""

    async def verify_token(self, token: str | None = None) -> bool:
        """Check a token (the active one by default).

        Never raises: network failures and rejections return False.
        """
        token = token or self._credentials.get_active(self.platform)
        if not token:
            return False
        try:
            return await self._probe_token(token)
        except StreamfallError as e:
            logger.debug("Token check for %s failed: %s", self.name, e)
            return False

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def _ensure_available(self) -> None:
        if not self._credentials.is_enabled(self.platform):
            raise ContentUnavailableError(
                f"{self.name} is disabled", provider=self.name
            )
        self._credentials.require_active(self.platform)

    async def search(self, query: str, limit: int = 20) -> list[Track]:
        """Search tracks. Returns [] when unavailable or on any failure."""
        if not query or not query.strip():
            return []
        if not self.is_available():
            logger.debug("Skipping %s search: provider unavailable", self.name)
            return []
        try:
            return await self._search(query.strip(), limit)
        except StreamfallError as e:
            logger.warning("%s search failed for '%s': %s", self.name, query, e)
            return []

    async def fetch_stream_url(self, track_id: str) -> str:
        """Resolve a playable stream URL.

        Raises:
            NoCredentialError: If the provider has no credential.
            ContentUnavailableError: If the track has no playable stream.
            StreamfallError: Other classified failures after retries.
        """
        self._ensure_available()
        return await self._fetch_stream_url(track_id)

    async def resolve_stream(self, track_id: str) -> str | None:
        """Resolve a playable stream URL, or None on any failure."""
        try:
            return await self.fetch_stream_url(track_id)
        except StreamfallError as e:
            logger.warning("Could not resolve %s stream %s: %s", self.name, track_id, e)
            return None

    async def get_track(self, track_id: str) -> Track | None:
        """Fetch one track's metadata, or None on any failure."""
        try:
            self._ensure_available()
            return await self._get_track(track_id)
        except StreamfallError as e:
            logger.warning("Could not fetch %s track %s: %s", self.name, track_id, e)
            return None

    def _strip_prefix(self, track_id: str) -> str:
        prefix = self.platform.id_prefix
        if prefix and track_id.startswith(prefix):
            return track_id[len(prefix) :]
        return track_id

    @abstractmethod
    async def _search(self, query: str, limit: int) -> list[Track]: ...

    @abstractmethod
    async def _fetch_stream_url(self, track_id: str) -> str: ...

    @abstractmethod
    async def _get_track(self, track_id: str) -> Track | None: ...
