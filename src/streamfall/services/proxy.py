"""Relay routing for outbound provider requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import quote

import httpx

from streamfall.config import ProxyConfig
from streamfall.exceptions import NetworkError

logger = logging.getLogger(__name__)


class ProxyGateway:
    """Sends provider requests directly or through relay proxies.

    For proxied services the local relay is tried first, then the public
    relays starting at the sticky index, then a direct request. The sticky
    index only moves when a relay succeeds, so the next request starts
    from the relay that last worked. Relay failures are logged and never
    raised; only a failing direct request raises.

    Usage::

        gateway = ProxyGateway(httpx.AsyncClient(), ProxyConfig())
        gateway.set_service_proxy("soundcloud", True)
        response = await gateway.fetch("soundcloud", url)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: ProxyConfig | None = None,
        *,
        default_timeout: float = 15.0,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Shared HTTP client. Created (and owned) when omitted.
            config: Relay configuration.
            default_timeout: Timeout for requests that do not set one.
        """
        config = config or ProxyConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._proxied: set[str] = {str(s) for s in config.proxied_services}
        self._local_relay = config.local_relay
        self._relays: list[str] = list(config.public_relays)
        self._relay_index = 0
        self._default_timeout = default_timeout

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def relay_index(self) -> int:
        """Sticky position in the public relay list."""
        return self._relay_index

    @property
    def current_relay(self) -> str | None:
        """Public relay the next proxied request starts from."""
        if not self._relays:
            return None
        return self._relays[self._relay_index]

    def set_service_proxy(self, service: str, enabled: bool) -> None:
        """Enable or disable relay routing for a service."""
        if enabled:
            self._proxied.add(str(service))
        else:
            self._proxied.discard(str(service))
        logger.info("Proxy %s for %s", "enabled" if enabled else "disabled", service)

    def is_service_proxied(self, service: str) -> bool:
        return str(service) in self._proxied

    def build_proxied_url(self, url: str, relay: str | None = None) -> str:
        """Wrap a target URL in a relay prefix (current relay by default)."""
        relay = relay or self.current_relay
        if relay is None:
            return url
        return f"{relay}{quote(url, safe='')}"

    def reset(self) -> None:
        """Return the sticky index to the first public relay."""
        self._relay_index = 0

    async def fetch(
        self,
        service: str,
        url: str,
        *,
        method: str = "GET",
        params: Mapping[str, str | int] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Fetch a URL, through relays when the service is proxied.

        Args:
            service: Service name deciding whether relays are used.
            url: Target URL.
            method: HTTP method.
            params: Query parameters merged into the target URL.
            headers: Request headers.
            timeout: Request timeout in seconds.

        Returns:
            The first successful relay response, or the direct response
            whatever its status.

        Raises:
            NetworkError: If the direct request times out or cannot connect.
        """
        try:
            target = str(httpx.URL(url).copy_merge_params(params)) if params else url
        except httpx.InvalidURL as e:
            raise NetworkError(
                f"Invalid URL for {service}: {e}", provider=str(service)
            ) from e
        timeout = timeout if timeout is not None else self._default_timeout

        if self.is_service_proxied(service):
            response = await self._fetch_via_relays(
                service, target, method=method, headers=headers, timeout=timeout
            )
            if response is not None:
                return response
            logger.warning("All relays failed for %s, requesting directly", service)

        return await self._send_direct(
            service, target, method=method, headers=headers, timeout=timeout
        )

    async def _fetch_via_relays(
        self,
        service: str,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str] | None,
        timeout: float,
    ) -> httpx.Response | None:
        if self._local_relay:
            response = await self._try_relay(
                self._local_relay, url, method=method, headers=headers, timeout=timeout
            )
            if response is not None:
                return response

        count = len(self._relays)
        for offset in range(count):
            index = (self._relay_index + offset) % count
            relay = self._relays[index]
            response = await self._try_relay(
                relay, url, method=method, headers=headers, timeout=timeout
            )
            if response is not None:
                if index != self._relay_index:
                    logger.info("Switched %s relay to %s", service, relay)
                self._relay_index = index
                return response
        return None

    async def _try_relay(
        self,
        relay: str,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str] | None,
        timeout: float,
    ) -> httpx.Response | None:
        try:
            response = await self._client.request(
                method,
                self.build_proxied_url(url, relay),
                headers=headers,
                timeout=timeout,
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.debug("Relay %s unreachable: %s", relay, e)
            return None
        if not response.is_success:
            logger.debug("Relay %s answered %d", relay, response.status_code)
            return None
        return response

    async def _send_direct(
        self,
        service: str,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str] | None,
        timeout: float,
    ) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            return await self._client.request(
                method, url, headers=headers, timeout=timeout
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request to {service} timed out", provider=str(service)
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(
                f"Request to {service} failed: {e}", provider=str(service)
            ) from e

    async def probe(self, url: str, *, timeout: float = 5.0) -> bool:
        """Check with a HEAD request whether a URL is reachable."""
        try:
            response = await self._client.head(
                url, timeout=timeout, follow_redirects=True
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.debug("Stream probe failed for %s: %s", url, e)
            return False
        return response.is_success

    async def aclose(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_client:
            await self._client.aclose()
