"""HTTP client that reaches cross-origin content through relay providers."""
import logging
import time
from typing import Optional, Sequence

import httpx
import orjson

from fcbq_scraper.config import config
from fcbq_scraper.errors import RelayAttemptError, TransportExhaustedError
from fcbq_scraper.fetch.pacing import Pacer
from fcbq_scraper.fetch.providers import ProxyProvider, select_providers

logger = logging.getLogger(__name__)


def add_cache_buster(url: str, now_ms: Optional[int] = None) -> str:
    """Append a timestamp parameter so relays and caches cannot serve stale data."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}__t={stamp}"


def unwrap_envelope(provider: ProxyProvider, body: bytes) -> str:
    """Extract the relayed body from a wrapped provider's JSON envelope."""
    envelope = orjson.loads(body)
    status = envelope.get("status") if isinstance(envelope, dict) else None
    http_code = status.get("http_code") if isinstance(status, dict) else None
    if http_code != 200:
        raise RelayAttemptError(f"Wrapped proxy {provider.name} returned error code: {http_code}")
    contents = envelope.get("contents")
    return contents if isinstance(contents, str) else ""


class RelayFetchClient:
    """Fetches text through an ordered list of relays with failover.

    One pass over the providers per call: the first non-empty body wins,
    and each failed attempt is followed by a pacing wait before the next
    provider is tried.
    """

    def __init__(
        self,
        providers: Optional[Sequence[ProxyProvider]] = None,
        timeout: Optional[float] = None,
        provider_delay: Optional[float] = None,
        pacer: Optional[Pacer] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.providers = tuple(providers) if providers is not None else select_providers(config.RELAY_PROVIDERS)
        self.provider_delay = config.PROVIDER_DELAY if provider_delay is None else provider_delay
        self.pacer = pacer or Pacer()
        self.client = httpx.AsyncClient(
            http2=transport is None,
            timeout=timeout or config.TIMEOUT,
            follow_redirects=True,
            transport=transport,
        )
        self.attempts = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_text(self, target_url: str) -> str:
        """Return the body of `target_url` fetched through the first working relay."""
        url = add_cache_buster(target_url)
        last_error: Optional[Exception] = None

        for provider in self.providers:
            try:
                logger.info(f"Attempting fetch via {provider.name}...")
                return await self._fetch_via(provider, url)
            except (httpx.HTTPError, orjson.JSONDecodeError, RelayAttemptError) as e:
                logger.warning(f"Failed with {provider.name}: {e}")
                last_error = e
                await self.pacer.wait(self.provider_delay, reason=f"after {provider.name} failure")

        raise TransportExhaustedError(target_url, last_error)

    async def _fetch_via(self, provider: ProxyProvider, url: str) -> str:
        self.attempts += 1
        response = await self.client.get(provider.build_url(url))

        if not response.is_success:
            raise RelayAttemptError(f"Proxy {provider.name} returned status {response.status_code}")

        if provider.is_wrapped:
            text = unwrap_envelope(provider, response.content)
        else:
            text = response.text

        if not text or not text.strip():
            raise RelayAttemptError("Received empty response body")

        return text
