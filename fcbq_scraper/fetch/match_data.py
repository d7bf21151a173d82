"""Decoded stats/moves payloads for one match."""
import logging
from typing import Any, Optional, Protocol

import orjson

from fcbq_scraper.errors import InvalidPayloadError
from fcbq_scraper.fetch.endpoints import MatchKind, get_match_data_url

logger = logging.getLogger(__name__)


class TextFetcher(Protocol):
    async def fetch_text(self, target_url: str) -> str: ...


class MatchDataClient:
    """Builds the API endpoint for a match and parses its JSON."""

    def __init__(self, fetcher: TextFetcher, api_base: Optional[str] = None):
        self.fetcher = fetcher
        self.api_base = api_base

    async def fetch_match_data(self, identifier: str, kind: MatchKind) -> Any:
        kind = MatchKind(kind)
        url = get_match_data_url(identifier, kind, api_base=self.api_base)
        text = await self.fetcher.fetch_text(url)
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON for {kind.value} of {identifier}: {e}")
            raise InvalidPayloadError("Invalid JSON response from server") from e
