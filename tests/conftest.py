"""Shared test doubles."""
import pytest

from fcbq_scraper.errors import RelayAttemptError, TransportExhaustedError
from fcbq_scraper.fetch.endpoints import MatchKind, get_match_data_url
from fcbq_scraper.fetch.pacing import Pacer

SITE = "https://www.basquetcatala.cat"
API = "https://api.test/v1/fcbq"


class RecordingPacer(Pacer):
    """Pacer that records waits instead of sleeping."""

    def __init__(self):
        super().__init__()
        self.waits: list[tuple[float, str]] = []

    async def wait(self, seconds: float, reason: str = "") -> None:
        self.waits.append((seconds, reason))


class StubFetcher:
    """fetch_text() backed by a dict of URL -> text (or exception)."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    async def fetch_text(self, target_url: str) -> str:
        self.calls.append(target_url)
        value = self.responses.get(target_url)
        if value is None:
            raise TransportExhaustedError(target_url, RelayAttemptError("Proxy stub returned status 502"))
        if isinstance(value, Exception):
            raise value
        return value


def stats_url(identifier: str) -> str:
    return get_match_data_url(identifier, MatchKind.STATS, api_base=API)


def moves_url(identifier: str) -> str:
    return get_match_data_url(identifier, MatchKind.MOVES, api_base=API)


@pytest.fixture
def pacer():
    return RecordingPacer()
