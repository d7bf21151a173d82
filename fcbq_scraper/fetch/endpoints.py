"""URL builders for the match statistics API."""
from enum import Enum
from typing import Optional

from fcbq_scraper.config import config


class MatchKind(str, Enum):
    STATS = "stats"
    MOVES = "moves"


_ENDPOINTS = {
    MatchKind.STATS: "getJsonWithMatchStats",
    MatchKind.MOVES: "getJsonWithMatchMoves",
}


def get_match_data_url(identifier: str, kind: MatchKind, api_base: Optional[str] = None) -> str:
    """Get the stats or moves JSON URL for a match."""
    base = (api_base or config.API_BASE).rstrip("/")
    return f"{base}/{_ENDPOINTS[MatchKind(kind)]}/{identifier}?currentSeason=true"
