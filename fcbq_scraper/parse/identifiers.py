"""Match identifier extraction from detail-page URLs."""
import re
from typing import Optional
from urllib.parse import urlsplit

# Mongo-style ObjectId, as used by the stats backend
MATCH_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
_MATCH_ID_RE = re.compile(MATCH_ID_PATTERN)


def extract_match_id(url: str) -> Optional[str]:
    """Return the identifier in the last path segment of `url`, or None."""
    if not url:
        return None
    url = url.strip()
    path = urlsplit(url).path if "://" in url else url.split("?", 1)[0].split("#", 1)[0]
    parts = [part for part in path.split("/") if part]
    if not parts:
        return None
    candidate = parts[-1]
    return candidate if _MATCH_ID_RE.match(candidate) else None
