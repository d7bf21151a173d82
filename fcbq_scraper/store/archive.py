"""ZIP archive assembly and archive naming."""
import io
import logging
import zipfile
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Iterable, Optional

import orjson

from fcbq_scraper.errors import ArchiveError
from fcbq_scraper.parse.models import RetrievedDocument, RunMode

logger = logging.getLogger(__name__)

MOVES_FOLDER = "Moves/"


def serialize_document(data) -> bytes:
    """Indented, stable JSON for one document."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2)


def check_entry_name(name: str) -> str:
    """Reject names that are absolute or climb out of the archive root."""
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts:
        raise ArchiveError(f"Unsafe file name in archive: {name!r}")
    return name


def build_archive(documents: Iterable[RetrievedDocument]) -> bytes:
    """Pack documents into an in-memory ZIP, one JSON file per document."""
    buffer = io.BytesIO()
    seen: set[str] = set()
    count = 0
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for document in documents:
                check_entry_name(document.name)
                if document.name in seen:
                    raise ArchiveError(f"Duplicate file name in archive: {document.name}")
                seen.add(document.name)
                zf.writestr(document.name, serialize_document(document.data))
                count += 1
    except orjson.JSONEncodeError as e:
        raise ArchiveError(f"Could not serialize document: {e}") from e
    except (zipfile.BadZipFile, OSError, ValueError) as e:
        raise ArchiveError(f"ZIP generation failed: {e}") from e

    data = buffer.getvalue()
    logger.info(f"Built archive with {count} files ({len(data)} bytes)")
    return data


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp in the 2025-01-31T18:04:05.123Z form."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def default_archive_name(mode: RunMode, identifier: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Default ZIP name for a run."""
    if RunMode(mode) == RunMode.SINGLE:
        return f"match_{identifier}.zip"
    stamp = iso_timestamp(now).replace(":", "-").replace(".", "-")
    return f"bulk_matches_export_{stamp}.zip"


def resolve_archive_name(custom: Optional[str], default: str) -> str:
    """User-supplied base name with a .zip suffix, or the default."""
    name = (custom or "").strip()
    if not name:
        return default
    if not name.lower().endswith(".zip"):
        name += ".zip"
    return name
