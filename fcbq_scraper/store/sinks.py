"""Delivery of finished archives (and loose documents) to their destination."""
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

import aiofiles

from fcbq_scraper.errors import ArchiveError
from fcbq_scraper.parse.models import RetrievedDocument
from fcbq_scraper.store.archive import check_entry_name, serialize_document

logger = logging.getLogger(__name__)


class ArchiveSink(Protocol):
    """Receives the archive bytes and the resolved file name."""

    async def deliver(self, data: bytes, filename: str) -> Optional[Path]: ...


class DirectorySink:
    """Saves archives into a local directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    async def deliver(self, data: bytes, filename: str) -> Path:
        target = self.directory / Path(filename).name
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise ArchiveError(f"Could not save {target}: {e}") from e
        logger.info(f"Saved archive to {target}")
        return target


class MemorySink:
    """Keeps the last archive in memory (used by the API)."""

    def __init__(self):
        self.data: Optional[bytes] = None
        self.filename: Optional[str] = None

    async def deliver(self, data: bytes, filename: str) -> None:
        self.data = data
        self.filename = filename


async def write_documents(documents: Iterable[RetrievedDocument], directory: Path) -> list[Path]:
    """Write each document as its own JSON file, keeping sub-folders like Moves/."""
    directory = Path(directory)
    root = directory.resolve()
    written = []
    for document in documents:
        target = directory / check_entry_name(document.name)
        if not target.resolve().is_relative_to(root):
            raise ArchiveError(f"Refusing to write {document.name!r} outside {directory}")
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(serialize_document(document.data))
        logger.debug(f"Wrote {target}")
        written.append(target)
    logger.info(f"Wrote {len(written)} JSON files to {directory}")
    return written
