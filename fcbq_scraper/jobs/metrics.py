"""Progress tracking for an export run."""
import time
import logging
from typing import Dict

logger = logging.getLogger(__name__)


class Metrics:
    """Job outcomes, retrieved documents and the time left in a run."""

    def __init__(self, total: int):
        self.total = total
        self.start_time = time.monotonic()
        self.ok = 0
        self.failed = 0
        self.documents = 0

    @property
    def processed(self) -> int:
        return self.ok + self.failed

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def record_document(self) -> None:
        self.documents += 1

    def record_job(self, ok: bool) -> None:
        """Count a finished job and log progress."""
        if ok:
            self.ok += 1
        else:
            self.failed += 1
        self.report()

    def get_eta(self) -> float:
        """Seconds left, extrapolated from the average time per job."""
        if not self.processed:
            return 0.0
        remaining = max(self.total - self.processed, 0)
        return remaining * self.elapsed / self.processed

    def format_eta(self) -> str:
        eta_seconds = self.get_eta()
        if eta_seconds < 60:
            return f"{eta_seconds:.0f}s"
        return f"{eta_seconds / 60:.1f}m"

    def report(self) -> None:
        """Log current progress."""
        percent = self.processed * 100 // self.total if self.total > 0 else 0
        logger.info(
            f"Progress: {self.processed}/{self.total} ({percent}%) | "
            f"OK: {self.ok} | Failed: {self.failed} | "
            f"Files: {self.documents} | ETA: {self.format_eta()}"
        )

    def get_summary(self) -> Dict:
        """Figures for the final report."""
        return {
            "total": self.total,
            "processed": self.processed,
            "ok": self.ok,
            "failed": self.failed,
            "documents": self.documents,
            "elapsed_seconds": self.elapsed,
        }
