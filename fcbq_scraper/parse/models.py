"""Data models for jobs, retrieved documents and run results."""
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from fcbq_scraper.parse.identifiers import MATCH_ID_PATTERN


class RunMode(str, Enum):
    SINGLE = "single"
    BULK = "bulk"


class JobStatus(str, Enum):
    IDLE = "IDLE"
    QUEUED = "QUEUED"
    DOWNLOADING_JSON = "DOWNLOADING_JSON"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.ERROR})


class MatchJob(BaseModel):
    """One match's progress through the fetch pipeline."""

    model_config = ConfigDict(validate_assignment=True)

    identifier: str = Field(..., frozen=True, pattern=MATCH_ID_PATTERN)
    url: str
    status: JobStatus = JobStatus.IDLE
    stats_downloaded: bool = False
    moves_downloaded: bool = False
    error: Optional[str] = None
    title: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        # Download flags only ever go from False to True
        if name in ("stats_downloaded", "moves_downloaded") and getattr(self, name) and not value:
            raise ValueError(f"{name} cannot be reset once set")
        super().__setattr__(name, value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_queued(self) -> None:
        self.status = JobStatus.QUEUED

    def mark_downloading(self) -> None:
        self.status = JobStatus.DOWNLOADING_JSON

    def mark_stats_downloaded(self) -> None:
        self.stats_downloaded = True

    def mark_completed(self) -> None:
        self.moves_downloaded = True
        self.status = JobStatus.COMPLETED

    def mark_failed(self, error: str) -> None:
        self.status = JobStatus.ERROR
        self.error = error or "Unknown error"

    def snapshot(self) -> "MatchJob":
        """Detached copy for observers; changes to it never reach the run."""
        return self.model_copy(deep=True)


class RetrievedDocument(BaseModel):
    """A named JSON document waiting to be archived."""

    name: str
    data: Any = None


class RunEvent(BaseModel):
    """Notification emitted whenever a job or the run status changes."""

    run_id: str
    kind: Literal["job", "status"]
    job: Optional[MatchJob] = None
    message: Optional[str] = None


class RunResult(BaseModel):
    """Outcome of one single or bulk run."""

    run_id: str
    mode: RunMode
    status_message: str = ""
    in_progress: bool = False
    jobs: list[MatchJob] = Field(default_factory=list)
    documents: list[RetrievedDocument] = Field(default_factory=list)
    archive_name: Optional[str] = None
    archive: Optional[bytes] = None

    @property
    def completed_count(self) -> int:
        return sum(1 for job in self.jobs if job.status == JobStatus.COMPLETED)
