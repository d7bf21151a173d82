"""Main job runner orchestrating the export pipeline."""
import logging
import uuid
from typing import Any, Callable, Optional

from fcbq_scraper.config import config
from fcbq_scraper.errors import ArchiveError, ScraperError
from fcbq_scraper.fetch.client import RelayFetchClient
from fcbq_scraper.fetch.endpoints import MatchKind
from fcbq_scraper.fetch.match_data import MatchDataClient, TextFetcher
from fcbq_scraper.fetch.pacing import Pacer
from fcbq_scraper.jobs.metrics import Metrics
from fcbq_scraper.parse.filenames import derive_names
from fcbq_scraper.parse.identifiers import extract_match_id
from fcbq_scraper.parse.links import fetch_match_links
from fcbq_scraper.parse.models import (
    JobStatus,
    MatchJob,
    RetrievedDocument,
    RunEvent,
    RunMode,
    RunResult,
)
from fcbq_scraper.store.archive import (
    MOVES_FOLDER,
    build_archive,
    default_archive_name,
    resolve_archive_name,
)
from fcbq_scraper.store.sinks import ArchiveSink

logger = logging.getLogger(__name__)

Listener = Callable[[RunEvent], None]

SINGLE_JOB_TITLE = "Single Match Extraction"


class ExportRunner:
    """Runs one single-match or bulk export from start to archive.

    Jobs are processed strictly one after another. Every job and status
    change is published to subscribers as a RunEvent the moment it happens.
    """

    def __init__(
        self,
        url: str,
        mode: RunMode = RunMode.SINGLE,
        custom_filename: Optional[str] = None,
        fetcher: Optional[TextFetcher] = None,
        pacer: Optional[Pacer] = None,
        sink: Optional[ArchiveSink] = None,
        site_origin: Optional[str] = None,
        api_base: Optional[str] = None,
        moves_delay: Optional[float] = None,
        job_delay: Optional[float] = None,
        run_id: Optional[str] = None,
    ):
        self.url = (url or "").strip()
        self.mode = RunMode(mode)
        self.custom_filename = custom_filename
        self.fetcher = fetcher
        self.pacer = pacer or Pacer()
        self.sink = sink
        self.site_origin = site_origin or config.SITE_ORIGIN
        self.api_base = api_base or config.API_BASE
        self.moves_delay = config.MOVES_DELAY if moves_delay is None else moves_delay
        self.job_delay = config.JOB_DELAY if job_delay is None else job_delay

        self.run_id = run_id or str(uuid.uuid4())
        logger.info(f"Run ID: {self.run_id}")

        self.jobs: list[MatchJob] = []
        self.documents: list[RetrievedDocument] = []
        self.status_message = ""
        self.in_progress = False
        self.archive: Optional[bytes] = None
        self.archive_name: Optional[str] = None
        self.metrics = Metrics(0)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Register a callback for job and status events."""
        self._listeners.append(listener)

    def job_snapshots(self) -> list[MatchJob]:
        return [job.snapshot() for job in self.jobs]

    def result(self) -> RunResult:
        return RunResult(
            run_id=self.run_id,
            mode=self.mode,
            status_message=self.status_message,
            in_progress=self.in_progress,
            jobs=self.job_snapshots(),
            documents=list(self.documents),
            archive_name=self.archive_name,
            archive=self.archive,
        )

    async def run(self) -> RunResult:
        """Execute the run and return its result."""
        self.in_progress = True
        self.jobs = []
        self.documents = []
        self.archive = None
        self.archive_name = None
        try:
            if self.fetcher is not None:
                await self._run_mode(self.fetcher)
            else:
                async with RelayFetchClient(pacer=self.pacer) as client:
                    await self._run_mode(client)
        finally:
            self.in_progress = False
            self._final_report()
        return self.result()

    async def _run_mode(self, fetcher: TextFetcher) -> None:
        data_client = MatchDataClient(fetcher, api_base=self.api_base)
        if self.mode == RunMode.SINGLE:
            await self._run_single(data_client)
        else:
            await self._run_bulk(fetcher, data_client)

    async def _run_single(self, data_client: MatchDataClient) -> None:
        identifier = extract_match_id(self.url)
        if not identifier:
            self._set_status("Invalid URL. Could not extract Match ID.")
            return

        self._set_status("Starting download...")
        job = MatchJob(
            identifier=identifier,
            url=self.url,
            status=JobStatus.QUEUED,
            title=SINGLE_JOB_TITLE,
        )
        self._start_jobs([job])

        payloads = await self._process_job(job, data_client)
        if payloads:
            stats, moves = payloads
            names = derive_names(stats, 1)
            self._collect(RetrievedDocument(name=names.stats_name, data=stats))
            self._collect(RetrievedDocument(name=names.moves_name, data=moves))

        if await self._package(default_archive_name(RunMode.SINGLE, identifier)):
            self._set_status(f"Finished. ZIP saved as {self.archive_name}.")

    async def _run_bulk(self, fetcher: TextFetcher, data_client: MatchDataClient) -> None:
        self._set_status("Fetching result list page...")
        try:
            links = await fetch_match_links(fetcher, self.url, self.site_origin)
        except ScraperError as e:
            logger.error(f"Error scraping results page {self.url}: {e}")
            self._set_status("Error fetching the list page. Check CORS or URL.")
            return

        if not links:
            self._set_status("No statistics links found on that page.")
            return

        self._set_status(f"Found {len(links)} matches. queuing...")
        jobs = self._build_jobs(links)
        self._start_jobs(jobs)

        for index, job in enumerate(jobs, start=1):
            job.mark_queued()
            self._emit_job(job)
            self._set_status(f"Processing {index} of {len(jobs)}...")

            payloads = await self._process_job(job, data_client)
            if payloads:
                stats, moves = payloads
                names = derive_names(stats, index)
                # Stats at the root, moves grouped in their own folder
                self._collect(RetrievedDocument(name=names.stats_name, data=stats))
                self._collect(RetrievedDocument(name=f"{MOVES_FOLDER}{names.moves_name}", data=moves))

            if index < len(jobs):
                await self.pacer.wait(self.job_delay, reason="between matches")

        if await self._package(default_archive_name(RunMode.BULK)):
            completed = sum(1 for job in self.jobs if job.status == JobStatus.COMPLETED)
            self._set_status(
                f"All jobs finished. {completed} / {len(self.jobs)} matches completed. "
                f"ZIP saved as {self.archive_name}."
            )

    def _build_jobs(self, links: list[str]) -> list[MatchJob]:
        """One IDLE job per link with a usable identifier, first occurrence wins."""
        jobs: dict[str, MatchJob] = {}
        for link in links:
            identifier = extract_match_id(link)
            if not identifier:
                logger.debug(f"Skipping link without match ID: {link}")
                continue
            if identifier in jobs:
                continue
            jobs[identifier] = MatchJob(identifier=identifier, url=link, title=f"Match {identifier}")
        return list(jobs.values())

    async def _process_job(self, job: MatchJob, data_client: MatchDataClient) -> Optional[tuple[Any, Any]]:
        """Fetch stats then moves for one job. Failures end up on the job, not raised."""
        job.mark_downloading()
        self._emit_job(job)

        try:
            stats = await data_client.fetch_match_data(job.identifier, MatchKind.STATS)
            job.mark_stats_downloaded()
            self._emit_job(job)

            await self.pacer.wait(self.moves_delay, reason=f"before moves of {job.identifier}")

            moves = await data_client.fetch_match_data(job.identifier, MatchKind.MOVES)
            job.mark_completed()
            self._emit_job(job)
        except ScraperError as e:
            logger.error(f"Job {job.identifier} failed: {e}")
            job.mark_failed(str(e))
            self._emit_job(job)
            self.metrics.record_job(ok=False)
            return None

        logger.info(f"Job {job.identifier} completed")
        self.metrics.record_job(ok=True)
        return stats, moves

    async def _package(self, default_name: str) -> bool:
        """Build and deliver the archive. Returns True when one was produced."""
        if not self.documents:
            self._set_status("Finished, but no files were successfully retrieved.")
            return False

        archive_name = resolve_archive_name(self.custom_filename, default_name)
        self._set_status(f"Compressing {len(self.documents)} files into one ZIP...")
        try:
            data = build_archive(self.documents)
            if self.sink is not None:
                await self.sink.deliver(data, archive_name)
        except ArchiveError as e:
            logger.error(f"ZIP generation failed: {e}")
            self._set_status(f"Error generating the ZIP archive: {e}")
            return False

        self.archive = data
        self.archive_name = archive_name
        return True

    def _start_jobs(self, jobs: list[MatchJob]) -> None:
        self.jobs = jobs
        self.metrics = Metrics(len(jobs))
        for job in jobs:
            self._emit_job(job)

    def _collect(self, document: RetrievedDocument) -> None:
        self.documents.append(document)
        self.metrics.record_document()

    def _set_status(self, message: str) -> None:
        self.status_message = message
        logger.info(message)
        self._emit(RunEvent(run_id=self.run_id, kind="status", message=message))

    def _emit_job(self, job: MatchJob) -> None:
        self._emit(RunEvent(run_id=self.run_id, kind="job", job=job.snapshot()))

    def _emit(self, event: RunEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Run listener failed on {event.kind} event")

    def _final_report(self) -> None:
        """Log final report."""
        summary = self.metrics.get_summary()

        logger.info("=" * 60)
        logger.info("FINAL REPORT")
        logger.info(f"Run ID: {self.run_id}")
        logger.info(f"Mode: {self.mode.value}")
        logger.info(f"Elapsed: {summary['elapsed_seconds']:.1f} seconds")
        logger.info(f"Processed: {summary['processed']}/{summary['total']}")
        logger.info(f"OK: {summary['ok']}")
        logger.info(f"Failed: {summary['failed']}")
        logger.info(f"Documents: {summary['documents']}")
        logger.info(f"Archive: {self.archive_name or '-'}")
        logger.info(f"Status: {self.status_message}")
        logger.info("=" * 60)
