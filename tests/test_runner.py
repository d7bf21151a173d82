"""Tests for the export runner (job queue orchestration)."""
import io
import json
import zipfile

import pytest
from fcbq_scraper.errors import ArchiveError
from fcbq_scraper.jobs.runner import ExportRunner
from fcbq_scraper.parse.models import JobStatus, RunMode
from fcbq_scraper.store.sinks import MemorySink

from conftest import API, SITE, StubFetcher, moves_url, stats_url

ID1 = "696b6acdd2a7ac0001714803"
ID2 = "696b6acdd2a7ac0001714804"
ID3 = "696b6acdd2a7ac0001714805"

LIST_URL = f"{SITE}/competicions/resultats/21639/0"

LISTING_HTML = f"""
<html><body>
  <a href="/estadistiques/2025/{ID1}">1</a>
  <a href="/estadistiques/2025/{ID2}">2</a>
  <a href="/estadistiques/2025/{ID1}">1 again</a>
  <a href="/estadistiques/2025/resum">summary, no id</a>
  <a href="{SITE}/estadistiques/2025/{ID3}">3</a>
  <a href="/competicions/resultats/21639/1">next</a>
</body></html>
"""


def _stats(jornada, home, away):
    return json.dumps({"jornada": jornada, "teams": [{"data": {"score": home}}, {"data": {"score": away}}]})


def _runner(url, mode, fetcher, pacer, **kwargs):
    return ExportRunner(
        url=url,
        mode=mode,
        fetcher=fetcher,
        pacer=pacer,
        site_origin=SITE,
        api_base=API,
        moves_delay=0.5,
        job_delay=1.5,
        **kwargs,
    )


def _names(archive: bytes) -> list[str]:
    return zipfile.ZipFile(io.BytesIO(archive)).namelist()


@pytest.mark.asyncio
async def test_single_run_success(pacer):
    """Test a single-match run end to end."""
    fetcher = StubFetcher({
        stats_url(ID1): _stats(5, "88", "76"),
        moves_url(ID1): '[{"action": "2PT"}]',
    })
    sink = MemorySink()
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer, sink=sink)

    result = await runner.run()

    assert fetcher.calls == [stats_url(ID1), moves_url(ID1)]
    assert [d.name for d in result.documents] == ["J5_P1_88_76.json", "J5_P1_Moves.json"]
    assert result.archive_name == f"match_{ID1}.zip"
    assert _names(result.archive) == ["J5_P1_88_76.json", "J5_P1_Moves.json"]
    assert sink.data == result.archive
    assert sink.filename == result.archive_name
    assert result.status_message == f"Finished. ZIP saved as match_{ID1}.zip."
    assert result.in_progress is False

    job = result.jobs[0]
    assert job.status == JobStatus.COMPLETED
    assert job.stats_downloaded and job.moves_downloaded
    assert job.title == "Single Match Extraction"
    assert [seconds for seconds, _ in pacer.waits] == [0.5]


@pytest.mark.asyncio
async def test_single_run_custom_filename(pacer):
    """Test that a custom base name gets the .zip suffix."""
    fetcher = StubFetcher({stats_url(ID1): "{}", moves_url(ID1): "[]"})
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer, custom_filename="report")

    result = await runner.run()

    assert result.archive_name == "report.zip"
    assert _names(result.archive) == ["J0_P1_0_0.json", "J0_P1_Moves.json"]


@pytest.mark.asyncio
async def test_single_run_invalid_url(pacer):
    """Test that a URL without identifier never starts a job."""
    fetcher = StubFetcher()
    runner = _runner(f"{SITE}/competicions/resultats/21639/0", RunMode.SINGLE, fetcher, pacer)

    result = await runner.run()

    assert result.jobs == []
    assert fetcher.calls == []
    assert result.status_message == "Invalid URL. Could not extract Match ID."
    assert result.archive is None


@pytest.mark.asyncio
async def test_single_run_failure_produces_no_archive(pacer):
    """Test that a failed single job ends without an archive."""
    fetcher = StubFetcher({stats_url(ID1): "{}"})
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer)

    result = await runner.run()

    job = result.jobs[0]
    assert job.status == JobStatus.ERROR
    assert job.stats_downloaded is True
    assert job.moves_downloaded is False
    assert "All proxies failed" in job.error
    assert result.archive is None
    assert result.status_message == "Finished, but no files were successfully retrieved."


@pytest.mark.asyncio
async def test_bulk_run_continues_after_failed_job(pacer):
    """Test three jobs where the second fails: four documents, run not halted."""
    fetcher = StubFetcher({
        LIST_URL: LISTING_HTML,
        stats_url(ID1): _stats(5, 88, 76),
        moves_url(ID1): '["m1"]',
        moves_url(ID2): '["m2"]',
        stats_url(ID3): _stats(5, 60, 62),
        moves_url(ID3): '["m3"]',
    })
    runner = _runner(LIST_URL, RunMode.BULK, fetcher, pacer)

    result = await runner.run()

    assert [job.identifier for job in result.jobs] == [ID1, ID2, ID3]
    assert [job.status for job in result.jobs] == [JobStatus.COMPLETED, JobStatus.ERROR, JobStatus.COMPLETED]
    assert _names(result.archive) == [
        "J5_P1_88_76.json",
        "Moves/J5_P1_Moves.json",
        "J5_P3_60_62.json",
        "Moves/J5_P3_Moves.json",
    ]
    assert "2 / 3" in result.status_message
    assert result.archive_name.startswith("bulk_matches_export_")
    assert result.archive_name.endswith(".zip")

    # Job 2 never reached its moves fetch
    assert moves_url(ID2) not in fetcher.calls
    assert fetcher.calls == [
        LIST_URL,
        stats_url(ID1), moves_url(ID1),
        stats_url(ID2),
        stats_url(ID3), moves_url(ID3),
    ]
    assert [seconds for seconds, _ in pacer.waits] == [0.5, 1.5, 1.5, 0.5]


@pytest.mark.asyncio
async def test_bulk_run_titles_and_initial_state(pacer):
    """Test that bulk jobs start IDLE with a Match title."""
    fetcher = StubFetcher({LIST_URL: LISTING_HTML})
    runner = _runner(LIST_URL, RunMode.BULK, fetcher, pacer)
    first_states = {}

    def listener(event):
        if event.kind == "job":
            first_states.setdefault(event.job.identifier, event.job.status)

    runner.subscribe(listener)
    result = await runner.run()

    assert first_states == {ID1: JobStatus.IDLE, ID2: JobStatus.IDLE, ID3: JobStatus.IDLE}
    assert [job.title for job in result.jobs] == [f"Match {ID1}", f"Match {ID2}", f"Match {ID3}"]
    assert result.status_message == "Finished, but no files were successfully retrieved."
    assert result.archive is None


@pytest.mark.asyncio
async def test_bulk_run_listing_failure(pacer):
    """Test that an unreachable listing page aborts before any job."""
    runner = _runner(LIST_URL, RunMode.BULK, StubFetcher(), pacer)

    result = await runner.run()

    assert result.jobs == []
    assert result.status_message == "Error fetching the list page. Check CORS or URL."
    assert result.in_progress is False


@pytest.mark.asyncio
async def test_bulk_run_no_links(pacer):
    """Test that a listing without statistics links halts the run."""
    fetcher = StubFetcher({LIST_URL: '<a href="/competicions/resultats/21639/1">next</a>'})
    runner = _runner(LIST_URL, RunMode.BULK, fetcher, pacer)

    result = await runner.run()

    assert result.jobs == []
    assert result.status_message == "No statistics links found on that page."
    assert fetcher.calls == [LIST_URL]


@pytest.mark.asyncio
async def test_invalid_payload_marks_job_error(pacer):
    """Test that non-JSON moves end the job in ERROR."""
    fetcher = StubFetcher({stats_url(ID1): "{}", moves_url(ID1): "<html>oops</html>"})
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer)

    result = await runner.run()

    assert result.jobs[0].status == JobStatus.ERROR
    assert result.jobs[0].error == "Invalid JSON response from server"


@pytest.mark.asyncio
async def test_events_follow_job_order(pacer):
    """Test that job transitions are emitted in order, one job at a time."""
    fetcher = StubFetcher({
        LIST_URL: f'<a href="/estadistiques/2025/{ID1}">1</a><a href="/estadistiques/2025/{ID2}">2</a>',
        stats_url(ID1): "{}", moves_url(ID1): "[]",
        stats_url(ID2): "{}", moves_url(ID2): "[]",
    })
    runner = _runner(LIST_URL, RunMode.BULK, fetcher, pacer)
    events = []
    runner.subscribe(lambda event: events.append(event))

    await runner.run()

    job_events = [(e.job.identifier, e.job.status, e.job.stats_downloaded) for e in events if e.kind == "job"]
    assert job_events == [
        (ID1, JobStatus.IDLE, False),
        (ID2, JobStatus.IDLE, False),
        (ID1, JobStatus.QUEUED, False),
        (ID1, JobStatus.DOWNLOADING_JSON, False),
        (ID1, JobStatus.DOWNLOADING_JSON, True),
        (ID1, JobStatus.COMPLETED, True),
        (ID2, JobStatus.QUEUED, False),
        (ID2, JobStatus.DOWNLOADING_JSON, False),
        (ID2, JobStatus.DOWNLOADING_JSON, True),
        (ID2, JobStatus.COMPLETED, True),
    ]
    statuses = [e.message for e in events if e.kind == "status"]
    assert statuses[0] == "Fetching result list page..."
    assert "Processing 1 of 2..." in statuses
    assert "Compressing 4 files into one ZIP..." in statuses


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_run(pacer):
    """Test that an observer error is logged, not propagated."""
    fetcher = StubFetcher({stats_url(ID1): "{}", moves_url(ID1): "[]"})
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer)

    def broken(event):
        raise RuntimeError("render failed")

    runner.subscribe(broken)
    result = await runner.run()

    assert result.jobs[0].status == JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_archive_delivery_failure(pacer):
    """Test that a failing sink leaves a final error status and no archive."""

    class BrokenSink:
        async def deliver(self, data, filename):
            raise ArchiveError("disk full")

    fetcher = StubFetcher({stats_url(ID1): "{}", moves_url(ID1): "[]"})
    runner = _runner(f"{SITE}/estadistiques/2025/{ID1}", RunMode.SINGLE, fetcher, pacer, sink=BrokenSink())

    result = await runner.run()

    assert result.archive is None
    assert result.status_message == "Error generating the ZIP archive: disk full"
    assert result.in_progress is False
    assert result.jobs[0].status == JobStatus.COMPLETED
