"""Tests for run progress metrics."""
from fcbq_scraper.jobs.metrics import Metrics


def test_job_outcomes_feed_the_summary():
    """Test that finished jobs and documents reach the final report figures."""
    metrics = Metrics(total=3)
    metrics.record_document()
    metrics.record_document()
    metrics.record_job(ok=True)
    metrics.record_job(ok=False)

    summary = metrics.get_summary()
    assert summary["total"] == 3
    assert summary["processed"] == 2
    assert summary["ok"] == 1
    assert summary["failed"] == 1
    assert summary["documents"] == 2
    assert summary["elapsed_seconds"] >= 0


def test_eta_without_progress():
    """Test that nothing processed means no ETA."""
    metrics = Metrics(total=5)
    assert metrics.get_eta() == 0.0
    assert metrics.format_eta() == "0s"


def test_eta_extrapolates_average_job_time():
    """Test the remaining time from the average per finished job."""
    metrics = Metrics(total=4)
    metrics.start_time -= 10
    metrics.ok = 2
    assert 9.5 <= metrics.get_eta() <= 11


def test_report_logs_files(caplog):
    """Test that progress lines include the document count and survive an empty run."""
    Metrics(total=0).report()
    metrics = Metrics(total=2)
    metrics.record_document()
    with caplog.at_level("INFO", logger="fcbq_scraper.jobs.metrics"):
        metrics.record_job(ok=True)
    assert "Progress: 1/2 (50%)" in caplog.text
    assert "Files: 1" in caplog.text
