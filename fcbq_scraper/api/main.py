"""FastAPI main application."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Response
from fastapi.security import APIKeyHeader
from pydantic import BaseModel

from fcbq_scraper.config import config, Config
from fcbq_scraper.jobs.runner import ExportRunner
from fcbq_scraper.parse.identifiers import extract_match_id
from fcbq_scraper.parse.models import JobStatus, MatchJob, RunEvent, RunMode
from fcbq_scraper.store.sinks import MemorySink

logger = logging.getLogger(__name__)

app = FastAPI(title="FCBQ Match Exporter API", version="0.1.0")

# API Key security (if configured)
API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)


def verify_api_key(api_key: str = Depends(API_KEY_HEADER)) -> bool:
    """Verify API key if configured."""
    expected_key = config.API_KEY
    if expected_key:
        if not api_key or api_key != expected_key:
            raise HTTPException(status_code=403, detail="Invalid API key")
    return True


def get_runner_factory() -> Callable[..., ExportRunner]:
    """Runner constructor; overridden in tests."""
    return ExportRunner


class RunView:
    """Render state for one run, rebuilt from the runner's events."""

    def __init__(self, runner: ExportRunner):
        self.runner = runner
        self.jobs: dict[str, MatchJob] = {}
        self.status_message = "Queued."
        runner.subscribe(self.on_event)

    def on_event(self, event: RunEvent) -> None:
        if event.kind == "job" and event.job is not None:
            self.jobs[event.job.identifier] = event.job
        elif event.kind == "status":
            self.status_message = event.message or ""


# In-memory only: runs are gone when the process exits
runs: dict[str, RunView] = {}


class RunRequest(BaseModel):
    """Request model for starting a run."""
    url: str
    mode: RunMode = RunMode.SINGLE
    filename: Optional[str] = None


class RunStartedResponse(BaseModel):
    run_id: str
    status_url: str


class RunStatusResponse(BaseModel):
    """Response model for polling a run."""
    run_id: str
    mode: RunMode
    status_message: str
    in_progress: bool
    completed: int
    total: int
    archive_name: Optional[str] = None
    jobs: list[MatchJob]


@app.get("/health")
async def health():
    """Health check endpoint (no auth required)."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_runs": sum(1 for view in runs.values() if view.runner.in_progress),
    }


@app.post("/runs", response_model=RunStartedResponse, status_code=202)
async def start_run(
    request: RunRequest,
    background_tasks: BackgroundTasks,
    runner_factory: Callable[..., ExportRunner] = Depends(get_runner_factory),
    _: bool = Depends(verify_api_key),
):
    """Start a single or bulk export in the background."""
    if request.mode == RunMode.SINGLE and not extract_match_id(request.url):
        raise HTTPException(status_code=400, detail="Invalid URL. Could not extract Match ID.")

    runner = runner_factory(
        url=request.url,
        mode=request.mode,
        custom_filename=request.filename,
        sink=MemorySink(),
    )
    runs[runner.run_id] = RunView(runner)
    _evict_finished_runs(keep=runner.run_id)
    background_tasks.add_task(_execute_run, runner)

    return RunStartedResponse(run_id=runner.run_id, status_url=f"/runs/{runner.run_id}")


@app.get("/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(run_id: str, _: bool = Depends(verify_api_key)):
    """Live status of a run."""
    view = _get_view(run_id)
    jobs = list(view.jobs.values())
    return RunStatusResponse(
        run_id=run_id,
        mode=view.runner.mode,
        status_message=view.status_message,
        in_progress=view.runner.in_progress,
        completed=sum(1 for job in jobs if job.status == JobStatus.COMPLETED),
        total=len(jobs),
        archive_name=view.runner.archive_name,
        jobs=jobs,
    )


@app.get("/runs/{run_id}/archive")
async def download_archive(run_id: str, _: bool = Depends(verify_api_key)):
    """Download the finished ZIP of a run."""
    runner = _get_view(run_id).runner
    if runner.archive is None:
        raise HTTPException(status_code=404, detail="No archive available for this run")
    return Response(
        content=runner.archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{runner.archive_name}"'},
    )


def _evict_finished_runs(keep: str) -> None:
    """Drop the oldest finished runs once more than MAX_KEPT_RUNS are held."""
    excess = len(runs) - config.MAX_KEPT_RUNS
    if excess <= 0:
        return
    finished = [run_id for run_id, view in runs.items() if run_id != keep and not view.runner.in_progress]
    for run_id in finished[:excess]:
        del runs[run_id]
        logger.debug(f"Evicted run {run_id}")


def _get_view(run_id: str) -> RunView:
    view = runs.get(run_id)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Unknown run {run_id}")
    return view


async def _execute_run(runner: ExportRunner) -> None:
    """Run an export (background task)."""
    try:
        await runner.run()
        logger.info(f"Run {runner.run_id} finished: {runner.status_message}")
    except Exception as e:
        logger.error(f"Run {runner.run_id} crashed: {e}", exc_info=True)


if __name__ == "__main__":
    import uvicorn
    from fcbq_scraper.logging_conf import setup_logging

    setup_logging()
    Config.validate()
    uvicorn.run(app, host="0.0.0.0", port=8000)
