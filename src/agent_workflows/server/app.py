"""FastAPI app factory.

Endpoints are thin wrappers over :class:`~agent_workflows.core.runner.WorkflowRunner`.
Runs execute on background threads; their records live in a :class:`RunStore`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import cast

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from agent_workflows import __version__
from agent_workflows.core.config import WorkflowConfig
from agent_workflows.core.errors import WorkflowError
from agent_workflows.core.runner import WorkflowRunner
from agent_workflows.server.config import ServerSettings
from agent_workflows.server.models import (
    AbortRequest,
    AbortState,
    ApiRun,
    CancelRequest,
    RunRequest,
    RunStatusName,
    WorkflowSummary,
)
from agent_workflows.server.run_runner import ActiveRuns, start_workflow_run
from agent_workflows.server.run_store import RunRecord, RunStore
from agent_workflows.workflow.abort import AbortMonitor

logger = logging.getLogger(__name__)


def _iso_to_dt(value: str) -> datetime:
    # The store always writes ISO format.
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(tz=UTC)


def _to_api_run(record: RunRecord) -> ApiRun:
    return ApiRun(
        run_id=record.run_id,
        workflow=record.workflow,
        status=cast(RunStatusName, record.status),
        created_at=_iso_to_dt(record.created_at),
        updated_at=_iso_to_dt(record.updated_at),
        current_state=record.current_state,
        exit_status=record.exit_status,
        error=record.error,
        report=record.report,
        log=record.log,
    )


def _abort_state(monitor: AbortMonitor) -> AbortState:
    return AbortState(aborted=monitor.is_aborted(), reason=monitor.reason(), path=str(monitor.path))


def create_app(
    settings: ServerSettings | None = None, runner: WorkflowRunner | None = None
) -> FastAPI:
    settings = settings or ServerSettings()
    if runner is None:
        config = WorkflowConfig()
        config.setup_logging()
        runner = WorkflowRunner(config)

    app = FastAPI(
        title="Agent Workflows",
        version=__version__,
        description="REST API for running declarative agent workflows.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.runner = runner

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    run_store = RunStore(settings.runs_state_file, max_records=settings.max_run_records)
    active = ActiveRuns()

    def _get_record(run_id: str) -> RunRecord:
        record = run_store.get(run_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return record

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/v1/workflows", response_model=list[WorkflowSummary])
    def list_workflows() -> list[WorkflowSummary]:
        return [
            WorkflowSummary(
                name=d.name, title=d.title, description=d.description, states=d.path()
            )
            for d in runner.library.definitions()
        ]

    @app.post("/api/v1/workflows/{name}/runs", response_model=ApiRun, status_code=202)
    def start_run(name: str, req: RunRequest) -> ApiRun:
        try:
            definition = runner.library.get(name)
        except WorkflowError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        run = runner.executor.start(definition, req.variables)
        record = start_workflow_run(
            run=run, executor=runner.executor, run_store=run_store, active=active
        )
        logger.info("Run queued", extra={"run_id": run.id, "workflow": name})
        return _to_api_run(record)

    @app.get("/api/v1/runs", response_model=list[ApiRun])
    def list_runs() -> list[ApiRun]:
        return [_to_api_run(record) for record in run_store.list()]

    @app.get("/api/v1/runs/{run_id}", response_model=ApiRun)
    def get_run(run_id: str) -> ApiRun:
        return _to_api_run(_get_record(run_id))

    @app.post("/api/v1/runs/{run_id}/cancel", response_model=ApiRun)
    def cancel_run(run_id: str, req: CancelRequest | None = None) -> ApiRun:
        _get_record(run_id)
        reason = req.reason if req is not None else CancelRequest().reason
        if not active.cancel(run_id, reason):
            raise HTTPException(status_code=409, detail="Run is not active")
        logger.info("Run cancellation requested", extra={"run_id": run_id, "reason": reason})
        return _to_api_run(_get_record(run_id))

    @app.get("/api/v1/abort", response_model=AbortState)
    def get_abort() -> AbortState:
        return _abort_state(runner.abort_monitor)

    @app.post("/api/v1/abort", response_model=AbortState)
    def signal_abort(req: AbortRequest) -> AbortState:
        runner.abort_monitor.signal_abort(req.reason)
        return _abort_state(runner.abort_monitor)

    @app.delete("/api/v1/abort", response_model=AbortState)
    def clear_abort() -> AbortState:
        runner.abort_monitor.clear()
        return _abort_state(runner.abort_monitor)

    return app
