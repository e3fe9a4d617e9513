"""Background runner for workflow runs started through the server."""

from __future__ import annotations

import logging
import threading

from agent_workflows.core.errors import format_chain
from agent_workflows.server.run_store import RunRecord, RunStore
from agent_workflows.workflow.abort import CancellationToken
from agent_workflows.workflow.executor import WorkflowExecutor
from agent_workflows.workflow.report import format_run_report
from agent_workflows.workflow.run import WorkflowRun

logger = logging.getLogger(__name__)


class ActiveRuns:
    """Cancellation tokens of runs that have not finished yet."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: dict[str, CancellationToken] = {}

    def add(self, run_id: str, token: CancellationToken) -> None:
        with self._lock:
            self._tokens[run_id] = token

    def discard(self, run_id: str) -> None:
        with self._lock:
            self._tokens.pop(run_id, None)

    def cancel(self, run_id: str, reason: str) -> bool:
        with self._lock:
            token = self._tokens.get(run_id)
        if token is None:
            return False
        token.cancel(reason)
        return True

    def __contains__(self, run_id: object) -> bool:
        with self._lock:
            return run_id in self._tokens


def start_workflow_run(
    *,
    run: WorkflowRun,
    executor: WorkflowExecutor,
    run_store: RunStore,
    active: ActiveRuns,
) -> RunRecord:
    """Record ``run`` as queued and execute it on a daemon thread."""

    record = run_store.create(run_id=run.id, workflow=run.definition.name, variables=run.context)
    active.add(run.id, run.cancellation)

    thread = threading.Thread(
        target=_run_workflow,
        name=f"workflow-{run.definition.name}-{run.id}",
        daemon=True,
        kwargs={"run": run, "executor": executor, "run_store": run_store, "active": active},
    )
    thread.start()
    return record


def _run_workflow(
    *,
    run: WorkflowRun,
    executor: WorkflowExecutor,
    run_store: RunStore,
    active: ActiveRuns,
) -> None:
    try:
        run_store.update(run.id, status="running")
        executor.execute(run)
        run_store.update(
            run.id,
            status=run.status.value,
            current_state=run.current_state,
            exit_status=int(run.exit_status),
            error=format_chain(run.error) if run.error is not None else None,
            report=format_run_report(run),
            log=run.log.to_json(),
        )
    except Exception as e:
        logger.exception(
            "Workflow run job failed", extra={"run_id": run.id, "workflow": run.definition.name}
        )
        run_store.update(run.id, status="failed", error=str(e))
    finally:
        active.discard(run.id)
