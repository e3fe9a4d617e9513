"""Human-readable run summaries."""

from __future__ import annotations

from agent_workflows.core.errors import format_chain
from agent_workflows.workflow.run import RunStatus, WorkflowRun


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def format_run_report(run: WorkflowRun) -> str:
    """Summarise a finished run.

    Completed runs get a one-line summary. Failed and aborted runs include the
    terminal state, the full error chain and the execution log.
    """

    name = run.definition.name
    if run.status is RunStatus.COMPLETED:
        return (
            f"Workflow '{name}' completed successfully "
            f"({len(run.log)} actions, run {run.id})"
        )

    verb = "was aborted" if run.status is RunStatus.ABORTED else "failed"
    if run.status not in {RunStatus.ABORTED, RunStatus.FAILED}:
        verb = f"is {run.status.value}"
    where = f"in state '{run.current_state}'" if run.current_state else "before its first state"
    lines = [f"Workflow '{name}' {verb} {where} (run {run.id})"]

    if run.error is not None:
        lines.append("Error:")
        lines.append(_indent(format_chain(run.error), "  "))

    lines.append("Execution log:")
    if not len(run.log):
        lines.append("  (no actions dispatched)")
    for index, entry in enumerate(run.log, start=1):
        target = f" {entry.target}" if entry.target else ""
        outcome = "ok" if entry.ok else "FAILED"
        lines.append(
            f"  {index}. {entry.state} [{entry.kind.value}{target}] {outcome}: {entry.message}"
        )
    return "\n".join(lines)
