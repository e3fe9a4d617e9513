#!/usr/bin/env python3
"""Programmatic workflow run example.

This demonstrates using the runner directly instead of the ``workflows`` CLI:

* load settings from `.env`
* run a named workflow with initial context variables
* print the run report and exit with the run's exit status

The abort marker is shared with the CLI, so ``workflows abort`` stops this
script at its next state boundary.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from agent_workflows.core.config import WorkflowConfig
from agent_workflows.core.runner import WorkflowRunner
from agent_workflows.workflow.report import format_run_report


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow (programmatic example).")
    parser.add_argument("name", help='Workflow name, e.g. "tdd"')
    parser.add_argument("--issue", required=True, help="Value for the issue_name variable")
    parser.add_argument("--work-dir", type=Path, default=None, help="Repository checkout")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = WorkflowConfig()
    config.setup_logging()

    runner = WorkflowRunner(config, work_dir=args.work_dir)
    try:
        run = runner.run(args.name, {"issue_name": args.issue})
    finally:
        runner.close()

    print(format_run_report(run))
    print(f"Final context keys: {', '.join(sorted(run.context))}")
    return int(run.exit_status)


if __name__ == "__main__":
    raise SystemExit(main())
