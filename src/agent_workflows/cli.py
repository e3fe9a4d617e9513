"""CLI entrypoint for agent-workflows.

Exit codes: 0 success, 1 warning (a workflow or action failed), 2 error
(abort, invalid workflow definition or configuration).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from agent_workflows import __version__
from agent_workflows.core.config import WorkflowConfig
from agent_workflows.core.errors import (
    ExitStatus,
    WorkflowRunnerError,
    exit_status_for,
    format_chain,
)
from agent_workflows.core.runner import WorkflowRunner
from agent_workflows.workflow.abort import AbortMonitor
from agent_workflows.workflow.definition import load_workflow
from agent_workflows.workflow.library import WorkflowLibrary, discover_workflow_files
from agent_workflows.workflow.report import format_run_report

logger = logging.getLogger(__name__)


def _parse_assignment(value: str) -> tuple[str, str]:
    key, sep, raw = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {value!r}")
    return key.strip(), raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflows",
        description="Run declarative agent workflows",
    )
    parser.add_argument("--version", action="version", version=f"agent-workflows {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a workflow by name")
    run.add_argument("name", help="Workflow name (see 'workflows list')")
    run.add_argument(
        "--set",
        dest="variables",
        action="append",
        default=[],
        type=_parse_assignment,
        metavar="KEY=VALUE",
        help="Initial context variable; may be repeated",
    )
    run.add_argument(
        "--work-dir",
        type=Path,
        default=None,
        help="Directory git and shell commands run in (defaults to the current directory)",
    )

    validate = subparsers.add_parser("validate", help="Validate workflow definition files")
    validate.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Workflow files, or directories whose *.md files are validated",
    )

    subparsers.add_parser("list", help="List workflows in the workflows directory")

    abort = subparsers.add_parser("abort", help="Signal abort to all running workflows")
    abort.add_argument("--reason", default="Abort requested by operator", help="Abort reason")

    subparsers.add_parser("abort-status", help="Show whether an abort is pending")
    subparsers.add_parser("clear-abort", help="Remove the abort marker")

    return parser


def _validate(paths: list[Path]) -> int:
    files: list[Path] = []
    for path in paths:
        files.extend(discover_workflow_files(path) if path.is_dir() else [path])
    if not files:
        print("No workflow files found", file=sys.stderr)
        return int(ExitStatus.ERROR)

    invalid = 0
    for path in files:
        try:
            definition = load_workflow(path)
        except WorkflowRunnerError as e:
            invalid += 1
            print(f"invalid: {path}")
            print(format_chain(e), file=sys.stderr)
            continue
        print(f"ok: {definition.name} ({path}) {' -> '.join(definition.path())}")
    return int(ExitStatus.ERROR) if invalid else int(ExitStatus.SUCCESS)


def _run(config: WorkflowConfig, args: argparse.Namespace) -> int:
    runner = WorkflowRunner(config, work_dir=args.work_dir)
    try:
        run = runner.run(args.name, dict(args.variables))
    finally:
        runner.close()
    print(format_run_report(run))
    return int(run.exit_status)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = WorkflowConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return int(ExitStatus.ERROR)

    config.setup_logging()
    monitor = AbortMonitor(config.executor.control_dir)

    try:
        if args.command == "run":
            return _run(config, args)

        if args.command == "validate":
            return _validate(args.paths)

        if args.command == "list":
            library = WorkflowLibrary()
            library.load_directory(config.executor.workflows_dir)
            definitions = library.definitions()
            if not definitions:
                print(f"No workflows found in {config.executor.workflows_dir}")
            for definition in definitions:
                title = f" - {definition.title}" if definition.title else ""
                print(f"{definition.name}{title}")
            return 0

        if args.command == "abort":
            if monitor.signal_abort(args.reason):
                print(f"Abort signalled: {args.reason}")
            else:
                print(f"Abort already pending: {monitor.reason()}")
            return 0

        if args.command == "abort-status":
            if monitor.is_aborted():
                print(f"Abort pending: {monitor.reason()}")
            else:
                print("No abort pending")
            return 0

        if args.command == "clear-abort":
            if monitor.clear():
                print(f"Removed {monitor.path}")
            else:
                print("No abort pending")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return int(ExitStatus.ERROR)

    except WorkflowRunnerError as e:
        print(format_chain(e), file=sys.stderr)
        return int(exit_status_for(e))

    except Exception:
        logger.exception("Command failed")
        return int(ExitStatus.WARNING)


if __name__ == "__main__":
    raise SystemExit(main())
