from __future__ import annotations

import threading
from pathlib import Path

from agent_workflows.core.errors import UNKNOWN_ABORT_REASON
from agent_workflows.workflow.abort import AbortMonitor, CancellationToken


def test_no_marker_by_default(abort_monitor: AbortMonitor) -> None:
    assert abort_monitor.is_aborted() is False
    assert abort_monitor.reason() == ""


def test_signal_abort_creates_marker_with_reason(
    abort_monitor: AbortMonitor, control_dir: Path
) -> None:
    assert abort_monitor.signal_abort("merge conflict on issue/login") is True

    assert abort_monitor.is_aborted() is True
    assert abort_monitor.reason() == "merge conflict on issue/login"
    assert (control_dir / ".abort").read_text(encoding="utf-8") == "merge conflict on issue/login"
    # No temporary files are left behind.
    assert [p.name for p in control_dir.iterdir()] == [".abort"]


def test_second_signal_keeps_first_reason(abort_monitor: AbortMonitor) -> None:
    abort_monitor.signal_abort("first")
    assert abort_monitor.signal_abort("second") is False
    assert abort_monitor.reason() == "first"


def test_empty_marker_reads_as_unknown_reason(
    abort_monitor: AbortMonitor, control_dir: Path
) -> None:
    control_dir.mkdir(parents=True)
    (control_dir / ".abort").write_text("", encoding="utf-8")

    assert abort_monitor.is_aborted() is True
    assert abort_monitor.reason() == UNKNOWN_ABORT_REASON


def test_unreadable_marker_reads_as_unknown_reason(
    abort_monitor: AbortMonitor, control_dir: Path
) -> None:
    control_dir.mkdir(parents=True)
    (control_dir / ".abort").write_bytes(b"\xff\xfe\x00bad")

    assert abort_monitor.reason() == UNKNOWN_ABORT_REASON


def test_clear_is_explicit(abort_monitor: AbortMonitor) -> None:
    assert abort_monitor.clear() is False
    abort_monitor.signal_abort("stop")
    assert abort_monitor.clear() is True
    assert abort_monitor.is_aborted() is False


def test_monitors_share_marker_through_filesystem(control_dir: Path) -> None:
    AbortMonitor(control_dir).signal_abort("from another process")
    assert AbortMonitor(control_dir).reason() == "from another process"


def test_concurrent_signals_create_exactly_one_marker(control_dir: Path) -> None:
    monitor = AbortMonitor(control_dir)
    results: list[bool] = []
    lock = threading.Lock()

    def signal(i: int) -> None:
        created = monitor.signal_abort(f"reason {i}")
        with lock:
            results.append(created)

    threads = [threading.Thread(target=signal, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert monitor.reason().startswith("reason ")


def test_cancellation_token_first_reason_wins() -> None:
    token = CancellationToken()
    assert token.cancelled is False

    token.cancel("operator")
    token.cancel("later")

    assert token.cancelled is True
    assert token.reason == "operator"


def test_cancellation_token_blank_reason() -> None:
    token = CancellationToken()
    token.cancel("")
    assert token.reason == UNKNOWN_ABORT_REASON
