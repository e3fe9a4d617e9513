"""Cooperative cancellation.

The abort signal is a marker file (``<control_dir>/.abort``) whose contents are
the reason. Any process or collaborator may create it; executors only read it.
Within one process a :class:`CancellationToken` carries the signal down
through nested runs.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from agent_workflows.core.errors import UNKNOWN_ABORT_REASON, IoError

logger = logging.getLogger(__name__)

ABORT_FILE_NAME = ".abort"


class AbortMonitor:
    """Reads and creates the abort marker under a control directory."""

    def __init__(self, control_dir: Path) -> None:
        self._control_dir = control_dir
        self._path = control_dir / ABORT_FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def is_aborted(self) -> bool:
        return self._path.exists()

    def reason(self) -> str:
        """Return the abort reason, or an empty string when no abort is pending."""

        if not self._path.exists():
            return ""
        try:
            text = self._path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            logger.warning("Abort marker is unreadable", extra={"path": str(self._path)})
            return UNKNOWN_ABORT_REASON
        return text or UNKNOWN_ABORT_REASON

    def signal_abort(self, reason: str) -> bool:
        """Create the marker with ``reason``.

        The reason is written to a temporary file first and then hard-linked into
        place, so readers never see a partial reason. An existing marker is left
        untouched. Returns True if this call created the marker.
        """

        self._control_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".abort-", dir=self._control_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(reason.strip() or UNKNOWN_ABORT_REASON)
            try:
                os.link(tmp_name, self._path)
            except FileExistsError:
                logger.info(
                    "Abort already signalled; keeping existing reason",
                    extra={"path": str(self._path)},
                )
                return False
            except OSError as e:
                raise IoError(f"Cannot create abort marker {self._path}: {e}", cause=e) from e
        finally:
            Path(tmp_name).unlink(missing_ok=True)

        logger.warning("Abort signalled", extra={"path": str(self._path), "reason": reason})
        return True

    def clear(self) -> bool:
        """Remove the marker. Operator action only; executors never call this."""

        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise IoError(f"Cannot remove abort marker {self._path}: {e}", cause=e) from e
        logger.info("Abort marker cleared", extra={"path": str(self._path)})
        return True


class CancellationToken:
    """In-process cancellation flag shared by a run and its nested runs."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason.strip() or UNKNOWN_ABORT_REASON
            self._event.set()
