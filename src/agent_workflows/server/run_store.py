"""Persisted run records for workflows started through the server.

Records survive restarts (best-effort). Runs that were queued or running when
the process stopped stay in that status; nothing resumes them.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from agent_workflows.core.errors import StorageError


class RunRecord(BaseModel):
    run_id: str
    workflow: str
    status: str
    created_at: str
    updated_at: str

    variables: dict[str, object] = Field(default_factory=dict)
    current_state: str | None = None
    exit_status: int | None = None
    error: str | None = None
    report: str | None = None
    log: list[dict[str, object]] = Field(default_factory=list)


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


FINISHED_STATUSES = frozenset({"completed", "aborted", "failed"})


@dataclass
class RunStore:
    """JSON file of run records, oldest first.

    At most ``max_records`` records are kept; when a new run would exceed the
    cap, the oldest finished runs are dropped. Queued and running records are
    never dropped.
    """

    path: Path
    max_records: int = 500

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[RunRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to read run records from {self.path}", cause=e) from e
        if not isinstance(raw, list):
            return []
        try:
            return [RunRecord.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StorageError(f"Malformed run records in {self.path}", cause=e) from e

    def _save_unlocked(self, runs: list[RunRecord]) -> None:
        payload = [r.model_dump(mode="json") for r in runs]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False, default=str) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Failed to write run records to {self.path}", cause=e) from e

    def list(self) -> list[RunRecord]:
        with self._lock:
            return self._load_unlocked()

    def get(self, run_id: str) -> RunRecord | None:
        with self._lock:
            for run in self._load_unlocked():
                if run.run_id == run_id:
                    return run
            return None

    def create(
        self, *, run_id: str, workflow: str, variables: dict[str, object] | None = None
    ) -> RunRecord:
        with self._lock:
            runs = self._load_unlocked()
            now = _utc_iso_now()
            record = RunRecord(
                run_id=run_id,
                workflow=workflow,
                status="queued",
                created_at=now,
                updated_at=now,
                variables=dict(variables or {}),
            )
            runs.append(record)
            self._save_unlocked(self._prune(runs))
            return record

    def _prune(self, runs: list[RunRecord]) -> list[RunRecord]:
        excess = len(runs) - self.max_records
        if excess <= 0:
            return runs
        kept: list[RunRecord] = []
        for run in runs:
            if excess > 0 and run.status in FINISHED_STATUSES:
                excess -= 1
                continue
            kept.append(run)
        return kept

    def update(self, run_id: str, **updates: object) -> RunRecord:
        with self._lock:
            runs = self._load_unlocked()
            for idx, run in enumerate(runs):
                if run.run_id != run_id:
                    continue
                merged = run.model_copy(update={"updated_at": _utc_iso_now(), **updates})
                runs[idx] = merged
                self._save_unlocked(runs)
                return merged
            raise KeyError(run_id)
