"""Pydantic models for the REST server."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class WorkflowSummary(BaseModel):
    name: str
    title: str
    description: str
    states: list[str]


class RunRequest(BaseModel):
    variables: dict[str, object] = Field(default_factory=dict)


RunStatusName = Literal["queued", "running", "completed", "aborted", "failed"]


class ApiRun(BaseModel):
    run_id: str
    workflow: str
    status: RunStatusName

    created_at: datetime
    updated_at: datetime

    current_state: str | None = None
    exit_status: int | None = None
    error: str | None = None
    report: str | None = None
    log: list[dict[str, object]] = Field(default_factory=list)


class CancelRequest(BaseModel):
    reason: str = "Cancelled via API"


class AbortRequest(BaseModel):
    reason: str = Field(default="Abort requested via API", min_length=1)


class AbortState(BaseModel):
    aborted: bool
    reason: str
    path: str
