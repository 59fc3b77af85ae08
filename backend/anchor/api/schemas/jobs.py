"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["reconcile", "status_tick"]


class JobRunResponse(BaseModel):
    job: str
    checked: int = 0
    cleared: int = 0
    blocks_started: int = 0
    request_id: str
