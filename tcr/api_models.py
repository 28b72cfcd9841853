from __future__ import annotations

from pydantic import BaseModel, Field


class FailureOut(BaseModel):
    node: str
    reason: str


class CycleOut(BaseModel):
    outcome: str = Field(..., description="ok|skipped|fetch_failed")
    added: list[str] = []
    removed: list[str] = []
    connect_failures: list[FailureOut] = []
    disconnect_failures: list[FailureOut] = []
    error: str | None = None


class TopologyStatus(BaseModel):
    name: str
    running: bool
    interval_ms: int = Field(..., ge=0)
    members: list[str]
    ticks: int
    cycles: int
    last_cycle: CycleOut | None = None
    last_error: str | None = None


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    topology: str | None = None
    message: str
