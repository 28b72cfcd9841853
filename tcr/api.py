from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import CycleOut, EventOut, FailureOut, TopologyStatus
from .poller import Poller, Topologies
from .reconciler import CycleReport


def _cycle_out(report: CycleReport | None) -> CycleOut | None:
    if report is None:
        return None
    d = report.diff
    return CycleOut(
        outcome=report.outcome,
        added=sorted(str(n) for n in d.added) if d else [],
        removed=sorted(str(n) for n in d.removed) if d else [],
        connect_failures=[FailureOut(node=str(n), reason=r) for n, r in report.connect_failures],
        disconnect_failures=[FailureOut(node=str(n), reason=r) for n, r in report.disconnect_failures],
        error=report.error,
    )


def topology_status(p: Poller) -> TopologyStatus:
    return TopologyStatus(
        name=p.topology,
        running=p.running,
        interval_ms=int(round(p.interval_s * 1000)),
        members=sorted(str(n) for n in p.known),
        ticks=p.ticks,
        cycles=p.cycles,
        last_cycle=_cycle_out(p.last_report),
        last_error=p.last_error,
    )


def create_app(topologies: Topologies, autostart: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.init_db()
        if autostart:
            topologies.start_all()
        try:
            yield
        finally:
            topologies.stop_all()

    app = FastAPI(title="Tag Cluster Reconciler", lifespan=lifespan)

    def _get(name: str) -> Poller:
        p = topologies.get(name)
        if p is None:
            raise HTTPException(status_code=404, detail=f"Unknown topology '{name}'.")
        return p

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/topologies", response_model=list[TopologyStatus])
    def list_topologies() -> list[TopologyStatus]:
        return [topology_status(p) for p in topologies.values()]

    @app.get("/topologies/{name}", response_model=TopologyStatus)
    def get_topology(name: str) -> TopologyStatus:
        return topology_status(_get(name))

    @app.post("/topologies/{name}/poll", status_code=202)
    def poll_topology(name: str) -> dict[str, str]:
        p = _get(name)
        if not p.running:
            raise HTTPException(status_code=409, detail=f"Topology '{name}' is not running.")
        p.poll_now()
        db.log_event("INFO", "poll requested via API", topology=name)
        return {"status": "scheduled"}

    @app.get("/events", response_model=list[EventOut])
    def events(limit: int = Query(50, ge=1, le=1000), topology: str | None = None) -> list[dict]:
        return db.latest_events(limit=limit, topology=topology)

    return app
