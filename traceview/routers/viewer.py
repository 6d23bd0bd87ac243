"""Viewer routes: the rendered page plus a JSON view of the same lines."""
from __future__ import annotations

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse, PlainTextResponse

from traceview.log_state import log_store
from traceview.models import DecodedLine, HealthStatus, LogReport
from traceview.parsers.lines import ClassifiedLine, LineKind
from traceview.parsers.literal import to_jsonable
from traceview.rendering import render_report
from traceview.watcher import log_watcher


viewer_router = APIRouter(tags=["viewer"])


def _current_lines() -> list[ClassifiedLine]:
    if not log_store.state.text:
        return []
    return log_store.classified_lines()


def _decoded(line: ClassifiedLine, index: int) -> DecodedLine:
    value = to_jsonable(line.value) if line.kind is LineKind.STRUCTURED else None
    return DecodedLine(index=index, kind=line.kind.value, text=line.text, value=value, repeat=line.repeat)


@viewer_router.get("/", response_class=HTMLResponse)
def get_report() -> HTMLResponse:
    return HTMLResponse(render_report(_current_lines(), log_store.state.status))


@viewer_router.get("/api/lines", response_model=LogReport)
def get_lines(
    offset: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=10000),
    kind: str = Query("", description="Filter by kind: empty/raw/structured"),
) -> LogReport:
    state = log_store.state
    decoded = [_decoded(line, index) for index, line in enumerate(_current_lines(), start=1)]
    if kind:
        decoded = [line for line in decoded if line.kind == kind.strip().lower()]
    return LogReport(
        status=state.status,
        path=state.path,
        litellm=log_store.litellm,
        profile=log_store.profile.name,
        total=len(decoded),
        lines=decoded[offset : offset + limit],
    )


@viewer_router.get("/health", response_class=PlainTextResponse)
def health_text() -> str:
    return "ok"


@viewer_router.get("/api/health", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(
        status="ok",
        log="loaded" if log_store.state.text else "unloaded",
        watcher="running" if log_watcher.is_running else "stopped",
    )
