from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import current_dashboard
from app.schemas import DashboardResponse, DashboardStatus
from services.refresh import RefreshOrchestrator, build_default_orchestrator


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_orchestrator() -> RefreshOrchestrator:
    return build_default_orchestrator()


def _status_line(dashboard: DashboardResponse) -> tuple[str, str]:
    if dashboard.status is DashboardStatus.error:
        return "Failed to load data", "error"
    if dashboard.status is DashboardStatus.empty:
        return "No rooms with data", "warning"
    if dashboard.status is DashboardStatus.pending:
        return "Waiting for first refresh", "info"
    return f"Connected • {dashboard.summary.room_count} room(s)", "success"


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
) -> HTMLResponse:
    # The first page view triggers the initial fetch.
    if orchestrator.session.last_attempted_at is None:
        await orchestrator.refresh()

    dashboard = current_dashboard(orchestrator)
    status_text, status_kind = _status_line(dashboard)
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "dashboard": dashboard,
            "tiers": orchestrator.classifier.tiers,
            "status_text": status_text,
            "status_kind": status_kind,
        },
    )
