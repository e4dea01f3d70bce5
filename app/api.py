"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import DashboardResponse, build_dashboard_response
from services.refresh import RefreshOrchestrator, RefreshStatus, build_default_orchestrator

router = APIRouter()


def get_orchestrator() -> RefreshOrchestrator:
    return build_default_orchestrator()


def current_dashboard(
    orchestrator: RefreshOrchestrator,
    refresh_status: RefreshStatus | None = None,
) -> DashboardResponse:
    session = orchestrator.session
    summary = orchestrator.summarize(session.last_result or ())
    return build_dashboard_response(session, summary, refresh_status=refresh_status)


@router.get(
    "/rooms",
    response_model=DashboardResponse,
    summary="Latest reading per room from the most recent refresh.",
)
async def get_rooms(
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
) -> DashboardResponse:
    return current_dashboard(orchestrator)


@router.post(
    "/refresh",
    response_model=DashboardResponse,
    summary="Fetch, reconcile and classify the latest readings.",
    responses={
        status.HTTP_202_ACCEPTED: {"description": "A refresh was already running; nothing started."},
        status.HTTP_502_BAD_GATEWAY: {"description": "The data store could not be read."},
    },
)
async def refresh_rooms(
    response: Response,
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
) -> DashboardResponse:
    outcome = await orchestrator.refresh()
    if outcome.status is RefreshStatus.failed:
        assert outcome.failure is not None
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{outcome.failure.kind.value}: {outcome.failure.message}",
        )
    if outcome.status is RefreshStatus.skipped:
        response.status_code = status.HTTP_202_ACCEPTED
    return current_dashboard(orchestrator, refresh_status=outcome.status)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /ui for the dashboard and /rooms for JSON."}
