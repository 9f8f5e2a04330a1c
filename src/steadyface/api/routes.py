"""API route definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from steadyface.api.middleware import verify_api_key
from steadyface.api.schemas import (
    ErrorResponse,
    HealthResponse,
    StabilizedFace,
    SummaryResponse,
)

if TYPE_CHECKING:
    from steadyface.stabilizer.session import DetectionSession

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

_UNAVAILABLE = {status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse}}


def _get_session(request: Request) -> DetectionSession:
    session: DetectionSession | None = request.app.state.session
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No detection session configured",
        )
    return session


@router.get(
    "/health",
    response_model=HealthResponse,
    responses=_UNAVAILABLE,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return session status and counters."""
    session = _get_session(request)
    return HealthResponse(
        status="ok",
        running=session.running,
        detection_in_flight=session.in_flight,
        detections_started=session.detections_started,
        detection_failures=session.detection_failures,
        frames_processed=session.frames_processed,
        history_size=len(session.history),
    )


@router.get(
    "/detections",
    response_model=list[StabilizedFace],
    responses=_UNAVAILABLE,
    summary="Latest stabilized detections",
)
async def detections(request: Request) -> list[StabilizedFace]:
    """Return the smoothed detections from the most recent completed cycle."""
    session = _get_session(request)
    return [StabilizedFace.from_detection(d) for d in session.stabilized]


@router.get(
    "/summary",
    response_model=SummaryResponse,
    responses=_UNAVAILABLE,
    summary="Consensus summary",
)
async def summary(request: Request) -> SummaryResponse:
    """Return the median/mode summary over the detection history."""
    session = _get_session(request)
    return SummaryResponse.from_summary(session.consensus, samples=len(session.history))


@router.post(
    "/reset",
    response_model=SummaryResponse,
    responses=_UNAVAILABLE,
    summary="Reset statistics",
)
async def reset(request: Request) -> SummaryResponse:
    """Clear history and consensus, and restart the frame counter."""
    session = _get_session(request)
    session.reset()
    return SummaryResponse.from_summary(session.consensus, samples=len(session.history))
