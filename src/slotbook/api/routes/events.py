"""API routes for recommendation tracking events."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...errors import SchedulingError
from ...schemas.events import (
    RecommendationSelectedRequest,
    RecommendationViewedRequest,
    TrackingResponse,
)
from ...services.events.tracking import record_selected, record_viewed
from ..errors import to_http_exception

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/recommendation-viewed", response_model=TrackingResponse, status_code=status.HTTP_200_OK)
def recommendation_viewed(payload: RecommendationViewedRequest) -> TrackingResponse:
    try:
        return record_viewed(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/recommendation-selected", response_model=TrackingResponse, status_code=status.HTTP_200_OK)
def recommendation_selected(payload: RecommendationSelectedRequest) -> TrackingResponse:
    try:
        return record_selected(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
