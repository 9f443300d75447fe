"""API routes for ranked slot and location recommendations."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...errors import SchedulingError
from ...schemas.recommendations import (
    LocationRecommendationResponse,
    RecommendationRequest,
    SlotRecommendationResponse,
)
from ...services.recommendations.service import recommend_locations, recommend_slots
from ..errors import to_http_exception

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.post("/slots", response_model=SlotRecommendationResponse, status_code=status.HTTP_200_OK)
def slots(payload: RecommendationRequest) -> SlotRecommendationResponse:
    try:
        return recommend_slots(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/locations", response_model=LocationRecommendationResponse, status_code=status.HTTP_200_OK)
def locations(payload: RecommendationRequest) -> LocationRecommendationResponse:
    try:
        return recommend_locations(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
