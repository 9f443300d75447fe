"""API routes for postcode eligibility."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...errors import SchedulingError
from ...schemas.eligibility import EligibilityRequest, EligibilityResponse
from ...services.zoning.service import check_eligibility
from ..errors import to_http_exception

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


@router.post("/check", response_model=EligibilityResponse, status_code=status.HTTP_200_OK)
def check(payload: EligibilityRequest) -> EligibilityResponse:
    try:
        return check_eligibility(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
