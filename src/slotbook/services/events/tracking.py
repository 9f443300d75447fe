"""Track recommendation impressions and selections.

Selections also feed customer preferences so later rankings can favour the
weekdays, time ranges and locations a customer keeps choosing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...data.catalog_repository import get_merchant, slots_by_id
from ...data.preferences_repository import record_selection
from ...db.session import get_session_factory
from ...db.tables import RecommendationLogRecord
from ...errors import InternalFailure, NotFound
from ...models.domain import Merchant
from ...persistence.events import RECOMMENDATION_SELECTED, RECOMMENDATION_VIEWED, record_event
from ...schemas.events import (
    RecommendationSelectedRequest,
    RecommendationViewedRequest,
    TrackingResponse,
)

logger = logging.getLogger(__name__)


def _require_merchant(session: Session, merchant_id: str) -> Merchant:
    merchant = get_merchant(session, merchant_id)
    if merchant is None:
        raise NotFound("Merchant not found")
    return merchant


def _latest_log(session: Session, session_id: str, merchant_domain: str) -> Optional[RecommendationLogRecord]:
    statement = (
        select(RecommendationLogRecord)
        .where(
            RecommendationLogRecord.session_id == session_id,
            RecommendationLogRecord.merchant_domain == merchant_domain,
        )
        .order_by(RecommendationLogRecord.viewed_at.desc())
    )
    return session.scalars(statement).first()


def record_viewed(payload: RecommendationViewedRequest) -> TrackingResponse:
    slot_ids = [item.id for item in payload.recommendations if item.type == "slot"]
    location_ids = [item.id for item in payload.recommendations if item.type == "location"]
    try:
        with get_session_factory().begin() as session:
            merchant = _require_merchant(session, payload.merchantId)
            log = RecommendationLogRecord(
                session_id=payload.sessionId,
                merchant_domain=merchant.domain,
                customer_id=payload.customerId,
                customer_email=payload.customerEmail,
                recommended_slot_ids=slot_ids,
                recommended_location_ids=location_ids,
            )
            session.add(log)
            session.flush()
            record_event(
                session,
                RECOMMENDATION_VIEWED,
                {
                    "session_id": payload.sessionId,
                    "customer_id": payload.customerId,
                    "merchant": merchant.domain,
                    "recommendations": [item.model_dump() for item in payload.recommendations],
                },
            )
            log_id = log.id
    except SQLAlchemyError as exc:
        logger.exception(f"Failed to record recommendation view for session {payload.sessionId}")
        raise InternalFailure("An error occurred while tracking the recommendation view") from exc

    logger.info(f"Recorded {len(payload.recommendations)} recommendation(s) viewed in session {payload.sessionId}")
    return TrackingResponse(success=True, logId=log_id, message="Recommendation view tracked successfully")


def _fold_into_preferences(session: Session, payload: RecommendationSelectedRequest) -> None:
    selected = payload.selected
    if selected.type == "location":
        record_selection(
            session,
            customer_id=payload.customerId,
            customer_email=payload.customerEmail,
            location_id=selected.id,
        )
        return

    slot = slots_by_id(session, [selected.id]).get(selected.id)
    if slot is None:
        logger.warning(f"Selected slot {selected.id} no longer exists; preferences left unchanged")
        return
    record_selection(
        session,
        customer_id=payload.customerId,
        customer_email=payload.customerEmail,
        day=slot.weekday,
        time_range=f"{slot.time_start}-{slot.time_end}",
        location_id=slot.location_id,
    )


def record_selected(payload: RecommendationSelectedRequest) -> TrackingResponse:
    selected = payload.selected
    alternatives = list(payload.alternativesShown or [])
    try:
        with get_session_factory().begin() as session:
            merchant = _require_merchant(session, payload.merchantId)
            log = _latest_log(session, payload.sessionId, merchant.domain)
            if log is None:
                log = RecommendationLogRecord(
                    session_id=payload.sessionId,
                    merchant_domain=merchant.domain,
                    customer_id=payload.customerId,
                    customer_email=payload.customerEmail,
                    recommended_slot_ids=[],
                    recommended_location_ids=[],
                )
                session.add(log)
            if selected.type == "slot":
                log.selected_slot_id = selected.id
            else:
                log.selected_location_id = selected.id
            log.was_recommended = selected.wasRecommended
            log.alternatives_shown = alternatives
            log.selected_at = datetime.now(timezone.utc)
            session.flush()

            record_event(
                session,
                RECOMMENDATION_SELECTED,
                {
                    "session_id": payload.sessionId,
                    "customer_id": payload.customerId,
                    "merchant": merchant.domain,
                    "selected": selected.model_dump(),
                    "alternatives_shown": alternatives,
                },
            )
            if payload.customerId or payload.customerEmail:
                _fold_into_preferences(session, payload)
            log_id = log.id
    except SQLAlchemyError as exc:
        logger.exception(f"Failed to record recommendation selection for session {payload.sessionId}")
        raise InternalFailure("An error occurred while tracking the recommendation selection") from exc

    logger.info(f"Recorded {selected.type} selection {selected.id} in session {payload.sessionId}")
    return TrackingResponse(success=True, logId=log_id, message="Recommendation selection tracked successfully")
