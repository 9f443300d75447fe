"""API routes for booking mutations.

Mutations always answer with ``{success, booking?, error?}``; the HTTP status
follows the error kind so clients can tell "pick another slot" (409) from
"nothing to change" (404).
"""

from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ...errors import HTTP_STATUS_BY_KIND, SchedulingError
from ...models.domain import Booking
from ...schemas.bookings import (
    BookingModel,
    BookingMutationResponse,
    CancelBookingRequest,
    CompleteBookingRequest,
    CreateBookingRequest,
    ErrorModel,
    RescheduleBookingRequest,
)
from ...services.booking.state_machine import BookingDetails, BookingStateMachine
from ..errors import to_http_exception

router = APIRouter(prefix="/bookings", tags=["bookings"])

_machine = BookingStateMachine()


def _booking_model(booking: Booking) -> BookingModel:
    return BookingModel(id=booking.id, orderId=booking.order_id, slotId=booking.slot_id, status=booking.status)


def _mutate(action: Callable[[], Booking]) -> BookingMutationResponse | JSONResponse:
    try:
        booking = action()
    except SchedulingError as exc:
        body = BookingMutationResponse(success=False, error=ErrorModel(**exc.to_dict()))
        return JSONResponse(status_code=HTTP_STATUS_BY_KIND[exc.kind], content=body.model_dump(mode="json"))
    return BookingMutationResponse(success=True, booking=_booking_model(booking))


@router.post("", response_model=BookingMutationResponse, status_code=status.HTTP_201_CREATED)
def create_booking(payload: CreateBookingRequest):
    details = BookingDetails(
        order_number=payload.orderNumber,
        customer_id=payload.customerId,
        customer_email=payload.customerEmail,
        delivery_address=payload.deliveryAddress,
        delivery_postcode=payload.deliveryPostcode,
        delivery_latitude=payload.deliveryLatitude,
        delivery_longitude=payload.deliveryLongitude,
        was_recommended=payload.wasRecommended,
        recommendation_score=payload.recommendationScore,
    )
    return _mutate(lambda: _machine.create(payload.orderId, payload.slotId, details))


@router.post("/reschedule", response_model=BookingMutationResponse, status_code=status.HTTP_200_OK)
def reschedule_booking(payload: RescheduleBookingRequest):
    return _mutate(lambda: _machine.reschedule(payload.orderId, payload.newSlotId, payload.reason))


@router.post("/cancel", response_model=BookingMutationResponse, status_code=status.HTTP_200_OK)
def cancel_booking(payload: CancelBookingRequest):
    return _mutate(lambda: _machine.cancel(payload.orderId, payload.reason))


@router.post("/complete", response_model=BookingMutationResponse, status_code=status.HTTP_200_OK)
def complete_booking(payload: CompleteBookingRequest):
    return _mutate(lambda: _machine.complete(payload.orderId))


@router.get("/{order_id}", response_model=BookingModel, status_code=status.HTTP_200_OK)
def get_booking(order_id: str) -> BookingModel:
    try:
        return _booking_model(_machine.get(order_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
