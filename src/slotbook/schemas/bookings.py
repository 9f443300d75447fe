"""Pydantic request/response models for booking mutations."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import BookingStatus


class _OrderRequest(BaseModel):
    orderId: str = Field(..., description="External order identifier.")

    @field_validator("orderId")
    @classmethod
    def validate_order_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("orderId must not be blank")
        return stripped


class CreateBookingRequest(_OrderRequest):
    slotId: str = Field(..., min_length=1)
    orderNumber: Optional[str] = None
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    deliveryAddress: Optional[str] = None
    deliveryPostcode: Optional[str] = Field(default=None, max_length=16)
    deliveryLatitude: Optional[float] = Field(default=None, ge=-90, le=90)
    deliveryLongitude: Optional[float] = Field(default=None, ge=-180, le=180)
    wasRecommended: bool = False
    recommendationScore: Optional[float] = Field(default=None, ge=0, le=1)


class RescheduleBookingRequest(_OrderRequest):
    newSlotId: str = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelBookingRequest(_OrderRequest):
    reason: Optional[str] = Field(default=None, max_length=500)


class CompleteBookingRequest(_OrderRequest):
    pass


class BookingModel(BaseModel):
    id: str
    orderId: str
    slotId: str
    status: BookingStatus


class ErrorModel(BaseModel):
    kind: str
    message: str


class BookingMutationResponse(BaseModel):
    success: bool
    booking: Optional[BookingModel] = None
    error: Optional[ErrorModel] = None
