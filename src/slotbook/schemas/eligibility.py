"""Pydantic request/response models for eligibility checks."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import FulfillmentType


class EligibilityRequest(BaseModel):
    postcode: str = Field(..., description="Customer postcode, any spacing or case.")
    fulfillmentType: Optional[FulfillmentType] = Field(default=None, description="Restrict to one service.")
    merchantId: str = Field(..., min_length=1, description="Merchant id or storefront domain.")
    latitude: Optional[float] = Field(default=None, ge=-90, le=90, description="Customer latitude for radius zones.")
    longitude: Optional[float] = Field(default=None, ge=-180, le=180, description="Customer longitude for radius zones.")

    @field_validator("postcode")
    @classmethod
    def validate_postcode(cls, value: str) -> str:
        stripped = value.strip()
        if not 2 <= len(stripped) <= 10:
            raise ValueError("postcode must be between 2 and 10 characters")
        return stripped


class ServicesModel(BaseModel):
    delivery: bool
    pickup: bool


class EligibleLocationModel(BaseModel):
    id: str
    name: str
    address: str
    supportsDelivery: bool
    supportsPickup: bool
    services: ServicesModel


class EligibilityResponse(BaseModel):
    eligible: bool
    locations: List[EligibleLocationModel]
    services: ServicesModel
    message: str
