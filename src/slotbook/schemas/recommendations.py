"""Pydantic request/response models for slot and location recommendations."""

from __future__ import annotations

import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import FulfillmentType


class DeliveryAddressModel(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    postcode: Optional[str] = Field(default=None, max_length=16)


class DateRangeModel(BaseModel):
    start: datetime.date
    end: datetime.date

    @model_validator(mode="after")
    def validate_order(self) -> "DateRangeModel":
        if self.start > self.end:
            raise ValueError("dateRange.start must not be after dateRange.end")
        return self


class RecommendationRequest(BaseModel):
    merchantId: str = Field(..., min_length=1, description="Merchant id or storefront domain.")
    fulfillmentType: FulfillmentType
    locationId: Optional[str] = None
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    deliveryAddress: Optional[DeliveryAddressModel] = None
    dateRange: Optional[DateRangeModel] = None


class FactorsModel(BaseModel):
    capacity: float
    distance: float
    routeEfficiency: float
    personalization: float


class SlotRecommendationModel(BaseModel):
    id: str
    recommendationScore: float
    recommended: bool
    reason: str
    factors: FactorsModel
    date: datetime.date
    timeStart: str
    timeEnd: str
    capacity: int
    remaining: int
    locationId: str
    fulfillmentType: FulfillmentType


class SlotRecommendationMeta(BaseModel):
    totalSlots: int
    recommendedCount: int
    dateRange: DateRangeModel


class SlotRecommendationResponse(BaseModel):
    slots: List[SlotRecommendationModel]
    meta: SlotRecommendationMeta
    message: Optional[str] = None


class LocationRecommendationModel(BaseModel):
    id: str
    recommendationScore: float
    recommended: bool
    reason: str
    factors: FactorsModel
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distanceKm: Optional[float] = None
    totalCapacity: int
    availableCapacity: int
    supportsDelivery: bool
    supportsPickup: bool


class LocationRecommendationMeta(BaseModel):
    totalLocations: int
    recommendedCount: int
    hasCoordinates: bool


class LocationRecommendationResponse(BaseModel):
    locations: List[LocationRecommendationModel]
    meta: LocationRecommendationMeta
    message: Optional[str] = None
