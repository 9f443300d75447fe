"""Pydantic request/response models for recommendation tracking events."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class RecommendedItem(BaseModel):
    type: Literal["slot", "location"]
    id: str
    recommendationScore: float = Field(..., ge=0, le=1)


class RecommendationViewedRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    merchantId: str = Field(..., min_length=1)
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    recommendations: List[RecommendedItem]


class SelectedItem(BaseModel):
    type: Literal["slot", "location"]
    id: str = Field(..., min_length=1)
    recommendationScore: Optional[float] = Field(default=None, ge=0, le=1)
    wasRecommended: bool


class RecommendationSelectedRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    merchantId: str = Field(..., min_length=1)
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    selected: SelectedItem
    alternativesShown: Optional[List[str]] = None


class TrackingResponse(BaseModel):
    success: bool
    logId: Optional[str] = None
    message: str
