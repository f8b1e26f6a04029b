"""Donation and provider-order schemas."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from seva.models.donation import DonationStatus, DonationType
from seva.schemas.common import CamelModel


class TimelineEntry(CamelModel):
    type: str
    note: Optional[str] = None
    by: str
    at: Optional[datetime] = None


class DonateRequest(CamelModel):
    """Body sent by the authenticated user to open a donation."""
    amount: int = Field(..., gt=0, description="Amount in whole rupees")
    type: DonationType = DonationType.COW
    cow_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def cow_needs_id(self):
        if self.type == DonationType.COW and not self.cow_id:
            raise ValueError("cowId is required for cow donation")
        return self


class MarkDonationFailedRequest(CamelModel):
    type: DonationType = DonationType.COW
    cow_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def cow_needs_id(self):
        if self.type == DonationType.COW and not self.cow_id:
            raise ValueError("Missing cowId for cow donation")
        return self


class CheckoutOrderResponse(CamelModel):
    """What the browser needs to open the Razorpay checkout."""
    order_id: str
    key_id: str
    amount: int
    currency: str


class DonationResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    cow_id: Optional[str] = None
    type: DonationType
    amount: int
    currency: str
    status: DonationStatus
    order_id: str
    payment_id: Optional[str] = None
    email_sent: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    timeline: List[TimelineEntry] = []
