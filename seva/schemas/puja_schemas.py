"""Cow-puja booking schemas"""
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from seva.models.cow_puja_order import PujaOrderStatus
from seva.schemas.common import CamelModel
from seva.schemas.payment_schemas import TimelineEntry

PHONE_RE = re.compile(r"^\+91\d{10}$")
MIN_LEAD_TIME = timedelta(hours=72)
DEFAULT_PUJA_AMOUNT = 2100


def _strip_or_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class PujaCustomer(CamelModel):
    name: str
    email: EmailStr
    phone: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if not PHONE_RE.match(v):
            raise ValueError("Phone must be in E.164 format: +91XXXXXXXXXX (10 digits)")
        return v


class PujaDetails(CamelModel):
    gotra: str
    sankalpam: str
    preferred_date: Optional[datetime] = None
    names_to_include: Optional[str] = None
    additional_notes: Optional[str] = None

    @field_validator("gotra")
    @classmethod
    def validate_gotra(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Gotra must be at least 2 characters")
        return v

    @field_validator("sankalpam")
    @classmethod
    def validate_sankalpam(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Sankalpam must be at least 5 characters")
        return v

    @field_validator("preferred_date", "names_to_include", "additional_notes", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_or_none(v)

    @field_validator("preferred_date")
    @classmethod
    def validate_preferred_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v - datetime.now(timezone.utc) < MIN_LEAD_TIME:
            raise ValueError("preferredDate must be at least 3 full days (≥72 hours) from now")
        return v


class CreatePujaOrderRequest(CamelModel):
    customer: PujaCustomer
    puja_details: PujaDetails
    amount: int = Field(DEFAULT_PUJA_AMOUNT, gt=0)
    currency: str = "INR"

    @field_validator("currency")
    @classmethod
    def only_inr(cls, v: str) -> str:
        if v != "INR":
            raise ValueError("Only INR is supported")
        return v


class VerifyCheckoutRequest(BaseModel):
    """Fields handed back by the Razorpay checkout widget (snake_case on the wire)."""
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PujaOrderResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    order_id: str
    payment_id: Optional[str] = None
    status: PujaOrderStatus
    amount: int
    currency: str
    customer_name: str
    customer_email: str
    customer_phone: str
    puja_details: dict
    scheduled_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    timeline: List[TimelineEntry] = []
