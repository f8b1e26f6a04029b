"""Pydantic schemas for request/response validation"""
from seva.schemas.common import CamelModel
from seva.schemas.auth_schemas import (
    EmailRequest,
    RegisterCompleteRequest,
    LoginRequest,
    OTPVerifyRequest,
    TwoFactorToggleRequest,
    PasswordResetRequest,
    PasswordResetConfirm,
    ProfileUpdateRequest,
    RenameRequest,
    ChangePasswordRequest,
    AccountResponse,
    ProfileResponse,
    OTPChallengeResponse,
)
from seva.schemas.payment_schemas import (
    TimelineEntry,
    DonateRequest,
    MarkDonationFailedRequest,
    CheckoutOrderResponse,
    DonationResponse,
)
from seva.schemas.puja_schemas import (
    CreatePujaOrderRequest,
    VerifyCheckoutRequest,
    PujaOrderResponse,
)

__all__ = [
    "CamelModel",
    "EmailRequest",
    "RegisterCompleteRequest",
    "LoginRequest",
    "OTPVerifyRequest",
    "TwoFactorToggleRequest",
    "PasswordResetRequest",
    "PasswordResetConfirm",
    "ProfileUpdateRequest",
    "RenameRequest",
    "ChangePasswordRequest",
    "AccountResponse",
    "ProfileResponse",
    "OTPChallengeResponse",
    "TimelineEntry",
    "DonateRequest",
    "MarkDonationFailedRequest",
    "CheckoutOrderResponse",
    "DonationResponse",
    "CreatePujaOrderRequest",
    "VerifyCheckoutRequest",
    "PujaOrderResponse",
]
