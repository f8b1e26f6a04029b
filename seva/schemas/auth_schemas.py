"""Authentication and account schemas"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from seva.schemas.common import CamelModel


class EmailRequest(CamelModel):
    """Body for register/init and resend-two-factor"""
    email: EmailStr


class RegisterCompleteRequest(CamelModel):
    """Schema for finishing registration after the email is verified"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str = Field(..., min_length=6, max_length=128)
    date_of_birth: Optional[date] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    """Schema for login request"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class OTPVerifyRequest(CamelModel):
    """Email + 6-digit code; used by verify-email-otp and verify-two-factor"""
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)


class TwoFactorToggleRequest(CamelModel):
    """No ``otp`` asks for a code, a present ``otp`` confirms the change"""
    otp: Optional[str] = Field(None, max_length=12)


class PasswordResetRequest(CamelModel):
    # Deliberately loose: malformed input still gets the neutral answer
    email: Optional[str] = None


class PasswordResetConfirm(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)
    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdateRequest(CamelModel):
    """Non-sensitive profile fields; anything else is ignored"""
    model_config = ConfigDict(extra="allow")

    email: Optional[EmailStr] = None
    date_of_birth: Optional[date] = None


class RenameRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)


class AccountResponse(CamelModel):
    """Account snapshot returned to the client; never carries the password hash"""
    id: int
    user_id: int
    email: str
    name: Optional[str] = None
    is_verified: bool
    two_factor_enabled: bool
    date_of_birth: Optional[date] = None

    @classmethod
    def from_user(cls, user) -> "AccountResponse":
        return cls(
            id=user.id,
            user_id=user.user_number,
            email=user.email,
            name=user.name,
            is_verified=bool(user.is_verified),
            two_factor_enabled=bool(user.two_factor_enabled),
            date_of_birth=user.date_of_birth,
            **cls._extra_fields(user),
        )

    @classmethod
    def _extra_fields(cls, user) -> dict:
        return {}


class ProfileResponse(AccountResponse):
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @classmethod
    def _extra_fields(cls, user) -> dict:
        return {"created_at": user.created_at, "last_login": user.last_login}


class OTPChallengeResponse(CamelModel):
    """Returned whenever a code was (or already is) on its way"""
    seconds_left: Optional[int] = None
    email: Optional[str] = None
    verification_required: Optional[bool] = None
    two_factor_required: Optional[bool] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class TokenData(BaseModel):
    """Token data schema for JWT payload"""
    user_id: int
    email: Optional[str] = None
    kind: Optional[str] = None
