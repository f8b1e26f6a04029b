"""User (account) model with the unified OTP challenge fields"""
from enum import Enum

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seva.db.base import Base


class OTPIntent(str, Enum):
    """What a live OTP challenge is allowed to prove"""
    EMAIL_VERIFICATION = "email_verification"
    TWO_FACTOR = "two_factor"
    PASSWORD_RESET = "password_reset"


class User(Base):
    """
    Donor account.

    The OTP challenge lives on the account itself: ``email_otp``,
    ``email_otp_expires`` and ``email_otp_intent`` are always set together
    and cleared together, so an account holds at most one live challenge.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_number = Column(Integer, unique=True, nullable=False, index=True)  # public 7-digit id
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)  # set on registration-complete
    name = Column(String(255), nullable=True)
    date_of_birth = Column(Date, nullable=True)

    is_verified = Column(Boolean, default=False, nullable=False)
    two_factor_enabled = Column(Boolean, default=False, nullable=False)

    email_otp = Column(String(6), nullable=True)
    email_otp_expires = Column(DateTime(timezone=False), nullable=True)
    email_otp_intent = Column(
        SQLEnum(OTPIntent, name="otpintent", values_callable=lambda obj: [e.value for e in obj]),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    sessions = relationship("LoginSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', verified={self.is_verified})>"

    @property
    def has_live_challenge(self) -> bool:
        return self.email_otp is not None and self.email_otp_expires is not None

    def clear_otp(self) -> None:
        """Drop the challenge; callers persist this in the same commit as its effect."""
        self.email_otp = None
        self.email_otp_expires = None
        self.email_otp_intent = None
