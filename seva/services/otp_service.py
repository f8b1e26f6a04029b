"""
One-time codes: generation, resend throttling and single-use verification.

A challenge lives on the ``User`` row (``email_otp``, ``email_otp_expires``,
``email_otp_intent``). Issuing a new challenge overwrites the previous one.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from seva.core.config import settings
from seva.errors.exceptions import ThrottledException
from seva.models.user import OTPIntent, User
from seva.utils.logger import user_context
from seva.utils.timeutils import as_naive_utc, ceil_seconds, utcnow

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "OTP is invalid or expired"

LABELS = {
    OTPIntent.EMAIL_VERIFICATION: "Email Verification",
    OTPIntent.TWO_FACTOR: "Two-Factor Authentication",
    OTPIntent.PASSWORD_RESET: "Password Reset",
}


def ttl_for(intent: OTPIntent) -> timedelta:
    seconds = {
        OTPIntent.EMAIL_VERIFICATION: settings.OTP_EMAIL_VERIFICATION_TTL_SECONDS,
        OTPIntent.TWO_FACTOR: settings.OTP_TWO_FACTOR_TTL_SECONDS,
        OTPIntent.PASSWORD_RESET: settings.OTP_PASSWORD_RESET_TTL_SECONDS,
    }[intent]
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class ResendDecision:
    allowed: bool
    seconds_left: Optional[int] = None


@dataclass(frozen=True)
class IssuedOTP:
    code: str
    expires_at: datetime
    seconds_left: int


def generate_code() -> str:
    """Uniform 6-digit code in [100000, 999999]"""
    return str(100000 + secrets.randbelow(900000))


def is_resend_allowed(expires_at: Optional[datetime], now: Optional[datetime] = None) -> ResendDecision:
    """
    Decide whether a new code may be sent.

    Allowed when there is no challenge or the stored expiry is at or before
    *now*; otherwise the remaining whole seconds (rounded up) are returned.
    """
    if expires_at is None:
        return ResendDecision(allowed=True)
    now = as_naive_utc(now or utcnow())
    expires_at = as_naive_utc(expires_at)
    if expires_at <= now:
        return ResendDecision(allowed=True)
    return ResendDecision(allowed=False, seconds_left=ceil_seconds((expires_at - now).total_seconds()))


def issue(db: Session, user: User, intent: OTPIntent, mailer, now: Optional[datetime] = None) -> IssuedOTP:
    """
    Persist a fresh challenge on *user*, then hand it to the mailer.

    The row is committed before delivery; a failed send leaves the code valid
    and the resend throttle governs the retry.
    """
    now = as_naive_utc(now or utcnow())
    ttl = ttl_for(intent)
    code = generate_code()

    user.email_otp = code
    user.email_otp_expires = now + ttl
    user.email_otp_intent = intent
    db.commit()
    db.refresh(user)

    delivered = mailer.send_otp_email(user.email, code, LABELS[intent], int(ttl.total_seconds()))
    if delivered:
        logger.info(f"[OTP] {LABELS[intent]} code sent to user {user.id}")
    else:
        logger.warning(f"[OTP] {LABELS[intent]} code stored but not delivered", extra=user_context(user))

    return IssuedOTP(code=code, expires_at=user.email_otp_expires, seconds_left=int(ttl.total_seconds()))


def issue_throttled(db: Session, user: User, intent: OTPIntent, mailer, now: Optional[datetime] = None) -> IssuedOTP:
    """``issue`` behind the resend gate; raises ``ThrottledException`` while a code is live"""
    decision = is_resend_allowed(user.email_otp_expires, now)
    if not decision.allowed:
        logger.info(f"[OTP] Resend blocked for user {user.id}, {decision.seconds_left}s left")
        raise ThrottledException(
            decision.seconds_left,
            detail=f"Please wait {decision.seconds_left}s before requesting a new OTP",
        )
    return issue(db, user, intent, mailer, now)


def verify(user: User, supplied: Optional[str], intent: OTPIntent, now: Optional[datetime] = None) -> bool:
    """
    True iff a live challenge of *intent* exists and *supplied* matches it.

    Does not clear the challenge; callers call ``user.clear_otp()`` and apply
    the effect in the same commit.
    """
    if not user.has_live_challenge or supplied is None:
        return False
    if user.email_otp_intent != intent:
        return False
    now = as_naive_utc(now or utcnow())
    if not now < as_naive_utc(user.email_otp_expires):
        return False
    return secrets.compare_digest(str(supplied).strip().encode("utf-8"), str(user.email_otp).strip().encode("utf-8"))
