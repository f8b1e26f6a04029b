"""Authentication service: password hashing, JWT and the OTP-gated account flow"""
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from seva.core.config import settings
from seva.errors.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ThrottledException,
    UnauthorizedException,
)
from seva.models.session import AccountKind
from seva.models.user import OTPIntent, User
from seva.schemas.auth_schemas import PasswordResetConfirm, RegisterCompleteRequest, TokenData
from seva.services import otp_service
from seva.services.otp_service import INVALID_OTP_MESSAGE, IssuedOTP
from seva.utils.logger import user_context

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)

INVALID_CREDENTIALS = "Invalid credentials"
MIN_PASSWORD_LENGTH = 6
NEUTRAL_RESET_MESSAGE = "If the email exists, an OTP has been sent"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password"""
    if not hashed_password:
        return False  # registration never completed
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt (fresh salt per call)"""
    return pwd_context.hash(password)


def create_access_token(user: User, kind: AccountKind = AccountKind.USER,
                        expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token carrying the account id and email
    """
    expire = datetime.now(timezone.utc) + (expires_delta or settings.TOKEN_LIFETIME)
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "kind": kind.value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token; ``None`` when it does not verify
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode error: {str(e)}")
        return None

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        return None

    return TokenData(user_id=user_id, email=payload.get("email"), kind=payload.get("kind"))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Get user by email (case-insensitive)
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """
    Get user by ID
    """
    return db.query(User).filter(User.id == user_id).first()


def generate_user_number(db: Session) -> int:
    """Random public 7-digit id, retried until unused"""
    while True:
        candidate = random.randint(1_000_000, 9_999_999)
        if not db.query(User.id).filter(User.user_number == candidate).first():
            return candidate


# ── registration ─────────────────────────────────────────────────────────────

def register_init(db: Session, email: str, mailer) -> IssuedOTP:
    """
    Look up or create the account for *email* and send an email-verification code.

    A verified account that already has a name is a duplicate registration.
    """
    user = get_user_by_email(db, email)
    if user:
        if user.is_verified and user.name:
            logger.warning(f"[Auth] Registration init rejected, {user.email} already exists")
            raise ConflictException(detail="User already exists")
    else:
        user = User(email=normalize_email(email), user_number=generate_user_number(db))
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"[Auth] New unverified account {user.id} created")

    return otp_service.issue_throttled(db, user, OTPIntent.EMAIL_VERIFICATION, mailer)


def verify_email_otp(db: Session, email: str, otp: str, unknown_is_not_found: bool = False) -> User:
    """
    Prove control of the mailbox: sets ``is_verified`` and clears the code in one commit
    """
    user = get_user_by_email(db, email)
    if not user:
        if unknown_is_not_found:
            raise NotFoundException(detail="User not found")
        raise BadRequestException(detail=INVALID_OTP_MESSAGE)

    if not otp_service.verify(user, otp, OTPIntent.EMAIL_VERIFICATION):
        logger.warning("[Auth] Email verification code rejected", extra=user_context(user))
        raise BadRequestException(detail=INVALID_OTP_MESSAGE)

    user.is_verified = True
    user.clear_otp()
    db.commit()
    db.refresh(user)
    logger.info(f"[Auth] Email verified for user {user.id}")
    return user


def register_complete(db: Session, data: RegisterCompleteRequest) -> User:
    """
    Set name, password and date of birth on a verified account.

    The caller issues the session afterwards (auto-login).
    """
    user = get_user_by_email(db, data.email)
    if not user:
        logger.warning(f"[Auth] Complete registration failed: user not found ({data.email})")
        raise NotFoundException(detail="User not found")
    if not user.is_verified:
        logger.warning("[Auth] Complete registration failed: email not verified", extra=user_context(user))
        raise ForbiddenException(detail="Email not verified")
    if user.hashed_password:
        logger.warning("[Auth] Complete registration replayed on a finished account", extra=user_context(user))
        raise ConflictException(detail="Registration already completed")

    user.name = data.name.strip()
    user.hashed_password = get_password_hash(data.password)
    user.date_of_birth = data.date_of_birth
    db.commit()
    db.refresh(user)
    logger.info(f"[Auth] Registration complete for user {user.id}")
    return user


# ── login ────────────────────────────────────────────────────────────────────

class LoginStep(str, Enum):
    AUTHENTICATED = "authenticated"
    VERIFICATION_REQUIRED = "verification_required"
    TWO_FACTOR_REQUIRED = "two_factor_required"


@dataclass
class LoginOutcome:
    step: LoginStep
    user: User
    seconds_left: Optional[int] = None


def login(db: Session, email: str, password: str, mailer) -> LoginOutcome:
    """
    Password login.

    Unverified accounts get a fresh verification code instead of a session;
    accounts with 2FA get a login code. Only ``AUTHENTICATED`` outcomes should
    be followed by a session.
    """
    user = get_user_by_email(db, email)
    if not user:
        logger.warning(f"[Auth] Login failed: unknown email {email}")
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    if not user.is_verified:
        issued = otp_service.issue_throttled(db, user, OTPIntent.EMAIL_VERIFICATION, mailer)
        logger.info(f"[Auth] Login for unverified user {user.id}, verification code resent")
        return LoginOutcome(LoginStep.VERIFICATION_REQUIRED, user, issued.seconds_left)

    if not verify_password(password, user.hashed_password):
        logger.warning("[Auth] Login failed: incorrect password", extra=user_context(user))
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    if user.two_factor_enabled:
        issued = otp_service.issue_throttled(db, user, OTPIntent.TWO_FACTOR, mailer)
        logger.info(f"[Auth] 2FA code sent for user {user.id}")
        return LoginOutcome(LoginStep.TWO_FACTOR_REQUIRED, user, issued.seconds_left)

    return LoginOutcome(LoginStep.AUTHENTICATED, user)


def verify_two_factor(db: Session, email: str, otp: str) -> User:
    """Consume a login 2FA code; the caller then issues the session"""
    user = get_user_by_email(db, email)
    if not user or not user.two_factor_enabled:
        raise BadRequestException(detail="2FA not enabled")

    if not otp_service.verify(user, otp, OTPIntent.TWO_FACTOR):
        logger.warning("[Auth] 2FA code rejected", extra=user_context(user))
        raise BadRequestException(detail=INVALID_OTP_MESSAGE)

    user.clear_otp()
    db.commit()
    db.refresh(user)
    return user


def resend_two_factor(db: Session, email: str, mailer) -> IssuedOTP:
    user = get_user_by_email(db, email)
    if not user or not user.two_factor_enabled:
        raise BadRequestException(detail="Invalid request")
    return otp_service.issue_throttled(db, user, OTPIntent.TWO_FACTOR, mailer)


# ── password reset ───────────────────────────────────────────────────────────

def request_password_reset(db: Session, email: Optional[str], mailer) -> None:
    """
    Send a reset code if the account exists, is verified and has no live code.

    Every branch looks the same to the caller.
    """
    if not email:
        logger.warning("[Auth] Password reset requested without an email")
        return

    user = get_user_by_email(db, email)
    if not user:
        logger.warning(f"[Auth] Password reset requested for unknown email {email}")
        return
    if not user.is_verified:
        logger.warning("[Auth] Password reset requested for an unverified account", extra=user_context(user))
        return

    try:
        otp_service.issue_throttled(db, user, OTPIntent.PASSWORD_RESET, mailer)
    except ThrottledException as exc:
        logger.info(f"[Auth] Password reset code already live for user {user.id}, {exc.seconds_left}s left")
        return
    logger.info(f"[Auth] Password reset code sent for user {user.id}")


def confirm_password_reset(db: Session, data: PasswordResetConfirm) -> User:
    if data.new_password != data.confirm_password:
        raise BadRequestException(detail="Passwords do not match")
    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise BadRequestException(detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = get_user_by_email(db, data.email)
    if not user or not user.is_verified or not otp_service.verify(user, data.otp, OTPIntent.PASSWORD_RESET):
        logger.warning(f"[Auth] Password reset confirm rejected for {data.email}")
        raise BadRequestException(detail=INVALID_OTP_MESSAGE)

    user.hashed_password = get_password_hash(data.new_password)
    user.clear_otp()
    db.commit()
    db.refresh(user)
    logger.info(f"[Auth] Password reset via OTP for user {user.id}")
    return user


# ── two-factor toggle ────────────────────────────────────────────────────────

def toggle_two_factor(db: Session, user: User, otp: Optional[str], enable: bool, mailer) -> Optional[IssuedOTP]:
    """
    Without *otp*: send a code (throttled) and return it.
    With *otp*: verify it and flip ``two_factor_enabled`` to *enable*.
    """
    action = "Enable" if enable else "Disable"
    if not otp:
        issued = otp_service.issue_throttled(db, user, OTPIntent.TWO_FACTOR, mailer)
        logger.info(f"[Auth] {action} 2FA: code sent to user {user.id}")
        return issued

    if not otp_service.verify(user, otp, OTPIntent.TWO_FACTOR):
        logger.warning(f"[Auth] {action} 2FA: code rejected", extra=user_context(user))
        raise BadRequestException(detail=INVALID_OTP_MESSAGE)

    user.two_factor_enabled = enable
    user.clear_otp()
    db.commit()
    db.refresh(user)
    logger.info(f"[Auth] Two-factor {'enabled' if enable else 'disabled'} for user {user.id}")
    return None


# ── token validation ─────────────────────────────────────────────────────────

def validate_token(db: Session, token: Optional[str]) -> User:
    """Stateless check of *token*, then a fresh read of the account"""
    if not token:
        logger.warning("[Auth] No token provided for validation")
        raise UnauthorizedException(detail="No token provided")

    token_data = decode_access_token(token)
    if token_data is None:
        raise UnauthorizedException(detail="Invalid token")

    user = get_user_by_id(db, token_data.user_id)
    if user is None:
        logger.warning(f"[Auth] Token valid but user {token_data.user_id} not found")
        raise NotFoundException(detail="User not found")
    return user
