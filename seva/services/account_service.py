"""Profile management for verified accounts"""
import logging

from sqlalchemy.orm import Session

from seva.errors.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    UnauthorizedException,
)
from seva.models.cow_puja_order import CowPujaOrder
from seva.models.donation import Donation
from seva.models.session import LoginSession
from seva.models.user import User
from seva.schemas.auth_schemas import ChangePasswordRequest, ProfileUpdateRequest, RenameRequest
from seva.services.auth_service import (
    MIN_PASSWORD_LENGTH,
    get_password_hash,
    get_user_by_email,
    normalize_email,
    verify_password,
)
from seva.utils.logger import user_context

logger = logging.getLogger(__name__)

SENSITIVE_PROFILE_FIELDS = {"name", "password", "hashedPassword", "hashed_password"}


def ensure_verified(user: User, action: str) -> None:
    if not user.is_verified:
        raise ForbiddenException(
            detail=f"Your email is not verified. Please verify your email to {action}."
        )


def update_profile(db: Session, user: User, data: ProfileUpdateRequest) -> User:
    """Only email and date of birth; name and password have their own routes"""
    ensure_verified(user, "update your profile")

    blocked = SENSITIVE_PROFILE_FIELDS & set((data.model_extra or {}).keys())
    if blocked:
        logger.warning(
            f"[Account] Ignored sensitive fields on profile update: {sorted(blocked)}",
            extra=user_context(user),
        )

    if data.email is not None:
        new_email = normalize_email(data.email)
        if new_email != user.email:
            existing = get_user_by_email(db, new_email)
            if existing and existing.id != user.id:
                raise ConflictException(detail="Email already in use")
            user.email = new_email

    if "date_of_birth" in data.model_fields_set:
        user.date_of_birth = data.date_of_birth

    db.commit()
    db.refresh(user)
    logger.info(f"[Account] Profile updated for user {user.id}")
    return user


def rename(db: Session, user: User, data: RenameRequest) -> User:
    ensure_verified(user, "rename your profile")

    if not verify_password(data.current_password, user.hashed_password):
        logger.warning("[Account] Rename failed: invalid password", extra=user_context(user))
        raise UnauthorizedException(detail="Invalid current password")

    trimmed = data.new_name.strip()
    if not 2 <= len(trimmed) <= 100:
        raise BadRequestException(detail="Invalid name length.")

    user.name = trimmed
    db.commit()
    db.refresh(user)
    logger.info(f"[Account] User {user.id} renamed")
    return user


def change_password(db: Session, user: User, data: ChangePasswordRequest) -> User:
    ensure_verified(user, "change password")

    if not verify_password(data.old_password, user.hashed_password):
        logger.warning("[Account] Password change failed: invalid old password", extra=user_context(user))
        raise UnauthorizedException(detail="Invalid old password")

    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise BadRequestException(detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters.")

    if verify_password(data.new_password, user.hashed_password):
        raise BadRequestException(detail="New password must be different from the old password.")

    user.hashed_password = get_password_hash(data.new_password)
    db.commit()
    db.refresh(user)
    logger.info(f"[Account] Password changed for user {user.id}")
    return user


def delete_account(db: Session, user: User) -> None:
    """Remove the account and its session rows; orders and donations keep their history"""
    ensure_verified(user, "delete your account")

    user_id = user.id
    db.query(LoginSession).filter(LoginSession.user_id == user_id).delete(synchronize_session=False)
    for model in (Donation, CowPujaOrder):
        db.query(model).filter(model.user_id == user_id).update({model.user_id: None}, synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.warning(f"[Account] User account {user_id} deleted")
