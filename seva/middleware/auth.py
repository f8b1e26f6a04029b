"""Authentication dependencies"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from seva.core.config import settings
from seva.core.dependencies import get_db
from seva.errors.exceptions import UnauthorizedException
from seva.models.user import User
from seva.services.account_service import ensure_verified
from seva.services.auth_service import decode_access_token, get_user_by_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/user/login", auto_error=False)


def get_request_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Cookie first, then ``Authorization: Bearer``"""
    return request.cookies.get(settings.USER_TOKEN_COOKIE_NAME) or bearer


async def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from the JWT"""
    if not token:
        raise UnauthorizedException(detail="No user token provided")

    token_data = decode_access_token(token)
    if token_data is None:
        raise UnauthorizedException(detail="Invalid user token")

    user = get_user_by_id(db, user_id=token_data.user_id)
    if user is None:
        raise UnauthorizedException(detail="User not found")

    return user


def require_verified(action: str):
    """Dependency factory: authenticated *and* email-verified"""
    async def verified_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_verified(current_user, action)
        return current_user
    return verified_checker
