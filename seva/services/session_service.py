"""Bearer-token issuance: cookie, JWT and the session audit row"""
import logging
from datetime import datetime, timezone

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from seva.core.config import settings
from seva.models.session import AccountKind, LoginSession
from seva.models.user import User
from seva.services.auth_service import create_access_token
from seva.utils.logger import user_context
from seva.utils.request_meta import client_ip, user_agent

logger = logging.getLogger(__name__)


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.USER_TOKEN_COOKIE_NAME,
        value=token,
        max_age=int(settings.TOKEN_LIFETIME.total_seconds()),
        httponly=True,
        secure=True,
        samesite="none",
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.USER_TOKEN_COOKIE_NAME,
        httponly=True,
        secure=True,
        samesite="none",
        path="/",
    )


def rotate_token(response: Response, user: User) -> str:
    """New cookie token without an audit row (password change / reset)"""
    token = create_access_token(user)
    set_auth_cookie(response, token)
    return token


def issue_session(
    db: Session,
    user: User,
    request: Request,
    response: Response,
    best_effort: bool = False,
) -> str:
    """
    Mint a token, set it as the auth cookie and record a ``LoginSession``.

    With *best_effort* a failed audit write is rolled back and logged; the
    cookie stays set because the token is already valid.
    """
    token = create_access_token(user)
    set_auth_cookie(response, token)

    try:
        db.add(LoginSession(
            user_id=user.id,
            account_kind=AccountKind.USER,
            token=token,
            ip_address=client_ip(request),
            user_agent=user_agent(request),
        ))
        user.last_login = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if not best_effort:
            raise
        logger.error(f"[Session] Non-fatal: failed to persist session: {e}", extra=user_context(user))
        return token

    logger.info(f"[Session] Session created for user {user.id}")
    return token


def revoke(response: Response) -> None:
    """Logout: drop the cookie. Issued tokens stay valid until they expire."""
    clear_auth_cookie(response)
