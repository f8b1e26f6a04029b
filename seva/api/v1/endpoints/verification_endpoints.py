"""Unauthenticated OTP endpoints used mid-login"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from seva.core.dependencies import get_db, get_mailer
from seva.errors.response_codes import success_response
from seva.schemas.auth_schemas import AccountResponse, EmailRequest, OTPChallengeResponse, OTPVerifyRequest
from seva.services import auth_service, session_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/verify-email-otp")
async def verify_email_otp(body: OTPVerifyRequest, db: Session = Depends(get_db)):
    """
    ## Verify an email-verification code

    Same as **/user/verify-email-otp** except an unknown email is reported
    as an invalid code (400) rather than 404.
    """
    auth_service.verify_email_otp(db, body.email, body.otp)
    return success_response(None, "Email verified")


@router.post("/verify-two-factor")
async def verify_two_factor(body: OTPVerifyRequest, request: Request, db: Session = Depends(get_db)):
    """
    ## Complete a 2FA login

    **Role:** Public. Follows a login that answered `twoFactorRequired`.

    ### Required fields (JSON body)
    | Field | Type   | Description                  |
    |-------|--------|------------------------------|
    | email | string | Account email                |
    | otp   | string | 6-digit code from the email  |

    On success the code is consumed and the `user-token` cookie is set. A
    failure to record the session audit row does not fail the login.
    """
    user = auth_service.verify_two_factor(db, body.email, body.otp)
    response = success_response(AccountResponse.from_user(user).to_wire(), "Login successful")
    session_service.issue_session(db, user, request, response, best_effort=True)
    logger.info(f"[Auth] 2FA login completed for user {user.id}")
    return response


@router.post("/resend-two-factor")
async def resend_two_factor(body: EmailRequest, db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    """Re-send the login code once the previous one expired (429 otherwise)."""
    issued = auth_service.resend_two_factor(db, body.email, mailer)
    return success_response(OTPChallengeResponse(seconds_left=issued.seconds_left).to_wire(), "OTP resent")
