"""Account endpoints: registration, login, profile and 2FA toggles"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from seva.core.dependencies import get_db, get_mailer
from seva.middleware.auth import get_current_user, get_request_token, require_verified
from seva.middleware.rate_limit import login_rate_limit
from seva.errors.response_codes import success_response
from seva.models.user import User
from seva.schemas.auth_schemas import (
    AccountResponse,
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    OTPChallengeResponse,
    OTPVerifyRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterCompleteRequest,
    RenameRequest,
    TwoFactorToggleRequest,
)
from seva.services import account_service, auth_service, session_service
from seva.services.auth_service import LoginStep, NEUTRAL_RESET_MESSAGE

router = APIRouter()
logger = logging.getLogger(__name__)


# ── registration ─────────────────────────────────────────────────────────────

@router.post("/register/init", status_code=status.HTTP_200_OK)
async def register_init(body: EmailRequest, db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    """
    ## Start registration (Step 1 of 3)

    **Role:** Public.

    Creates the account on first use and emails a 6-digit verification code.
    Calling it again for an unverified email re-sends the code once the
    previous one has expired.

    ### Required fields (JSON body)
    | Field | Type   | Description            |
    |-------|--------|------------------------|
    | email | string | Address to be verified |

    ### Response
    `data = { "email": "...", "secondsLeft": 86400 }`

    ### Errors
    - **409** account already registered
    - **429** a code is still live, `data.secondsLeft` says how long
    """
    issued = auth_service.register_init(db, body.email, mailer)
    data = OTPChallengeResponse(email=auth_service.normalize_email(body.email), seconds_left=issued.seconds_left)
    return success_response(data.to_wire(), "OTP sent for email verification")


@router.post("/verify-email-otp")
async def verify_email_otp(body: OTPVerifyRequest, db: Session = Depends(get_db)):
    """
    ## Verify the emailed code (Step 2 of 3)

    **Role:** Public. Unknown email → 404, wrong/expired code → 400.
    """
    user = auth_service.verify_email_otp(db, body.email, body.otp, unknown_is_not_found=True)
    return success_response(AccountResponse.from_user(user).to_wire(), "Email verified successfully")


@router.post("/register/complete", status_code=status.HTTP_201_CREATED)
async def register_complete(
    body: RegisterCompleteRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    ## Finish registration and log in (Step 3 of 3)

    **Role:** Public, but the email must already be verified.

    ### Required fields (JSON body)
    | Field           | Type   | Description                 |
    |-----------------|--------|-----------------------------|
    | email           | string | Verified email              |
    | name            | string | Display name                |
    | password        | string | Minimum 6 characters        |
    | confirmPassword | string | Must equal `password`       |
    | dateOfBirth     | date   | Optional, `YYYY-MM-DD`      |

    On success the `user-token` cookie is set (auto-login).

    ### Errors
    - **403** email not verified
    - **404** no such account
    - **409** registration was already completed
    - **422** field validation
    """
    user = auth_service.register_complete(db, body)
    response = success_response(
        AccountResponse.from_user(user).to_wire(),
        "Registration completed successfully",
        status_code=status.HTTP_201_CREATED,
    )
    session_service.issue_session(db, user, request, response)
    return response


# ── login / logout ───────────────────────────────────────────────────────────

@router.post("/login", dependencies=[Depends(login_rate_limit)])
async def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    """
    ## Log in with email and password

    **Role:** Public (rate-limited per IP).

    ### Outcomes (all HTTP 200)
    | `data`                                         | Meaning                                  |
    |------------------------------------------------|------------------------------------------|
    | account snapshot                               | logged in, `user-token` cookie set       |
    | `{ verificationRequired: true, secondsLeft }`  | email unverified, a new code was sent    |
    | `{ twoFactorRequired: true, secondsLeft }`     | 2FA on; POST **/verify-two-factor** next |

    ### Errors
    - **401** `Invalid credentials` (unknown email or wrong password)
    - **429** code still live, or too many attempts from this IP
    """
    outcome = auth_service.login(db, body.email, body.password, mailer)

    if outcome.step == LoginStep.VERIFICATION_REQUIRED:
        data = OTPChallengeResponse(verification_required=True, seconds_left=outcome.seconds_left)
        return success_response(data.to_wire(), "Email not verified. OTP resent.")

    if outcome.step == LoginStep.TWO_FACTOR_REQUIRED:
        data = OTPChallengeResponse(two_factor_required=True, seconds_left=outcome.seconds_left)
        return success_response(data.to_wire(), "OTP sent for 2FA verification.")

    response = success_response(AccountResponse.from_user(outcome.user).to_wire(), "Login successful")
    session_service.issue_session(db, outcome.user, request, response)
    logger.info(f"[Auth] User {outcome.user.id} logged in")
    return response


@router.get("/validate-token")
async def validate_token(token=Depends(get_request_token), db: Session = Depends(get_db)):
    """
    ## Validate the current token

    Reads the `user-token` cookie or `Authorization: Bearer`. Returns the
    account snapshot so the client can hydrate its auth state.
    """
    user = auth_service.validate_token(db, token)
    return success_response(AccountResponse.from_user(user).to_wire(), "Token is valid")


@router.post("/logout")
async def logout():
    """Clear the auth cookie. Already issued tokens are not revoked server-side."""
    response = success_response(None, "Logged out successfully")
    session_service.revoke(response)
    return response


# ── password reset ───────────────────────────────────────────────────────────

@router.post("/forgot-password/request", dependencies=[Depends(login_rate_limit)])
async def forgot_password_request(
    body: PasswordResetRequest,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    """
    ## Request a password-reset code

    Always answers 200 with the same message, whether or not the account
    exists or a code is already live.
    """
    auth_service.request_password_reset(db, body.email, mailer)
    return success_response(None, NEUTRAL_RESET_MESSAGE)


@router.post("/forgot-password/confirm", dependencies=[Depends(login_rate_limit)])
async def forgot_password_confirm(body: PasswordResetConfirm, db: Session = Depends(get_db)):
    """
    ## Set a new password with the emailed code

    ### Required fields (JSON body)
    `email`, `otp`, `newPassword` (≥ 6 chars), `confirmPassword`

    Logs the user in (cookie only) on success.
    """
    user = auth_service.confirm_password_reset(db, body)
    response = success_response(None, "Password reset successful")
    session_service.rotate_token(response, user)
    return response


# ── two-factor toggle ────────────────────────────────────────────────────────

async def _toggle_two_factor(body: TwoFactorToggleRequest, user: User, enable: bool, db: Session, mailer):
    issued = auth_service.toggle_two_factor(db, user, body.otp, enable, mailer)
    if issued is not None:
        data = OTPChallengeResponse(seconds_left=issued.seconds_left)
        return success_response(data.to_wire(), "OTP sent. Please confirm with the code.")
    state = "enabled" if enable else "disabled"
    return success_response(None, f"Two-factor authentication {state}")


@router.post("/enable-two-factor")
async def enable_two_factor(
    body: TwoFactorToggleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    """
    ## Turn on two-factor login

    **Role:** Authenticated.

    1. POST `{}` → a code is emailed, `data.secondsLeft` returned.
    2. POST `{ "otp": "123456" }` → 2FA enabled.
    """
    return await _toggle_two_factor(body, current_user, True, db, mailer)


@router.post("/disable-two-factor")
async def disable_two_factor(
    body: TwoFactorToggleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    """Same two-step flow as **/enable-two-factor**, clearing the flag."""
    return await _toggle_two_factor(body, current_user, False, db, mailer)


# ── profile ──────────────────────────────────────────────────────────────────

@router.get("/profile")
async def get_profile(current_user: User = Depends(require_verified("access your profile"))):
    return success_response(ProfileResponse.from_user(current_user).to_wire(), "User profile retrieved")


@router.put("/update-profile")
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    ## Update non-sensitive profile fields

    Accepts `email` and `dateOfBirth`. `name` and `password` are ignored here;
    use **/rename** and **/change-password**.
    """
    user = account_service.update_profile(db, current_user, body)
    return success_response(AccountResponse.from_user(user).to_wire(), "User profile updated successfully")


@router.post("/rename")
async def rename(
    body: RenameRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Password-gated rename. Body: `{ currentPassword, newName }`."""
    user = account_service.rename(db, current_user, body)
    return success_response(AccountResponse.from_user(user).to_wire(), "Name updated successfully")


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    ## Change password

    Body: `{ oldPassword, newPassword }`. The cookie is re-issued with a
    fresh token so the caller stays logged in.
    """
    user = account_service.change_password(db, current_user, body)
    response = success_response(None, "Password updated successfully")
    session_service.rotate_token(response, user)
    return response


@router.delete("/delete-account")
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Permanently delete the account. Requires a verified email."""
    account_service.delete_account(db, current_user)
    response = success_response(None, "User account deleted successfully")
    session_service.revoke(response)
    return response
