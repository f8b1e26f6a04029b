"""OTP issuance, resend gate and verification."""
from datetime import datetime, timedelta

import pytest

from seva.errors.exceptions import ThrottledException
from seva.models.user import OTPIntent, User
from seva.services import otp_service

NOW = datetime(2026, 1, 1, 12, 0, 0)


def _user_with_challenge(code="123456", intent=OTPIntent.TWO_FACTOR, expires=NOW + timedelta(seconds=20)):
    return User(email="otp@example.com", user_number=1234567, email_otp=code,
                email_otp_expires=expires, email_otp_intent=intent)


def _persisted_user(db, email="otp@example.com"):
    user = User(email=email, user_number=7654321)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_generate_code_is_six_digits():
    for _ in range(200):
        code = otp_service.generate_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


def test_resend_allowed_without_challenge():
    decision = otp_service.is_resend_allowed(None, NOW)
    assert decision.allowed
    assert decision.seconds_left is None


def test_resend_blocked_reports_seconds_rounded_up():
    decision = otp_service.is_resend_allowed(NOW + timedelta(seconds=10, milliseconds=200), NOW)
    assert not decision.allowed
    assert decision.seconds_left == 11


def test_resend_allowed_at_exact_expiry():
    assert otp_service.is_resend_allowed(NOW, NOW).allowed


def test_verify_accepts_matching_live_code():
    user = _user_with_challenge()
    assert otp_service.verify(user, "123456", OTPIntent.TWO_FACTOR, NOW)
    assert otp_service.verify(user, " 123456 ", OTPIntent.TWO_FACTOR, NOW)


def test_verify_rejects_wrong_code():
    assert not otp_service.verify(_user_with_challenge(), "654321", OTPIntent.TWO_FACTOR, NOW)


def test_verify_rejects_at_and_after_expiry():
    user = _user_with_challenge(expires=NOW)
    assert not otp_service.verify(user, "123456", OTPIntent.TWO_FACTOR, NOW)
    assert not otp_service.verify(user, "123456", OTPIntent.TWO_FACTOR, NOW + timedelta(seconds=1))


def test_verify_rejects_other_intent():
    user = _user_with_challenge(intent=OTPIntent.PASSWORD_RESET)
    assert not otp_service.verify(user, "123456", OTPIntent.TWO_FACTOR, NOW)


def test_verify_without_challenge():
    user = User(email="none@example.com", user_number=1111111)
    assert not otp_service.verify(user, "123456", OTPIntent.TWO_FACTOR, NOW)
    assert not otp_service.verify(_user_with_challenge(), None, OTPIntent.TWO_FACTOR, NOW)


def test_issue_persists_challenge_and_sends(db, mailer):
    user = _persisted_user(db)
    issued = otp_service.issue(db, user, OTPIntent.PASSWORD_RESET, mailer, now=NOW)

    assert issued.seconds_left == 20
    assert issued.expires_at == NOW + timedelta(seconds=20)
    assert user.email_otp == issued.code
    assert user.email_otp_intent == OTPIntent.PASSWORD_RESET
    assert mailer.otps == [{"to": user.email, "otp": issued.code, "label": "Password Reset", "expires_in": 20}]


def test_issue_keeps_code_when_delivery_fails(db, mailer):
    mailer.deliver = False
    user = _persisted_user(db)
    issued = otp_service.issue(db, user, OTPIntent.EMAIL_VERIFICATION, mailer, now=NOW)

    assert issued.seconds_left == 86400
    assert user.email_otp == issued.code


def test_issue_throttled_while_code_is_live(db, mailer):
    user = _persisted_user(db)
    otp_service.issue(db, user, OTPIntent.TWO_FACTOR, mailer, now=NOW)

    with pytest.raises(ThrottledException) as excinfo:
        otp_service.issue_throttled(db, user, OTPIntent.TWO_FACTOR, mailer, now=NOW + timedelta(seconds=5))

    assert excinfo.value.status_code == 429
    assert excinfo.value.seconds_left == 15
    assert excinfo.value.data == {"secondsLeft": 15}
    assert len(mailer.otps) == 1


def test_issue_throttled_after_expiry_replaces_code(db, mailer):
    user = _persisted_user(db)
    first = otp_service.issue(db, user, OTPIntent.TWO_FACTOR, mailer, now=NOW)
    second = otp_service.issue_throttled(db, user, OTPIntent.TWO_FACTOR, mailer, now=NOW + timedelta(seconds=20))

    assert len(mailer.otps) == 2
    assert user.email_otp == second.code
    assert second.expires_at > first.expires_at
