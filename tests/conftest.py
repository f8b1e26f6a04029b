"""Shared fixtures: in-memory database, recording mailer and a mocked Razorpay API."""
import hashlib
import hmac
import json
import os
import tempfile
from typing import AsyncIterator, Iterator

_TMP_DIR = tempfile.mkdtemp(prefix="seva-tests-")

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = os.path.join(_TMP_DIR, "logs.txt")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-for-tests-please-change"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "donation-webhook-secret"
os.environ["RAZORPAY_COW_PUJA_WEBHOOK_SECRET"] = "puja-webhook-secret"
os.environ["LOGIN_RATE_LIMIT_MAX"] = "1000"
os.environ["CLIENT_URL"] = "https://app.example.com"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from seva.core.dependencies import get_db, get_mailer, get_payment_client  # noqa: E402
from seva.db.base import Base  # noqa: E402
from seva.main import app as fastapi_app  # noqa: E402
from seva.services.payment_service import RazorpayClient  # noqa: E402

API = "/api/v1"
DONATION_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]
PUJA_SECRET = os.environ["RAZORPAY_COW_PUJA_WEBHOOK_SECRET"]


class FakeMailer:
    """Records every send instead of talking SMTP."""

    def __init__(self):
        self.otps = []
        self.donation_emails = []
        self.puja_emails = []
        self.deliver = True
        self.explode = False

    def send_otp_email(self, to, otp, label, expires_in_seconds):
        self.otps.append({"to": to, "otp": otp, "label": label, "expires_in": expires_in_seconds})
        return self.deliver

    def send_donation_confirmation_email(self, **kwargs):
        if self.explode:
            raise RuntimeError("smtp down")
        self.donation_emails.append(kwargs)
        return self.deliver

    def send_puja_payment_received_email(self, **kwargs):
        if self.explode:
            raise RuntimeError("smtp down")
        self.puja_emails.append(kwargs)
        return self.deliver

    def last_code(self, to=None) -> str:
        matches = [m for m in self.otps if to is None or m["to"] == to]
        assert matches, f"no OTP sent to {to}"
        return matches[-1]["otp"]


class RazorpayStub:
    """httpx handler standing in for the Orders API."""

    def __init__(self):
        self.requests = []
        self.counter = 0
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"error": {"description": "provider down"}})
        self.counter += 1
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"id": f"order_test_{self.counter}", "amount": body["amount"], "currency": body["currency"]},
        )


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def captured_event(order_id: str, payment_id: str = "pay_test_1", event: str = "payment.captured") -> bytes:
    return json.dumps({
        "event": event,
        "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id, "status": "captured"}}},
    }).encode()


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory) -> Iterator:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def razorpay() -> RazorpayStub:
    return RazorpayStub()


@pytest_asyncio.fixture()
async def payment_client(razorpay) -> AsyncIterator[RazorpayClient]:
    client = RazorpayClient(
        os.environ["RAZORPAY_KEY_ID"],
        os.environ["RAZORPAY_KEY_SECRET"],
        "https://razorpay.example.com/v1",
        transport=httpx.MockTransport(razorpay),
    )
    yield client
    await client.aclose()


@pytest.fixture()
def app(session_factory, mailer, payment_client):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    fastapi_app.dependency_overrides[get_mailer] = lambda: mailer
    fastapi_app.dependency_overrides[get_payment_client] = lambda: payment_client
    fastapi_app.state.login_limiter.reset()
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://testserver",
    ) as client:
        yield client


async def register_user(client: AsyncClient, mailer: FakeMailer, email: str = "donor@example.com",
                        password: str = "secret123", name: str = "Radha") -> dict:
    """Run the three registration steps; returns the complete-registration response body."""
    resp = await client.post(f"{API}/user/register/init", json={"email": email})
    assert resp.status_code == 200, resp.text
    resp = await client.post(f"{API}/user/verify-email-otp", json={"email": email, "otp": mailer.last_code(email)})
    assert resp.status_code == 200, resp.text
    resp = await client.post(f"{API}/user/register/complete", json={
        "email": email,
        "name": name,
        "password": password,
        "confirmPassword": password,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture()
async def auth_headers(client, mailer) -> dict:
    """Bearer header for a freshly registered, verified account."""
    resp_body = await register_user(client, mailer)
    token = client.cookies.get("user-token")
    assert token, resp_body
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}
