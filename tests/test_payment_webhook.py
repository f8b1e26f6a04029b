"""Donation and cow-puja checkout plus webhook reconciliation."""
from datetime import datetime, timedelta, timezone

import pytest

from seva.models.cow_puja_order import CowPujaOrder, PujaOrderStatus
from seva.models.donation import Donation, DonationStatus
from seva.models.order_event import OrderEvent
from tests.conftest import API, DONATION_SECRET, PUJA_SECRET, captured_event, sign

pytestmark = pytest.mark.asyncio

DONATION_HOOK = f"{API}/payments/webhook"
PUJA_HOOK = f"{API}/cow-puja/webhook"


def _puja_body(**overrides):
    body = {
        "customer": {"name": "Radha", "email": "donor@example.com", "phone": "+919876543210"},
        "pujaDetails": {"gotra": "Kashyap", "sankalpam": "For the family's health"},
    }
    body.update(overrides)
    return body


async def _donate(client, headers, amount=501, cow_id="cow-7"):
    resp = await client.post(f"{API}/payments/donate", headers=headers,
                             json={"amount": amount, "type": "cow", "cowId": cow_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["orderId"]


async def _book_puja(client, headers):
    resp = await client.post(f"{API}/cow-puja/orders", headers=headers, json=_puja_body())
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["orderId"]


async def _deliver(client, url, body, secret):
    return await client.post(url, content=body, headers={
        "x-razorpay-signature": sign(body, secret),
        "content-type": "application/json",
    })


async def test_donate_creates_pending_donation(client, auth_headers, razorpay, session_factory):
    resp = await client.post(f"{API}/payments/donate", headers=auth_headers,
                             json={"amount": 501, "type": "cow", "cowId": "cow-7"})
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "orderId": "order_test_1", "keyId": "rzp_test_key", "amount": 501, "currency": "INR",
    }

    sent = razorpay.requests[0]
    assert sent.url.path.endswith("/orders")
    assert b'"amount": 50100' in sent.content or b'"amount":50100' in sent.content

    with session_factory() as db:
        donation = db.query(Donation).one()
        assert donation.status == DonationStatus.PENDING
        assert donation.cow_id == "cow-7"
        assert [e.type for e in donation.timeline] == ["created"]


async def test_donate_requires_cow_id(client, auth_headers):
    resp = await client.post(f"{API}/payments/donate", headers=auth_headers, json={"amount": 100, "type": "cow"})
    assert resp.status_code == 422


async def test_donate_requires_login(client):
    resp = await client.post(f"{API}/payments/donate", json={"amount": 100, "type": "ashram"})
    assert resp.status_code == 401


async def test_provider_failure_stores_nothing(client, auth_headers, razorpay, session_factory):
    razorpay.fail = True
    resp = await client.post(f"{API}/payments/donate", headers=auth_headers, json={"amount": 100, "type": "ashram"})
    assert resp.status_code == 502
    with session_factory() as db:
        assert db.query(Donation).count() == 0


async def test_tampered_body_is_rejected(client, auth_headers, session_factory, mailer):
    order_id = await _donate(client, auth_headers)
    body = captured_event(order_id)
    signature = sign(body, DONATION_SECRET)
    tampered = body.replace(b"pay_test_1", b"pay_evil_1")

    resp = await client.post(DONATION_HOOK, content=tampered, headers={"x-razorpay-signature": signature})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid signature"}

    with session_factory() as db:
        assert db.query(Donation).one().status == DonationStatus.PENDING
    assert mailer.donation_emails == []


async def test_missing_signature_and_wrong_secret(client):
    body = captured_event("order_test_1")
    resp = await client.post(DONATION_HOOK, content=body)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Missing signature header"

    resp = await _deliver(client, DONATION_HOOK, body, PUJA_SECRET)
    assert resp.status_code == 400


async def test_non_capture_events_are_acknowledged(client, auth_headers, session_factory):
    order_id = await _donate(client, auth_headers)
    resp = await _deliver(client, DONATION_HOOK, captured_event(order_id, event="payment.failed"), DONATION_SECRET)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    with session_factory() as db:
        assert db.query(Donation).one().status == DonationStatus.PENDING


async def test_capture_without_ids_is_rejected(client):
    body = b'{"event": "payment.captured", "payload": {"payment": {"entity": {}}}}'
    resp = await _deliver(client, DONATION_HOOK, body, DONATION_SECRET)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Missing payment details"


async def test_capture_for_unknown_order_is_acknowledged(client):
    resp = await _deliver(client, DONATION_HOOK, captured_event("order_unknown"), DONATION_SECRET)
    assert resp.status_code == 200


async def test_duplicate_delivery_transitions_once(client, auth_headers, session_factory, mailer):
    order_id = await _donate(client, auth_headers)
    body = captured_event(order_id, payment_id="pay_abc")

    first = await _deliver(client, DONATION_HOOK, body, DONATION_SECRET)
    second = await _deliver(client, DONATION_HOOK, body, DONATION_SECRET)
    assert first.status_code == 200
    assert second.status_code == 200

    with session_factory() as db:
        donation = db.query(Donation).one()
        assert donation.status == DonationStatus.SUCCESSFUL
        assert donation.payment_id == "pay_abc"
        assert donation.email_sent is True
        events = db.query(OrderEvent).filter(OrderEvent.provider_order_id == order_id).all()
        assert sorted(e.type for e in events) == ["created", "payment_captured"]

    assert len(mailer.donation_emails) == 1
    assert mailer.donation_emails[0]["payment_id"] == "pay_abc"


async def test_notification_failure_does_not_undo_capture(client, auth_headers, session_factory, mailer):
    order_id = await _donate(client, auth_headers)
    mailer.explode = True

    resp = await _deliver(client, DONATION_HOOK, captured_event(order_id), DONATION_SECRET)
    assert resp.status_code == 200
    with session_factory() as db:
        donation = db.query(Donation).one()
        assert donation.status == DonationStatus.SUCCESSFUL
        assert donation.email_sent is False


async def test_mark_failed_then_capture_leaves_failed(client, auth_headers, session_factory):
    order_id = await _donate(client, auth_headers)
    resp = await client.post(f"{API}/payments/mark-failed", headers=auth_headers,
                             json={"type": "cow", "cowId": "cow-7"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Failed"

    resp = await client.post(f"{API}/payments/mark-failed", headers=auth_headers,
                             json={"type": "cow", "cowId": "cow-7"})
    assert resp.status_code == 404

    resp = await _deliver(client, DONATION_HOOK, captured_event(order_id), DONATION_SECRET)
    assert resp.status_code == 200
    with session_factory() as db:
        donation = db.query(Donation).one()
        assert donation.status == DonationStatus.FAILED
        assert donation.payment_id is None


async def test_donation_history(client, auth_headers):
    first = await _donate(client, auth_headers, amount=100)
    await _donate(client, auth_headers, amount=200)
    await _deliver(client, DONATION_HOOK, captured_event(first), DONATION_SECRET)

    resp = await client.get(f"{API}/donations/my?limit=1", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}
    assert len(data["items"]) == 1

    resp = await client.get(f"{API}/donations/my?status=Successful", headers=auth_headers)
    items = resp.json()["data"]["items"]
    assert [i["orderId"] for i in items] == [first]
    assert [t["type"] for t in items[0]["timeline"]] == ["created", "payment_captured"]

    resp = await client.get(f"{API}/donations/my/cows", headers=auth_headers)
    assert len(resp.json()["data"]) == 2
    resp = await client.get(f"{API}/donations/my/ashram", headers=auth_headers)
    assert resp.json()["data"] == []


# ── cow puja ─────────────────────────────────────────────────────────────────

async def test_puja_order_uses_account_identity(client, auth_headers, session_factory):
    body = _puja_body(customer={"name": "Someone Else", "email": "other@example.com", "phone": "+919876543210"})
    resp = await client.post(f"{API}/cow-puja/orders", headers=auth_headers, json=body)
    assert resp.status_code == 200
    assert resp.json()["data"]["amount"] == 2100

    with session_factory() as db:
        order = db.query(CowPujaOrder).one()
        assert order.status == PujaOrderStatus.AWAITING_PAYMENT
        assert order.customer_name == "Radha"
        assert order.customer_email == "donor@example.com"
        assert order.puja_details["gotra"] == "Kashyap"


async def test_puja_order_validation(client, auth_headers):
    bad_phone = _puja_body(customer={"name": "Radha", "email": "donor@example.com", "phone": "9876543210"})
    resp = await client.post(f"{API}/cow-puja/orders", headers=auth_headers, json=bad_phone)
    assert resp.status_code == 422

    too_soon = (datetime.now(timezone.utc) + timedelta(hours=24)).isoformat()
    early = _puja_body(pujaDetails={"gotra": "Kashyap", "sankalpam": "For health", "preferredDate": too_soon})
    resp = await client.post(f"{API}/cow-puja/orders", headers=auth_headers, json=early)
    assert resp.status_code == 422

    resp = await client.post(f"{API}/cow-puja/orders", headers=auth_headers, json=_puja_body(currency="USD"))
    assert resp.status_code == 422


async def test_puja_capture_then_abort_is_rejected(client, auth_headers, session_factory, mailer):
    order_id = await _book_puja(client, auth_headers)
    resp = await _deliver(client, PUJA_HOOK, captured_event(order_id, payment_id="pay_puja"), PUJA_SECRET)
    assert resp.status_code == 200
    assert len(mailer.puja_emails) == 1

    resp = await client.post(f"{API}/cow-puja/orders/{order_id}/abort", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "No awaiting-payment order found or already finalized"

    with session_factory() as db:
        order = db.query(CowPujaOrder).one()
        assert order.status == PujaOrderStatus.SUCCESSFUL_PAYMENT
        assert order.payment_id == "pay_puja"


async def test_puja_abort_then_capture_leaves_aborted(client, auth_headers, session_factory, mailer):
    order_id = await _book_puja(client, auth_headers)
    resp = await client.post(f"{API}/cow-puja/orders/{order_id}/abort", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Aborted"

    resp = await _deliver(client, PUJA_HOOK, captured_event(order_id), PUJA_SECRET)
    assert resp.status_code == 200

    with session_factory() as db:
        order = db.query(CowPujaOrder).one()
        assert order.status == PujaOrderStatus.ABORTED
        assert order.payment_id is None
    assert mailer.puja_emails == []


async def test_puja_webhook_uses_its_own_secret(client, auth_headers):
    order_id = await _book_puja(client, auth_headers)
    resp = await _deliver(client, PUJA_HOOK, captured_event(order_id), DONATION_SECRET)
    assert resp.status_code == 400


async def test_puja_mark_failed_and_history(client, auth_headers):
    order_id = await _book_puja(client, auth_headers)
    resp = await client.post(f"{API}/cow-puja/mark-failed", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Failed"

    resp = await client.post(f"{API}/cow-puja/mark-failed", headers=auth_headers)
    assert resp.status_code == 404

    resp = await client.get(f"{API}/cow-puja/my/orders", headers=auth_headers)
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 1
    order = data["items"][0]
    assert order["orderId"] == order_id
    assert [t["type"] for t in order["timeline"]] == ["created", "failed"]

    resp = await client.get(f"{API}/cow-puja/my/orders/{order['id']}", headers=auth_headers)
    assert resp.status_code == 200
    resp = await client.get(f"{API}/cow-puja/my/orders/9999", headers=auth_headers)
    assert resp.status_code == 404


async def test_puja_checkout_signature(client, auth_headers):
    order_id = await _book_puja(client, auth_headers)
    good = sign(f"{order_id}|pay_1".encode(), "rzp_test_secret")

    resp = await client.post(f"{API}/cow-puja/verify", headers=auth_headers, json={
        "razorpay_order_id": order_id, "razorpay_payment_id": "pay_1", "razorpay_signature": good,
    })
    assert resp.status_code == 200
    assert resp.json()["data"] == {"verified": True}

    resp = await client.post(f"{API}/cow-puja/verify", headers=auth_headers, json={
        "razorpay_order_id": order_id, "razorpay_payment_id": "pay_2", "razorpay_signature": good,
    })
    assert resp.status_code == 400


async def test_non_ascii_signature_is_rejected(client, auth_headers, session_factory):
    order_id = await _donate(client, auth_headers)
    resp = await client.post(DONATION_HOOK, content=captured_event(order_id),
                             headers={"x-razorpay-signature": "é".encode("latin-1") * 64})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid signature"}
    with session_factory() as db:
        assert db.query(Donation).one().status == DonationStatus.PENDING


async def test_non_ascii_checkout_signature_is_rejected(client, auth_headers):
    order_id = await _book_puja(client, auth_headers)
    resp = await client.post(f"{API}/cow-puja/verify", headers=auth_headers, json={
        "razorpay_order_id": order_id, "razorpay_payment_id": "pay_1", "razorpay_signature": "é" * 64,
    })
    assert resp.status_code == 400
