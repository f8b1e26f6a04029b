from __future__ import annotations

import hashlib
import hmac
import logging
from typing import List, Optional

import httpx
from sqlalchemy.orm import Session, selectinload

from seva.core.config import settings
from seva.errors.exceptions import BadRequestException, NotFoundException, PaymentGatewayException
from seva.models.donation import Donation, DonationStatus, DonationType
from seva.models.order_event import OrderEvent, user_actor
from seva.models.user import User
from seva.schemas.payment_schemas import (
    CheckoutOrderResponse,
    DonateRequest,
    DonationResponse,
    MarkDonationFailedRequest,
)
from seva.services import order_state

logger = logging.getLogger(__name__)


class RazorpayClient:
    """
    Thin async client for the Razorpay Orders API.

    One instance per process; ``aclose()`` at shutdown.
    """

    def __init__(self, key_id: str, key_secret: str, api_url: str = "https://api.razorpay.com/v1",
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self._http = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> "RazorpayClient":
        return cls(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET, settings.RAZORPAY_API_URL)

    async def create_order(self, amount: int, currency: str = "INR", receipt: Optional[str] = None) -> dict:
        """
        Open an auto-captured order for *amount* whole rupees.

        Raises PaymentGatewayException when the provider cannot be reached or
        rejects the request.
        """
        payload = {
            "amount": amount * 100,     # paise
            "currency": currency,
            "payment_capture": 1,
        }
        if receipt:
            payload["receipt"] = receipt

        try:
            resp = await self._http.post("/orders", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"[Razorpay] Order creation failed for {amount} {currency}: {exc}")
            raise PaymentGatewayException(detail="Could not create payment order") from exc

        if not data.get("id"):
            logger.error(f"[Razorpay] Order response without id: {data}")
            raise PaymentGatewayException(detail="Could not create payment order")

        logger.info(f"[Razorpay] Order {data['id']} created for {amount} {currency}")
        return data

    def verify_checkout_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checkout callback signature: HMAC-SHA256 of ``order|payment`` with the key secret"""
        if not self.key_secret:
            logger.error("[Razorpay] Key secret not configured, cannot verify checkout signature")
            return False
        expected = hmac.new(
            self.key_secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))

    async def aclose(self) -> None:
        await self._http.aclose()


# ── donations ────────────────────────────────────────────────────────────────

async def create_donation(db: Session, user: User, data: DonateRequest, client: RazorpayClient) -> CheckoutOrderResponse:
    """
    1. Open a Razorpay order (nothing is stored if this fails).
    2. Insert a Pending donation with its ``created`` timeline entry.
    """
    order = await client.create_order(data.amount, settings.PAYMENT_CURRENCY)

    donation = Donation(
        user_id=user.id,
        type=data.type,
        cow_id=data.cow_id if data.type == DonationType.COW else None,
        amount=data.amount,
        currency=settings.PAYMENT_CURRENCY,
        order_id=order["id"],
        status=DonationStatus.PENDING,
    )
    try:
        db.add(donation)
        db.add(OrderEvent(provider_order_id=order["id"], type="created", by=user_actor(user.id)))
        db.commit()
        db.refresh(donation)
    except Exception as exc:
        db.rollback()
        logger.error(f"[Donation] DB insert failed for order {order['id']}: {exc}")
        raise

    logger.info(f"[Donation] Pending donation {donation.id} order={order['id']} user_id={user.id} amount={data.amount}")
    return CheckoutOrderResponse(
        order_id=order["id"],
        key_id=client.key_id,
        amount=donation.amount,
        currency=donation.currency,
    )


def mark_donation_failed(db: Session, user: User, data: MarkDonationFailedRequest) -> Donation:
    """
    Checkout was abandoned: the caller's newest Pending donation of this
    type (and cow) becomes Failed. 404 when nothing is pending.
    """
    query = db.query(Donation.id).filter(
        Donation.user_id == user.id,
        Donation.type == data.type,
        Donation.status == DonationStatus.PENDING,
    )
    if data.type == DonationType.COW:
        query = query.filter(Donation.cow_id == data.cow_id)
    candidate = query.order_by(Donation.created_at.desc(), Donation.id.desc()).first()

    if candidate is not None:
        result = order_state.transition(
            db,
            Donation,
            [Donation.id == candidate.id],
            DonationStatus.FAILED,
            event_type="failed",
            by=user_actor(user.id),
            from_statuses=[DonationStatus.PENDING],
        )
        if result.matched:
            return result.record

    raise NotFoundException(detail="No pending donation found")


def _donation_query(db: Session, user_id: int):
    return (
        db.query(Donation)
        .options(selectinload(Donation.timeline))
        .filter(Donation.user_id == user_id)
    )


def get_donation_history(db: Session, user_id: int, page: int = 1, limit: int = 10,
                         status_filter: Optional[str] = None):
    """Return one page of the caller's donations, newest first, plus the total."""
    query = _donation_query(db, user_id)
    if status_filter:
        try:
            query = query.filter(Donation.status == DonationStatus(status_filter))
        except ValueError:
            raise BadRequestException(detail=f"Unknown donation status: {status_filter}")
    total = query.count()
    rows = (
        query.order_by(Donation.created_at.desc(), Donation.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [DonationResponse.model_validate(r) for r in rows], total


def get_donations_by_type(db: Session, user_id: int, donation_type: DonationType) -> List[DonationResponse]:
    rows = (
        _donation_query(db, user_id)
        .filter(Donation.type == donation_type)
        .order_by(Donation.created_at.desc(), Donation.id.desc())
        .all()
    )
    return [DonationResponse.model_validate(r) for r in rows]
