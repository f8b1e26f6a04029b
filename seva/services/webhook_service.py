"""
Razorpay webhook reconciliation.

Delivery is at-least-once and may arrive out of order, so every step is
idempotent: the capture is a conditional status update and a redelivery
simply matches nothing.

Response contract (provider-facing, not the API envelope):
    400  missing/invalid signature, unreadable body, missing ids
    200  everything else once the signature verified
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from seva.core.config import settings
from seva.models.cow_puja_order import CowPujaOrder
from seva.models.donation import Donation
from seva.models.order_event import SYSTEM_ACTOR
from seva.models.user import User
from seva.services import order_state

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-razorpay-signature"
CAPTURED_EVENT = "payment.captured"


@dataclass
class WebhookAck:
    status_code: int
    success: bool
    message: Optional[str] = None

    @property
    def body(self) -> dict:
        content = {"success": self.success}
        if self.message:
            content["message"] = self.message
        return content


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """Constant-time comparison (as bytes) of the hex HMAC-SHA256 of the exact bytes received"""
    if not secret:
        logger.error("[Webhook] Signing secret not configured; rejecting delivery")
        return False
    return hmac.compare_digest(compute_signature(raw_body, secret).encode("utf-8"), signature.strip().encode("utf-8"))


# ── notifications ────────────────────────────────────────────────────────────

def _notify_donation(db: Session, donation: Donation, mailer) -> None:
    donor = db.query(User).filter(User.id == donation.user_id).first() if donation.user_id else None
    if donor is None:
        logger.warning(f"[Webhook] Donation {donation.order_id} has no donor account; skipping email")
        return

    sent = mailer.send_donation_confirmation_email(
        to=donor.email,
        name=donor.name,
        amount=donation.amount,
        currency=donation.currency,
        donation_type=donation.type.value,
        payment_id=donation.payment_id,
        cow_id=donation.cow_id,
    )
    if not sent:
        return

    try:
        db.query(Donation).filter(Donation.id == donation.id).update(
            {Donation.email_sent: True}, synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[Webhook] Could not flag email_sent on donation {donation.order_id}: {exc}")


def _notify_puja(db: Session, order: CowPujaOrder, mailer) -> None:
    mailer.send_puja_payment_received_email(
        to=order.customer_email,
        name=order.customer_name,
        order_id=order.order_id,
        amount=order.amount,
        currency=order.currency,
    )


@dataclass(frozen=True)
class ReconcileTarget:
    """What a webhook endpoint reconciles against"""
    name: str
    model: type
    secret: Callable[[], str]
    notify: Callable = field(repr=False)


DONATION_TARGET = ReconcileTarget(
    name="Donation",
    model=Donation,
    secret=lambda: settings.RAZORPAY_WEBHOOK_SECRET,
    notify=_notify_donation,
)

PUJA_TARGET = ReconcileTarget(
    name="CowPuja",
    model=CowPujaOrder,
    secret=lambda: settings.RAZORPAY_COW_PUJA_WEBHOOK_SECRET,
    notify=_notify_puja,
)


# ── handler ──────────────────────────────────────────────────────────────────

def _extract_ids(event: dict):
    entity = (((event.get("payload") or {}).get("payment") or {}).get("entity")) or {}
    if not isinstance(entity, dict):
        return None, None
    return entity.get("order_id"), entity.get("id")


def handle(db: Session, raw_body: bytes, signature: Optional[str], target: ReconcileTarget, mailer) -> WebhookAck:
    tag = f"[Webhook:{target.name}]"

    if not signature:
        logger.warning(f"{tag} Missing signature header")
        return WebhookAck(400, False, "Missing signature header")

    if not raw_body:
        logger.warning(f"{tag} Empty body")
        return WebhookAck(400, False, "Invalid raw body")

    if not verify_signature(raw_body, signature, target.secret()):
        logger.warning(f"{tag} Invalid signature")
        return WebhookAck(400, False, "Invalid signature")

    try:
        event = json.loads(raw_body)
    except ValueError:
        logger.warning(f"{tag} Signed body is not JSON")
        return WebhookAck(400, False, "Invalid payload format")
    if not isinstance(event, dict):
        return WebhookAck(400, False, "Invalid payload format")

    event_type = event.get("event")
    if event_type != CAPTURED_EVENT:
        logger.info(f"{tag} Ignoring event {event_type}")
        return WebhookAck(200, True)

    order_id, payment_id = _extract_ids(event)
    if not order_id or not payment_id:
        logger.warning(f"{tag} Captured event without order/payment id")
        return WebhookAck(400, False, "Missing payment details")

    model = target.model
    existing = db.query(model).filter(model.order_id == order_id).first()
    if existing is None:
        logger.info(f"{tag} Capture for untracked order {order_id}")
        return WebhookAck(200, True)

    result = order_state.transition(
        db,
        model,
        [model.order_id == order_id],
        model.SUCCESS_STATUS,
        event_type="payment_captured",
        by=SYSTEM_ACTOR,
        from_statuses=[model.AWAITING_STATUS],
        values={"payment_id": payment_id},
    )

    if not result.matched:
        db.refresh(existing)
        if existing.status == model.AWAITING_STATUS:
            # lost a race with a concurrent writer that has since rolled back
            logger.warning(f"{tag} Capture for {order_id} matched nothing while still awaiting payment")
        elif existing.payment_id is None:
            # closed by the user before the capture arrived
            logger.warning(
                f"{tag} Capture {payment_id} for {order_id} already {existing.status.value}; "
                f"left unchanged for manual refund"
            )
        else:
            logger.info(f"{tag} Duplicate capture for {order_id} ({existing.status.value})")
        return WebhookAck(200, True)

    logger.info(f"{tag} Order {order_id} captured with payment {payment_id}")

    try:
        target.notify(db, result.record, mailer)
    except Exception as exc:
        logger.error(f"{tag} Notification failed for {order_id}: {exc}", exc_info=True)

    return WebhookAck(200, True)
