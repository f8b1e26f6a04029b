"""Cow-puja booking: order creation, user-side failure/abort and history"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from seva.errors.exceptions import BadRequestException, NotFoundException, SignatureInvalidException
from seva.models.cow_puja_order import CowPujaOrder, PujaOrderStatus
from seva.models.order_event import OrderEvent, user_actor
from seva.models.user import User
from seva.schemas.payment_schemas import CheckoutOrderResponse
from seva.schemas.puja_schemas import CreatePujaOrderRequest, PujaOrderResponse, VerifyCheckoutRequest
from seva.services import order_state
from seva.services.payment_service import RazorpayClient

logger = logging.getLogger(__name__)


async def create_order(db: Session, user: User, data: CreatePujaOrderRequest,
                       client: RazorpayClient) -> CheckoutOrderResponse:
    """
    Open a provider order and store an AwaitingPayment booking.

    Name and email come from the account; the body only supplies them for
    accounts that have no name yet.
    """
    order = await client.create_order(data.amount, data.currency)

    details = data.puja_details.model_dump(by_alias=True, mode="json", exclude_none=True)
    puja_order = CowPujaOrder(
        user_id=user.id,
        order_id=order["id"],
        status=PujaOrderStatus.AWAITING_PAYMENT,
        amount=data.amount,
        currency=data.currency,
        customer_name=user.name or data.customer.name,
        customer_email=user.email,
        customer_phone=data.customer.phone,
        puja_details=details,
    )
    try:
        db.add(puja_order)
        db.add(OrderEvent(provider_order_id=order["id"], type="created", by=user_actor(user.id)))
        db.commit()
        db.refresh(puja_order)
    except Exception as exc:
        db.rollback()
        logger.error(f"[CowPuja] DB insert failed for order {order['id']}: {exc}")
        raise

    logger.info(f"[CowPuja] Order {order['id']} created for user {user.id} amount={data.amount}")
    return CheckoutOrderResponse(
        order_id=order["id"],
        key_id=client.key_id,
        amount=puja_order.amount,
        currency=puja_order.currency,
    )


def verify_checkout(data: VerifyCheckoutRequest, client: RazorpayClient) -> None:
    """Signature check only; the webhook moves the order"""
    if not client.verify_checkout_signature(
        data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
    ):
        logger.warning(f"[CowPuja] Checkout signature mismatch for order {data.razorpay_order_id}")
        raise SignatureInvalidException(detail="Signature mismatch")


def mark_failed(db: Session, user: User) -> CowPujaOrder:
    """Newest AwaitingPayment order of the caller -> Failed"""
    candidate = (
        db.query(CowPujaOrder.id)
        .filter(CowPujaOrder.user_id == user.id, CowPujaOrder.status == PujaOrderStatus.AWAITING_PAYMENT)
        .order_by(CowPujaOrder.created_at.desc(), CowPujaOrder.id.desc())
        .first()
    )
    if candidate is not None:
        result = order_state.transition(
            db,
            CowPujaOrder,
            [CowPujaOrder.id == candidate.id],
            PujaOrderStatus.FAILED,
            event_type="failed",
            by=user_actor(user.id),
            from_statuses=[PujaOrderStatus.AWAITING_PAYMENT],
        )
        if result.matched:
            return result.record

    raise NotFoundException(detail="No pending order found")


def abort(db: Session, user: User, order_id: str) -> CowPujaOrder:
    result = order_state.transition(
        db,
        CowPujaOrder,
        [CowPujaOrder.order_id == order_id, CowPujaOrder.user_id == user.id],
        PujaOrderStatus.ABORTED,
        event_type="aborted",
        by=user_actor(user.id),
        from_statuses=[PujaOrderStatus.AWAITING_PAYMENT],
    )
    if not result.matched:
        logger.info(f"[CowPuja] Abort of {order_id} by user {user.id} matched nothing")
        raise NotFoundException(detail="No awaiting-payment order found or already finalized")
    return result.record


def list_my_orders(db: Session, user: User, page: int = 1, limit: int = 20,
                   status_filter: Optional[str] = None) -> Tuple[List[PujaOrderResponse], int]:
    query = (
        db.query(CowPujaOrder)
        .options(selectinload(CowPujaOrder.timeline))
        .filter(CowPujaOrder.user_id == user.id)
    )
    if status_filter:
        try:
            query = query.filter(CowPujaOrder.status == PujaOrderStatus(status_filter))
        except ValueError:
            raise BadRequestException(detail=f"Unknown order status: {status_filter}")
    total = query.count()
    rows = (
        query.order_by(CowPujaOrder.created_at.desc(), CowPujaOrder.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [PujaOrderResponse.model_validate(r) for r in rows], total


def get_my_order(db: Session, user: User, order_pk: int) -> PujaOrderResponse:
    order = (
        db.query(CowPujaOrder)
        .filter(CowPujaOrder.id == order_pk, CowPujaOrder.user_id == user.id)
        .first()
    )
    if not order:
        raise NotFoundException(detail="Not found")
    return PujaOrderResponse.model_validate(order)
