"""Cow-puja booking endpoints"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from seva.core.dependencies import get_db, get_mailer, get_payment_client
from seva.errors.response_codes import paginated, success_response
from seva.middleware.auth import get_current_user
from seva.models.user import User
from seva.schemas.puja_schemas import CreatePujaOrderRequest, PujaOrderResponse, VerifyCheckoutRequest
from seva.services import puja_service, webhook_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/orders")
async def create_order(
    body: CreatePujaOrderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client=Depends(get_payment_client),
):
    """
    ## Book a Cow Puja

    **Role:** Authenticated.

    ### Body
    ```json
    {
      "customer": { "name": "...", "email": "...", "phone": "+91XXXXXXXXXX" },
      "pujaDetails": {
        "gotra": "...", "sankalpam": "...",
        "preferredDate": "2030-01-01T10:00:00Z",
        "namesToInclude": "...", "additionalNotes": "..."
      },
      "amount": 2100,
      "currency": "INR"
    }
    ```
    `preferredDate` is optional but must be at least 72 hours ahead.
    Name and email are taken from the account.

    ### Response
    `data = { "orderId", "keyId", "amount", "currency" }`
    """
    order = await puja_service.create_order(db, current_user, body, client)
    return success_response(order.to_wire(), "Cow Puja order created successfully.")


@router.post("/verify")
async def verify_payment(
    body: VerifyCheckoutRequest,
    current_user: User = Depends(get_current_user),
    client=Depends(get_payment_client),
):
    """Checkout signature check. Never changes the order; the webhook does that."""
    puja_service.verify_checkout(body, client)
    return success_response({"verified": True}, "Verified")


@router.post("/mark-failed")
async def mark_failed(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = puja_service.mark_failed(db, current_user)
    return success_response(PujaOrderResponse.model_validate(order).to_wire(), "Marked as failed")


@router.post("/orders/{order_id}/abort")
async def abort_order(order_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    ## Abort an unpaid order

    Only `AwaitingPayment` orders owned by the caller move to `Aborted`;
    otherwise 404 "No awaiting-payment order found or already finalized".
    """
    order = puja_service.abort(db, current_user, order_id)
    return success_response(PujaOrderResponse.model_validate(order).to_wire(), "Order aborted")


@router.get("/my/orders")
async def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = puja_service.list_my_orders(db, current_user, page, limit, status)
    return success_response(paginated([i.to_wire() for i in items], page, limit, total), "OK")


@router.get("/my/orders/{order_pk}")
async def my_order(order_pk: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = puja_service.get_my_order(db, current_user, order_pk)
    return success_response(order.to_wire(), "OK")


@router.post("/webhook")
async def cow_puja_webhook(request: Request, db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    """
    ## Razorpay webhook (Cow Puja)

    Signed with `RAZORPAY_COW_PUJA_WEBHOOK_SECRET`. Returns `{success, message?}`.
    """
    raw_body = await request.body()
    ack = webhook_service.handle(
        db,
        raw_body,
        request.headers.get(webhook_service.SIGNATURE_HEADER),
        webhook_service.PUJA_TARGET,
        mailer,
    )
    return JSONResponse(status_code=ack.status_code, content=ack.body)
