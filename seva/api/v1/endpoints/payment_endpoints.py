"""Payment API endpoints: Razorpay donations."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from seva.core.dependencies import get_db, get_mailer, get_payment_client
from seva.errors.response_codes import success_response
from seva.middleware.auth import get_current_user
from seva.models.user import User
from seva.schemas.payment_schemas import DonateRequest, DonationResponse, MarkDonationFailedRequest
from seva.services import payment_service, webhook_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/donate")
async def donate(
    body: DonateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client=Depends(get_payment_client),
):
    """
    ## Open a one-time donation

    **Role:** Authenticated.

    Creates a Razorpay order (amount in rupees, auto-capture) and stores a
    `Pending` donation. The donation becomes `Successful` only when the
    provider's `payment.captured` webhook arrives.

    ### Required fields (JSON body)
    | Field  | Type    | Description                       |
    |--------|---------|-----------------------------------|
    | amount | integer | Rupees, > 0                       |
    | type   | string  | `cow` (default) or `ashram`       |
    | cowId  | string  | Required when `type` is `cow`     |

    ### Response
    `data = { "orderId", "keyId", "amount", "currency" }` for the checkout widget.

    ### Errors
    - **502** provider unreachable or refused; nothing is stored
    """
    order = await payment_service.create_donation(db, current_user, body, client)
    return success_response(order.to_wire(), "Donation order created successfully.")


@router.post("/mark-failed")
async def mark_failed(
    body: MarkDonationFailedRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    ## Mark the latest pending donation as failed

    Called by the frontend when the user closes the checkout. Only a
    `Pending` donation can move; anything already resolved → 404.
    """
    donation = payment_service.mark_donation_failed(db, current_user, body)
    return success_response(DonationResponse.model_validate(donation).to_wire(), "Marked donation as failed")


@router.post("/webhook")
async def donation_webhook(request: Request, db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    """
    ## Razorpay webhook (donations)

    Signed with `RAZORPAY_WEBHOOK_SECRET` over the raw body
    (`x-razorpay-signature`). Returns `{success, message?}`, not the API envelope.
    """
    raw_body = await request.body()
    ack = webhook_service.handle(
        db,
        raw_body,
        request.headers.get(webhook_service.SIGNATURE_HEADER),
        webhook_service.DONATION_TARGET,
        mailer,
    )
    return JSONResponse(status_code=ack.status_code, content=ack.body)
