"""Donation history for the logged-in user"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from seva.core.dependencies import get_db
from seva.errors.response_codes import paginated, success_response
from seva.middleware.auth import get_current_user
from seva.models.donation import DonationType
from seva.models.user import User
from seva.services import payment_service

router = APIRouter()


@router.get("/my")
async def my_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, description="Pending | Successful | Failed"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    ## Donation history (paginated)

    Newest first. `data = { items: [...], pagination: { page, limit, total, totalPages } }`
    """
    items, total = payment_service.get_donation_history(db, current_user.id, page, limit, status)
    return success_response(
        paginated([i.to_wire() for i in items], page, limit, total),
        "Donations retrieved",
    )


@router.get("/my/cows")
async def my_cow_donations(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    items = payment_service.get_donations_by_type(db, current_user.id, DonationType.COW)
    return success_response([i.to_wire() for i in items], "Cow donations retrieved")


@router.get("/my/ashram")
async def my_ashram_donations(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    items = payment_service.get_donations_by_type(db, current_user.id, DonationType.ASHRAM)
    return success_response([i.to_wire() for i in items], "Ashram donations retrieved")
