"""API v1 router aggregation"""
from fastapi import APIRouter

from seva.api.v1.endpoints import (
    cow_puja_endpoints,
    donation_endpoints,
    payment_endpoints,
    user_endpoints,
    verification_endpoints,
)

api_router = APIRouter()

api_router.include_router(user_endpoints.router,         prefix="/user",      tags=["User"])
api_router.include_router(verification_endpoints.router,                      tags=["Verification"])
api_router.include_router(payment_endpoints.router,      prefix="/payments",  tags=["Payments"])
api_router.include_router(donation_endpoints.router,     prefix="/donations", tags=["Donations"])
api_router.include_router(cow_puja_endpoints.router,     prefix="/cow-puja",  tags=["Cow Puja"])
