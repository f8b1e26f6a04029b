"""Database models"""
from seva.models.user import User, OTPIntent
from seva.models.session import LoginSession, AccountKind
from seva.models.order_event import OrderEvent
from seva.models.donation import Donation, DonationStatus, DonationType
from seva.models.cow_puja_order import CowPujaOrder, PujaOrderStatus

__all__ = [
    "User", "OTPIntent", "LoginSession", "AccountKind", "OrderEvent",
    "Donation", "DonationStatus", "DonationType",
    "CowPujaOrder", "PujaOrderStatus",
]
