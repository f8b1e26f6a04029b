"""Donation database model."""
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seva.db.base import Base


class DonationStatus(str, Enum):
    PENDING = "Pending"
    SUCCESSFUL = "Successful"
    FAILED = "Failed"


class DonationType(str, Enum):
    COW = "cow"
    ASHRAM = "ashram"


class Donation(Base):
    """One-time donation backed by a Razorpay order."""
    __tablename__ = "donations"

    TRANSITIONS = {
        DonationStatus.PENDING: {DonationStatus.SUCCESSFUL, DonationStatus.FAILED},
        DonationStatus.SUCCESSFUL: set(),
        DonationStatus.FAILED: set(),
    }
    AWAITING_STATUS = DonationStatus.PENDING
    SUCCESS_STATUS = DonationStatus.SUCCESSFUL

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    cow_id = Column(String(64), nullable=True, index=True)
    type = Column(
        SQLEnum(DonationType, name="donationtype", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=DonationType.COW,
    )

    amount = Column(Integer, nullable=False)   # whole rupees
    currency = Column(String(10), nullable=False, default="INR")

    status = Column(
        SQLEnum(DonationStatus, name="donationstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=DonationStatus.PENDING,
        index=True,
    )

    order_id = Column(String(100), unique=True, nullable=False, index=True)   # Razorpay order id
    payment_id = Column(String(100), nullable=True, index=True)              # Razorpay payment id
    email_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    timeline = relationship(
        "OrderEvent",
        primaryjoin="foreign(OrderEvent.provider_order_id) == Donation.order_id",
        order_by="[OrderEvent.at, OrderEvent.id]",
        viewonly=True,
    )

    def __repr__(self):
        return (
            f"<Donation(id={self.id}, user_id={self.user_id}, "
            f"order={self.order_id}, status={self.status})>"
        )
