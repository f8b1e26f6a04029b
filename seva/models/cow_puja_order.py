"""Cow-puja (ritual booking) order model."""
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, JSON, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seva.db.base import Base


class PujaOrderStatus(str, Enum):
    AWAITING_PAYMENT = "AwaitingPayment"
    SUCCESSFUL_PAYMENT = "SuccessfulPayment"
    DATE_CONFIRMED = "DateConfirmed"
    COMPLETED = "Completed"
    FAILED = "Failed"
    ABORTED = "Aborted"
    CANCELLED = "Cancelled"


class CowPujaOrder(Base):
    """
    A paid ritual booking.

    Lifecycle
    ---------
    AwaitingPayment -> SuccessfulPayment -> DateConfirmed -> Completed.
    Failed / Aborted are user actions before capture; Cancelled is reachable
    until the ritual is completed.
    """
    __tablename__ = "cow_puja_orders"

    TRANSITIONS = {
        PujaOrderStatus.AWAITING_PAYMENT: {
            PujaOrderStatus.SUCCESSFUL_PAYMENT,
            PujaOrderStatus.FAILED,
            PujaOrderStatus.ABORTED,
            PujaOrderStatus.CANCELLED,
        },
        PujaOrderStatus.SUCCESSFUL_PAYMENT: {PujaOrderStatus.DATE_CONFIRMED, PujaOrderStatus.CANCELLED},
        PujaOrderStatus.DATE_CONFIRMED: {PujaOrderStatus.COMPLETED, PujaOrderStatus.CANCELLED},
        PujaOrderStatus.COMPLETED: set(),
        PujaOrderStatus.FAILED: set(),
        PujaOrderStatus.ABORTED: set(),
        PujaOrderStatus.CANCELLED: set(),
    }
    AWAITING_STATUS = PujaOrderStatus.AWAITING_PAYMENT
    SUCCESS_STATUS = PujaOrderStatus.SUCCESSFUL_PAYMENT

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    order_id = Column(String(100), unique=True, nullable=False, index=True)
    payment_id = Column(String(100), nullable=True, index=True)

    status = Column(
        SQLEnum(PujaOrderStatus, name="pujaorderstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=PujaOrderStatus.AWAITING_PAYMENT,
        index=True,
    )

    amount = Column(Integer, nullable=False, default=2100)
    currency = Column(String(10), nullable=False, default="INR")

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(20), nullable=False)   # +91XXXXXXXXXX

    # gotra, sankalpam, preferredDate, namesToInclude, additionalNotes
    puja_details = Column(JSON, nullable=False)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    timeline = relationship(
        "OrderEvent",
        primaryjoin="foreign(OrderEvent.provider_order_id) == CowPujaOrder.order_id",
        order_by="[OrderEvent.at, OrderEvent.id]",
        viewonly=True,
    )

    def __repr__(self):
        return f"<CowPujaOrder(id={self.id}, order={self.order_id}, status={self.status})>"
