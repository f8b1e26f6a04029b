"""Timeline entries shared by donations and cow-puja orders"""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from seva.db.base import Base

SYSTEM_ACTOR = "system"


def user_actor(user_id: int) -> str:
    return f"user:{user_id}"


class OrderEvent(Base):
    """
    An append-only timeline entry keyed by the provider order id.

    type: created | payment_captured | failed | aborted | date_confirmed | completed | cancelled
    by:   system | user:<id> | admin:<id>
    """
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_order_id = Column(String(100), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    note = Column(String(500), nullable=True)
    by = Column(String(100), nullable=False, default=SYSTEM_ACTOR)
    at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<OrderEvent(order={self.provider_order_id}, type={self.type}, by={self.by})>"
