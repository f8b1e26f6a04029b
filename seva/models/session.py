"""Login session audit records"""
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seva.db.base import Base


class AccountKind(str, Enum):
    USER = "User"
    ADMIN = "Admin"


class LoginSession(Base):
    """
    One row per successful authentication.

    Rows are audit data only: bearer tokens are validated statelessly and
    nothing here is consulted when a request is authenticated.
    """
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_kind = Column(
        SQLEnum(AccountKind, name="accountkind", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=AccountKind.USER,
    )
    token = Column(Text, nullable=False)
    ip_address = Column(String(100), nullable=False, default="Unknown")
    location = Column(String(255), nullable=False, default="Unknown")
    user_agent = Column(String(512), nullable=False, default="Unknown")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<LoginSession(id={self.id}, user_id={self.user_id}, ip='{self.ip_address}')>"
