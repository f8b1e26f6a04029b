"""FastAPI dependencies"""
from typing import Generator

from fastapi import Request

from seva.db.session import SessionLocal


def get_db() -> Generator:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_mailer(request: Request):
    """SMTP handle built at startup"""
    return request.app.state.mailer


def get_payment_client(request: Request):
    """Razorpay handle built at startup"""
    return request.app.state.payment_client
