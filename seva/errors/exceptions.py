"""Custom exceptions for error handling"""
from typing import Any, Optional

from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """Base exception class for all custom HTTP exceptions.

    ``data`` is rendered into the ``data`` slot of the error envelope.
    """
    data: Any = None

    def __init__(self, detail: str = None, headers: dict = None, data: Any = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=headers
        )
        if data is not None:
            self.data = data


class BadRequestException(BaseHTTPException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class UnauthorizedException(BaseHTTPException):
    """401 Unauthorized"""
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"

    def __init__(self, detail: str = None, data: Any = None):
        super().__init__(
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            data=data,
        )


class ForbiddenException(BaseHTTPException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class NotFoundException(BaseHTTPException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"


class ConflictException(BaseHTTPException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    detail = "Resource already exists"


class ThrottledException(BaseHTTPException):
    """429 Too Many Requests: an OTP is still live, or the IP limiter tripped"""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Please wait before requesting a new code"

    def __init__(self, seconds_left: int, detail: Optional[str] = None):
        self.seconds_left = max(int(seconds_left), 0)
        super().__init__(
            detail=detail or f"Please wait {self.seconds_left} seconds before requesting a new code",
            headers={"Retry-After": str(self.seconds_left)},
            data={"secondsLeft": self.seconds_left},
        )


class SignatureInvalidException(BaseHTTPException):
    """400 Bad Request: webhook or checkout signature did not verify"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid signature"


class PaymentGatewayException(BaseHTTPException):
    """502 Bad Gateway: the payment provider refused or failed"""
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Payment provider error"
