"""Error handling module"""
from seva.errors.exceptions import (
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    ThrottledException,
    SignatureInvalidException,
    PaymentGatewayException,
)
from seva.errors.response_codes import (
    success_response,
    error_response,
    paginated,
)

__all__ = [
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "ThrottledException",
    "SignatureInvalidException",
    "PaymentGatewayException",
    "success_response",
    "error_response",
    "paginated",
]
