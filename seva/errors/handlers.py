"""Error handlers for the application"""
import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from seva.errors.response_codes import error_response

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Render raised HTTP exceptions as the standard envelope
    """
    data = getattr(exc, "data", None)
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    return error_response(
        message=str(exc.detail),
        status_code=exc.status_code,
        data=data,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors
    """
    errors = []
    for error in exc.errors():
        loc = [str(x) for x in error["loc"]]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        errors.append({
            "field": ".".join(loc) or "body",
            "message": error["msg"],
        })

    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return error_response(
        message="Validation error",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        errors=errors,
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """
    Handle SQLAlchemy database errors
    """
    logger.error(f"Database error on {request.url.path}: {str(exc)}", exc_info=True)

    return error_response(
        message="An internal database error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle general exceptions
    """
    logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)

    return error_response(
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
