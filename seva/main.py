"""Main FastAPI application"""
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from seva.api.v1.api import api_router
from seva.core.config import settings
from seva.db.init_db import init_db
from seva.errors.handlers import (
    general_exception_handler,
    http_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from seva.middleware.rate_limit import RateLimiter
from seva.services.payment_service import RazorpayClient
from seva.utils.email import SMTPMailer
from seva.utils.logger import setup_file_logging

setup_file_logging(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def create_app(init_database: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Cow sponsorship, donations and Cow Puja booking with OTP-gated accounts",
        version=settings.PROJECT_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=f"{settings.API_V1_STR}/openapi.json"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CLIENT_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    app.state.login_limiter = RateLimiter(
        limit=settings.LOGIN_RATE_LIMIT_MAX,
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )

    @app.on_event("startup")
    async def startup_event():
        """Build collaborator handles and initialize the database"""
        app.state.mailer = SMTPMailer.from_settings(settings)
        app.state.payment_client = RazorpayClient.from_settings(settings)
        if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
            logger.warning("Razorpay credentials missing - order creation will fail")

        if not init_database:
            return
        try:
            init_db()
            logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialized successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialization failed, but API is running")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close collaborator handles"""
        client = getattr(app.state, "payment_client", None)
        if client is not None:
            await client.aclose()
        logger.warning(f"{settings.PROJECT_NAME} SHUTDOWN")

    @app.get("/", include_in_schema=False)
    async def root():
        return {"success": True, "data": None, "message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()
