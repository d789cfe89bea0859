# backend/helperhive/main.py
"""
HelperHive API application.

Run with:
    uvicorn helperhive.main:app --reload
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import settings
from .core.constants import BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes.v1 import admin, auth, bookings, health, payments, realtime, services, users

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if settings.environment != "production":
        init_db()
    await connect_broadcast()

    yield

    await disconnect_broadcast()
    logger.info(f"{BRAND_NAME} API shut down")


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{BRAND_NAME} API",
        description="Booking, payment and tracking API for the HelperHive home-services marketplace",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(auth.router, prefix="/auth")
    api_v1.include_router(users.router, prefix="/users")
    api_v1.include_router(services.router, prefix="/services")
    api_v1.include_router(bookings.router, prefix="/bookings")
    api_v1.include_router(payments.router, prefix="/payments")
    api_v1.include_router(admin.router, prefix="/admin")
    api_v1.include_router(realtime.router, prefix="/realtime")
    api_v1.include_router(health.router, prefix="/health")
    app.include_router(api_v1)
    return app


app = create_app()
