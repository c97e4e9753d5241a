"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request logging), sets up Logfire tracing, registers the exception handlers
and includes all API routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safetrade import __version__
from safetrade.core.database.session import engine, init_db
from safetrade.core.logging_config import get_logger, setup_logging
from safetrade.core.monitoring import initialize_logfire

from .api import (
    favorites,
    health,
    listings,
    meetings,
    messaging,
    profiles,
    safe_zone,
    safe_zones,
    verification,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import RequestLoggingMiddleware
from .services.auth import close_auth_client, get_auth_client

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Handles startup and shutdown events for the FastAPI application.
    """
    # Startup
    try:
        logger.info(f"Starting up SafeTrade Server ({settings.environment})...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    # Shutdown
    await close_auth_client()
    logger.info("Shutting down SafeTrade Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    SafeTrade Server API

    Backend of the SafeTrade motorcycle marketplace. It serves listings and favorites,
    buyer/seller messaging with fraud screening, safe zone meetings, deal agreements
    and the VIN, phone and identity verification flows.
    """,
    version=__version__,
    openapi_url=f"{constant.API_STR}/openapi.json",
    docs_url=f"{constant.API_STR}/docs",
    redoc_url=f"{constant.API_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(RequestLoggingMiddleware)

setup_exception_handlers(app)

initialize_logfire(app, engine=engine, http_client=get_auth_client().http_client)


app.include_router(health.router, tags=["health"])
app.include_router(profiles.router, prefix=f"{constant.API_STR}/auth")
app.include_router(listings.router, prefix=f"{constant.API_STR}/listings")
app.include_router(favorites.router, prefix=f"{constant.API_STR}/favorites")
app.include_router(messaging.router, prefix=constant.API_STR)
# Meeting routes share the safe zone prefix and must win over /{safe_zone_id}.
app.include_router(meetings.router, prefix=f"{constant.API_STR}/safe-zones")
app.include_router(safe_zones.router, prefix=f"{constant.API_STR}/safe-zones")
app.include_router(safe_zone.router, prefix=f"{constant.API_STR}/safe-zone")
app.include_router(verification.router, prefix=constant.API_STR)
