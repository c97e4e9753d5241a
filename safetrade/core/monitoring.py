"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for tracing the
SafeTrade server, including:
- API endpoint tracing
- Database operation monitoring on the async engine
- Outbound calls to the auth service
- Fraud screening and verification events
- Error tracking

When Logfire export is disabled the SDK is still configured locally, so the
event helpers below can be called unconditionally.
"""

from typing import Any, List, Optional

import httpx
import logfire
from fastapi import FastAPI
from logfire import SamplingOptions
from sqlalchemy.ext.asyncio import AsyncEngine

from safetrade import __version__
from safetrade.core.logging_config import get_logger
from safetrade.server.core.config import MonitoringConfig, settings

logger = get_logger(__name__)


def initialize_logfire(
    app: Optional[FastAPI] = None,
    engine: Optional[AsyncEngine] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    config: Optional[MonitoringConfig] = None,
) -> bool:
    """
    Configure Logfire and instrument the server's moving parts.

    Args:
        app: FastAPI application to trace endpoint calls for
        engine: Async engine whose queries are traced
        http_client: httpx client used for auth service calls
        config: Monitoring settings; read from the environment when omitted

    Returns:
        True when traces are exported to Logfire, False when it runs locally only.
    """
    config = config or settings.monitoring
    environment = config.environment or settings.environment

    if not config.enabled or not config.token:
        if config.enabled:
            logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set. Traces will not be exported.")
        else:
            logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        logfire.configure(
            send_to_logfire=False,
            console=False,
            service_name=config.service_name,
            environment=environment,
        )
        return False

    logfire.configure(
        token=config.token,
        service_name=config.service_name,
        service_version=__version__,
        environment=environment,
        sampling=SamplingOptions(head=config.sample_rate),
    )

    if config.trace_sqlalchemy and engine is not None:
        try:
            logfire.instrument_sqlalchemy(engine=engine.sync_engine)
            logger.info("Logfire: SQLAlchemy instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument SQLAlchemy: {e}")

    if config.trace_httpx:
        try:
            logfire.instrument_httpx(http_client)
            logger.info("Logfire: HTTPX instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument HTTPX: {e}")

    if config.trace_fastapi and app is not None:
        try:
            logfire.instrument_fastapi(app)
            logger.info("Logfire: FastAPI instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument FastAPI: {e}")

    logger.info(f"Logfire monitoring initialized: environment={environment}, service={config.service_name}")
    return True


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    logfire.info(
        "API request completed",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )


def log_fraud_screening(
    conversation_id: Optional[str], score: float, risk_level: str, flags: List[str], blocked: bool
) -> None:
    """Record the outcome of screening a message before it is stored."""
    logfire.info(
        "Message fraud screening",
        conversation_id=conversation_id,
        score=score,
        risk_level=risk_level,
        flags=flags,
        blocked=blocked,
    )


def log_verification(kind: str, verified: bool, **attributes: Any) -> None:
    """Record a VIN, phone, identity or liveness verification outcome."""
    logfire.info("Verification {kind} completed", kind=kind, verified=verified, **attributes)


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    logfire.error(
        "{error_type}: {error_message}",
        error_type=error_type,
        error_message=error_message,
        **(context or {}),
    )
