# backend/gold_ledger/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application (tables are created on startup)
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run:
    uvicorn gold_ledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session

from gold_ledger import __version__
from gold_ledger.config import settings
from gold_ledger.database import check_database_health, engine, get_db
from gold_ledger.middleware import (
    RATE_LIMIT_HEALTH,
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from gold_ledger.models import Base
from gold_ledger.routers import (
    fund_config_router,
    prices_router,
    summary_router,
    transactions_router,
)
from gold_ledger.schemas.errors import ErrorDetail, ValidationErrorDetail
from gold_ledger.services.exceptions import (
    ImportValidationError,
    InsufficientHoldingsError,
    MarketDataError,
    NotFoundError,
    PriceFetchError,
    ServiceError,
    ValidationError,
)
from gold_ledger.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} {__version__} started ({settings.environment})")
    yield


app = FastAPI(
    title=settings.app_name,
    description="Gold position and P&L ledger across bank accounts",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; these handlers map them
# to status codes. The most specific registered class wins.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle invalid ledger inputs: unknown account, non-positive quantity or price (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(InsufficientHoldingsError)
async def insufficient_holdings_handler(
    request: Request, exc: InsufficientHoldingsError
) -> JSONResponse:
    """Handle oversells (400). The log is left unchanged."""
    logger.warning(f"Insufficient holdings: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InsufficientHoldingsError",
            message=str(exc),
            details={
                "account": exc.account,
                "requested": str(exc.requested),
                "available": str(exc.available),
            },
        ).model_dump(),
    )


@app.exception_handler(ImportValidationError)
async def import_validation_handler(
    request: Request, exc: ImportValidationError
) -> JSONResponse:
    """Handle rejected import batches (400), one entry per invalid row."""
    logger.warning(f"Import rejected: {len(exc.errors)} invalid row(s)")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ImportValidationError",
            message=str(exc),
            details={"errors": exc.errors},
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing resources (404)."""
    logger.warning(f"Not found: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            },
        ).model_dump(),
    )


@app.exception_handler(PriceFetchError)
async def price_fetch_error_handler(request: Request, exc: PriceFetchError) -> JSONResponse:
    """Handle a failed quote fetch (502). The stored quote is unchanged."""
    logger.error(f"Price fetch failed: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="PriceFetchError",
            message=str(exc),
            details={"account": exc.account, "provider": exc.provider, "reason": exc.reason},
        ).model_dump(),
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle generic quote provider errors (502)."""
    logger.error(f"Market data error: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="MarketDataError",
            message=str(exc),
            details={"provider": exc.provider} if exc.provider else None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to ErrorDetail.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_types.get(exc.status_code, "HTTPError"),
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert the default 422 body to ValidationErrorDetail."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(details=errors).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(transactions_router)  # /transactions/*
app.include_router(prices_router)  # /prices/*
app.include_router(fund_config_router)  # /config/*
app.include_router(summary_router)  # /summary/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Health of the database (critical).

    Quote providers are not probed: a fetch is an outbound call to a third
    party and failures there are already reported per request.

    **Response Status Codes:**
    - 200: Database reachable
    - 503: Database unreachable
    """
    database = check_database_health()
    response_data = {
        "status": database["status"],
        "checks": {"database": {**database, "critical": True}},
    }
    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=response_data)
    return response_data


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Liveness probe: succeeds whenever the process is serving requests."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """Readiness probe: 503 until the database answers."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": str(e)},
        )
