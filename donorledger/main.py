"""
Donation Ledger FastAPI application - main entry point.

The ledger tracks the money side of a donation plugin:

- Donors, campaigns, transactions and subscriptions with uniform storage
- Donor and campaign running totals driven by transaction status changes
- Processor fee recovery and tip-fee absorption
- Two-phase payment confirmation against an external gateway

Public endpoints serve the donation form; admin endpoints require a bearer
token carrying the manage capability.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from donorledger import __version__
from donorledger.core.config import settings
from donorledger.core.exceptions import LedgerError
from donorledger.db.base import init_db
from donorledger.schemas.common import HealthResponse
from donorledger.services.events import EventBus
from donorledger.api.v1 import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup: Initialize database
    # Note: In production, use Alembic migrations instead
    await init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    description="""
Donation ledger API.

## Public

- Payment intents and payment config for the donation form
- Fee and tip quotes
- Donation confirmation

## Admin

- Campaigns, transactions, donors
- Plugin settings
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# Shared by every request; stores emit their lifecycle events here.
app.state.events = EventBus()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total", "X-TotalPages"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 API ENDPOINTS
# ============================================================================

# Public donation endpoints and admin ledger endpoints - /api/v1/*
app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX,
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Render ledger errors as {code, message}."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "donorledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
