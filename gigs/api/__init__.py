"""REST API module for the marketplace.

This module provides HTTP endpoints for:
- Creating and managing services
- Purchasing services and managing orders
- Payment history
- User profile lookup
- Session verification and health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import settings_conf
from ..database import close as db_close
from ..exceptions import MarketplaceError
from .errors import marketplace_error_handler, request_validation_handler

logger = logging.getLogger(__name__)

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    # The pool is created by __main__ at startup, or lazily on first use

    yield

    logger.info("Shutting down API...")
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="Gigs Marketplace API",
    description="REST API for the Farcaster gigs marketplace",
    version=__version__,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings_conf['cors_origins'],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(MarketplaceError, marketplace_error_handler)

@app.get("/")
async def root():
    return {
        "name": "Gigs Marketplace API",
        "version": __version__,
        "status": "running"
    }

# Import and include all routers
from .auth import router as auth_router
from .listings import router as listings_router
from .orders import router as orders_router
from .orders.purchases import router as purchases_router
from .payments import router as payments_router
from .users import router as users_router
from .system import router as system_router

app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(orders_router)
app.include_router(purchases_router)
app.include_router(payments_router)
app.include_router(users_router)
app.include_router(system_router)
