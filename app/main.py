# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the LocationHub API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import settings
from app.dependencies import get_geocoding_client, get_object_store
from app.exceptions import (
    LocationHubException,
    locationhub_exception_handler,
    validation_exception_handler,
)
from app.routers import health, locations

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: provision object store buckets (failures are non-fatal)
    - Shutdown: release the geocoder's HTTP connections
    """
    logger.info(f"Starting LocationHub API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    store = get_object_store()
    provisioned = await asyncio.to_thread(store.initialize)
    logger.info(f"Provisioned buckets: {sorted(provisioned) or 'none'}")

    yield

    logger.info("Shutting down LocationHub API")
    get_geocoding_client().close()


# Create FastAPI application
app = FastAPI(
    title="LocationHub API",
    description="""
## Locations with geocoded addresses and images

Each location combines a database record, coordinates resolved from its
address, and an optional image kept in an S3-compatible object store.

### Consistency

- Create/update: geocode -> upload image -> write record. If the write fails,
  the uploaded image is deleted.
- Update/delete: write record -> delete replaced image. Cleanup failures are
  logged; a periodic sweep reclaims leftovers.

### Quick Start

```bash
curl -X POST http://localhost:8000/api/v1/locations \\
  -H "Authorization: Bearer $TOKEN" \\
  -F "name=Eiffel Tower" \\
  -F "address=Champ de Mars, 5 Avenue Anatole France, 75007 Paris" \\
  -F "image=@tower.jpg;type=image/jpeg"
```
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Locations",
            "description": "Create, read, update and delete locations",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(LocationHubException)
async def handle_locationhub_exception(request: Request, exc: LocationHubException):
    """Handle tagged LocationHub errors."""
    return await locationhub_exception_handler(request, exc)


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    """Handle model validation errors raised inside handlers."""
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

app.include_router(
    locations.router,
    prefix="/api/v1/locations",
    tags=["Locations"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "LocationHub API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
