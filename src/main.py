# pyright: reportMissingTypeStubs=false
"""
Clinic Care Backend API

A FastAPI application for running a clinic: doctor work schedules,
notifications, medical record payments and dashboard statistics.

Features:
- Doctor shift scheduling with conflict detection
- In-app and email notifications
- PayOS payment links and webhook reconciliation
- Daily appointment reminder emails
- PostgreSQL database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import dashboard, doctor_schedule, notifications, payments, schedules
from core.constants import CORS_ORIGINS
from services.reminder_service import start_reminder_scheduler, stop_reminder_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("Clinic Care API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Clinic Care Backend API")

    # Database sessions are created fresh for each scheduler run
    try:
        await start_reminder_scheduler()
        logger.info("Appointment reminder scheduler started")
    except Exception as e:
        logger.exception(f"Failed to start reminder scheduler: {e}")

    yield

    try:
        await stop_reminder_scheduler()
        logger.info("Appointment reminder scheduler stopped")
    except Exception as e:
        logger.exception(f"Error stopping reminder scheduler: {e}")

    logger.info("Shutting down Clinic Care Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Care Backend",
    description="Scheduling, notifications, payments and reporting for a medical clinic",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    schedules.router,
    prefix="/api/manage-schedule",
    tags=["manage-schedule"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    doctor_schedule.router,
    prefix="/api/doctor-schedule",
    tags=["doctor-schedule"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Doctor not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    notifications.router,
    prefix="/api/notifications",
    tags=["notifications"],
    responses={
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    payments.router,
    prefix="/api/payments",
    tags=["payments"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal server error"},
        502: {"description": "Payment gateway error"},
    },
)
app.include_router(
    dashboard.router,
    prefix="/api/dashboard",
    tags=["dashboard"],
    responses={
        400: {"description": "Bad request"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Care Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )


@app.exception_handler(httpx.HTTPStatusError)
async def http_status_error_handler(request: Request, exc: httpx.HTTPStatusError):
    """Handle HTTP status errors from external services."""
    logger.exception(f"External service error: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": "External service error", "type": "external_service_error"},
    )
