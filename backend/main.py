"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import daily_update, finances, wealth_summary
from integrations.exceptions import (
    AggregatorError,
    AuthenticationFailed,
    InvalidCountryCode,
    RateLimitExceeded,
)
from logging_config import setup_logging
from services.exceptions import ServiceError

setup_logging()
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Net Worth Dashboard",
    description="Bank account synchronization and net-worth tracking",
    version="0.1.0",
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(ServiceError)
def handle_service_error(request: Request, exc: ServiceError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(InvalidCountryCode)
def handle_invalid_country(request: Request, exc: InvalidCountryCode):
    return _error(400, str(exc))


@app.exception_handler(AuthenticationFailed)
def handle_aggregator_auth(request: Request, exc: AuthenticationFailed):
    logger.error("Aggregator authentication failed on %s: %s", request.url.path, exc)
    return _error(500, "aggregator authentication failed")


@app.exception_handler(RateLimitExceeded)
def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    return _error(429, "Rate limit exceeded. Try again tomorrow.")


@app.exception_handler(AggregatorError)
def handle_aggregator_error(request: Request, exc: AggregatorError):
    logger.error(
        "Aggregator error on %s (status=%s): %s", request.url.path, exc.status_code, exc
    )
    return _error(500, f"{exc.provider_name} request failed")


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {field} {first.get('msg', '')}".strip()
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return _error(500, "Internal server error")


# Include API routers
app.include_router(finances.router)
app.include_router(daily_update.router)
app.include_router(wealth_summary.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
