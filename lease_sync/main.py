"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from lease_sync.api.routes import api_router
from lease_sync.domain.errors import ConfigurationError
from lease_sync.logging_config import setup_logging

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Lease Sync",
    description="Incremental tenant to GoHighLevel sync",
    version="0.1.0",
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> PlainTextResponse:
    logger.error(f"Sync misconfigured: {exc}", extra={"missing": exc.missing})
    return PlainTextResponse(
        f"Configuration error: {exc}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}
