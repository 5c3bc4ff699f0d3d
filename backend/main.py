"""
uiforge FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.config import settings
from backend.routes import generate as generate_routes
from backend.routes import preview as preview_routes
from backend.services.errors import GenerationError, InvalidRequestError

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Logs the provider configuration on startup. There is no shared state to
    set up or tear down: every request owns its relay and upstream stream.
    """
    logger.info(
        "main: startup environment=%s mock_llm=%s char_delay_ms=%d",
        settings.ENVIRONMENT,
        settings.USE_MOCK_LLM,
        settings.STREAM_CHAR_DELAY_MS,
    )
    yield
    logger.info("main: shutdown")


app = FastAPI(
    title="uiforge",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(generate_routes.router)
app.include_router(preview_routes.router)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Request errors raised before a stream starts."""
    logger.info("main: request rejected kind=%s path=%s", exc.kind.value, request.url.path)
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema errors use the same body shape as every other request error."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    # pydantic prefixes validator messages
    message = message.removeprefix("Value error, ")
    return JSONResponse(InvalidRequestError(message).to_body(), status_code=400)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
