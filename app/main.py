"""
LAN broadcast bridge — FastAPI application entry point.

Run with:
    uvicorn app.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import network as network_router
from app.api.routes import status as status_router
from app.config import settings
from app.network.errors import INVALID_ARGS
from app.network.session import NetworkSession

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the network session on startup; tear it down on shutdown."""
    session = NetworkSession.from_settings(settings)
    app.state.network = session
    logger.info("Network session ready (bind host %s)", settings.bind_host)
    try:
        yield
    finally:
        await session.shutdown(settings.drain_timeout)
        app.state.network = None


app = FastAPI(
    title="LAN Broadcast Bridge",
    description="Acquire network holds, send LAN broadcast datagrams, release holds.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed network requests with the ``INVALID_ARGS`` code."""
    if not request.url.path.startswith(network_router.router.prefix):
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "detail": {"status": "error", "code": INVALID_ARGS, "message": message}
        },
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(status_router.router, tags=["health"])
app.include_router(network_router.router, tags=["network"])
