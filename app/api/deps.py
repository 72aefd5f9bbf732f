"""
Shared FastAPI dependencies.
"""

import logging
import secrets

from fastapi import Header, HTTPException, Request

from app.config import settings
from app.network.session import NetworkSession

logger = logging.getLogger(__name__)


def get_session(request: Request) -> NetworkSession:
    """Return the ``NetworkSession`` created by the application lifespan."""
    session = getattr(request.app.state, "network", None)
    if session is None:
        logger.error("Network session requested outside the application lifespan")
        raise HTTPException(
            status_code=503,
            detail={"status": "error", "message": "Network session not running"},
        )
    return session


def require_token(
    x_api_token: str | None = Header(default=None, alias="x-api-token"),
) -> None:
    """
    FastAPI dependency that validates the ``x-api-token`` request header
    against ``settings.api_token``.

    Does nothing when no token is configured.
    Raises **401** if a token is configured and the header is missing or wrong.
    """
    if not settings.api_token:
        return

    if not x_api_token:
        logger.warning("Missing x-api-token header")
        raise HTTPException(
            status_code=401,
            detail={"status": "unauthorized", "message": "Invalid or missing token"},
        )

    if not secrets.compare_digest(x_api_token, settings.api_token):
        logger.warning("Invalid x-api-token")
        raise HTTPException(
            status_code=401,
            detail={"status": "unauthorized", "message": "Invalid or missing token"},
        )
