"""
POST /api/network/acquire   — take both network holds and bind the broadcast socket.
POST /api/network/release   — close the socket and give the holds back.
POST /api/network/broadcast — send one datagram through the open channel.

Authentication
--------------
When ``API_TOKEN`` is configured, every endpoint requires a matching
``x-api-token`` header.

Errors
------
Failures are returned as ``{"detail": {"status": "error", "code": ..., "message": ...}}``
with one of these codes:

- ``ACQUIRE_FAILED`` (503): a hold was denied or the socket could not be bound
- ``RELEASE_FAILED`` (500): unexpected failure while tearing down
- ``INVALID_ARGS``   (400): data/address/port missing or out of range
- ``NO_SOCKET``      (409): ``acquire`` was never called or ``release`` already was
- ``SEND_FAILED``    (502): address resolution or transmission failed

Usage
-----
    curl -X POST localhost:8000/api/network/acquire
    curl -X POST localhost:8000/api/network/broadcast \\
         -H 'content-type: application/json' \\
         -d '{"data": [1, 2, 3], "address": "255.255.255.255", "port": 9000}'
    curl -X POST localhost:8000/api/network/release
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, StrictInt, StrictStr

from app.api.deps import get_session, require_token
from app.network.errors import (
    ACQUIRE_FAILED,
    INVALID_ARGS,
    NO_SOCKET,
    RELEASE_FAILED,
    SEND_FAILED,
    NetworkError,
)
from app.network.session import NetworkSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/network", dependencies=[Depends(require_token)])

_STATUS_BY_CODE: dict[str, int] = {
    ACQUIRE_FAILED: 503,
    RELEASE_FAILED: 500,
    INVALID_ARGS: 400,
    NO_SOCKET: 409,
    SEND_FAILED: 502,
}


# ── Pydantic models ───────────────────────────────────────────────────────────


class AcquireResponse(BaseModel):
    status: str
    local_port: int


class ReleaseResponse(BaseModel):
    status: str


class BroadcastRequest(BaseModel):
    data: list[Annotated[StrictInt, Field(ge=0, le=255)]] | None = None
    address: StrictStr | None = None
    port: StrictInt | None = None


class BroadcastResponse(BaseModel):
    status: str
    bytes_sent: int


# ── Internal helpers ──────────────────────────────────────────────────────────


def error_response(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE[code],
        detail={"status": "error", "code": code, "message": message},
    )


# ── Routes ────────────────────────────────────────────────────────────────────


@router.post("/acquire", response_model=AcquireResponse)
def acquire(session: NetworkSession = Depends(get_session)) -> AcquireResponse:
    """
    Acquire the receive and transmit holds, then bind the broadcast socket.

    Idempotent: calling it again while acquired returns the same local port.
    """
    try:
        local_port = session.acquire()
    except NetworkError as exc:
        logger.warning("Acquire failed: %s", exc.message)
        raise error_response(ACQUIRE_FAILED, exc.message)
    except Exception as exc:
        logger.error("Unexpected error during acquire: %s", exc, exc_info=True)
        raise error_response(ACQUIRE_FAILED, str(exc))

    return AcquireResponse(status="ok", local_port=local_port)


@router.post("/release", response_model=ReleaseResponse)
def release(session: NetworkSession = Depends(get_session)) -> ReleaseResponse:
    """Close the socket and release both holds.  Safe to call repeatedly."""
    try:
        session.release()
    except Exception as exc:
        logger.error("Unexpected error during release: %s", exc, exc_info=True)
        raise error_response(RELEASE_FAILED, str(exc))

    return ReleaseResponse(status="ok")


@router.post("/broadcast", response_model=BroadcastResponse)
async def send_broadcast(
    body: BroadcastRequest,
    session: NetworkSession = Depends(get_session),
) -> BroadcastResponse:
    """
    Send ``data`` (a list of byte values) to ``address``:``port``.

    Returns the number of bytes handed to the network.  Delivery is not
    acknowledged; the datagram may still be dropped on the way.
    """
    if body.data is None or body.address is None or body.port is None:
        raise error_response(INVALID_ARGS, "data, address and port are required")

    try:
        bytes_sent = await session.send_broadcast(
            bytes(body.data), body.address, body.port
        )
    except NetworkError as exc:
        logger.warning(
            "Broadcast to %s:%s failed (%s): %s",
            body.address,
            body.port,
            exc.code,
            exc.message,
        )
        raise error_response(exc.code, exc.message)
    except Exception as exc:
        logger.error("Unexpected error during broadcast: %s", exc, exc_info=True)
        raise error_response(SEND_FAILED, str(exc))

    return BroadcastResponse(status="ok", bytes_sent=bytes_sent)
