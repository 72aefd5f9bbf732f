"""
GET /status — server health plus broadcast channel state.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import get_session
from app.network.session import NetworkSession

router = APIRouter()
logger = logging.getLogger(__name__)


class StatusResponse(BaseModel):
    status: str
    network: dict


@router.get("/status", response_model=StatusResponse)
def get_status(session: NetworkSession = Depends(get_session)) -> StatusResponse:
    """
    Returns the overall API status and the state of the network session.

    - **status**: always ``"ok"`` while the server is running.
    - **network.locks**: ``"active"`` when both holds are held, else ``"idle"``.
    - **network.channel**: ``"open"`` or ``"closed"``.
    - **network.local_port**: ephemeral port of the broadcast socket, or ``null``.
    - **network.in_flight**: sends dispatched but not yet finished.
    - **network.sent_ok** / **network.sent_failed**: counters since startup.
    """
    return StatusResponse(status="ok", network=session.snapshot())
