"""
Tests for POST /api/network/acquire, /release and /broadcast.
"""

import socket

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.network.channel import BroadcastChannel
from app.network.lock_manager import ResourceLockManager
from app.network.session import NetworkSession

from conftest import FAKE_LOCAL_PORT, FakeHold, make_fake_socket

_BROADCAST = {"data": [1, 2, 3], "address": "255.255.255.255", "port": 9000}


def _install_session(fake_socket, transmit_deny: bool = False) -> NetworkSession:
    """Replace the lifespan's session with one backed by a fake socket."""
    manager = ResourceLockManager(FakeHold("rx"), FakeHold("tx", deny=transmit_deny))
    channel = BroadcastChannel(manager, socket_factory=lambda host: fake_socket)
    session = NetworkSession(manager, channel, send_timeout=2.0)
    app.state.network = session
    return session


@pytest.fixture
def fake_socket():
    return make_fake_socket()


@pytest.fixture
def client(fake_socket):
    with TestClient(app) as test_client:
        original = app.state.network
        session = _install_session(fake_socket)
        yield test_client
        session.release()
        app.state.network = original


def _error(response) -> dict:
    return response.json()["detail"]


# ── acquire ───────────────────────────────────────────────────────────────────


def test_acquire_returns_200(client):
    response = client.post("/api/network/acquire")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "local_port": FAKE_LOCAL_PORT}


def test_acquire_twice_returns_200(client):
    assert client.post("/api/network/acquire").status_code == 200
    assert client.post("/api/network/acquire").status_code == 200


def test_acquire_denied_returns_503(client, fake_socket):
    session = _install_session(fake_socket, transmit_deny=True)

    response = client.post("/api/network/acquire")

    assert response.status_code == 503
    assert _error(response)["code"] == "ACQUIRE_FAILED"
    assert "tx" in _error(response)["message"]
    assert session.lock_manager.active is False


# ── release ───────────────────────────────────────────────────────────────────


def test_release_without_acquire_returns_200(client):
    response = client.post("/api/network/release")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_release_twice_returns_200(client, fake_socket):
    client.post("/api/network/acquire")

    assert client.post("/api/network/release").status_code == 200
    assert client.post("/api/network/release").status_code == 200
    fake_socket.close.assert_called_once()


# ── broadcast ─────────────────────────────────────────────────────────────────


def test_broadcast_after_acquire_returns_bytes_sent(client, fake_socket):
    """acquire then send [1, 2, 3] to 255.255.255.255:9000 → 3 bytes."""
    client.post("/api/network/acquire")

    response = client.post("/api/network/broadcast", json=_BROADCAST)

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "bytes_sent": 3}
    fake_socket.sendto.assert_called_once_with(
        b"\x01\x02\x03", ("255.255.255.255", 9000)
    )


def test_broadcast_before_acquire_returns_no_socket(client):
    response = client.post("/api/network/broadcast", json=_BROADCAST)

    assert response.status_code == 409
    assert _error(response)["code"] == "NO_SOCKET"


def test_broadcast_after_release_returns_no_socket(client):
    client.post("/api/network/acquire")
    client.post("/api/network/release")

    response = client.post("/api/network/broadcast", json=_BROADCAST)

    assert response.status_code == 409
    assert _error(response)["code"] == "NO_SOCKET"


@pytest.mark.parametrize(
    "body",
    [
        {"data": None, "address": "255.255.255.255", "port": 9000},
        {"address": "255.255.255.255", "port": 9000},
        {"data": [1], "port": 9000},
        {"data": [1], "address": "255.255.255.255"},
        {"data": [1, 256], "address": "255.255.255.255", "port": 9000},
        {"data": [1], "address": "255.255.255.255", "port": 0},
        {"data": [1], "address": "255.255.255.255", "port": 65536},
        {"data": "not-a-list", "address": "255.255.255.255", "port": 9000},
        {"data": [True, 2], "address": "255.255.255.255", "port": 9000},
        {"data": [2.0], "address": "255.255.255.255", "port": 9000},
        {"data": [-1], "address": "255.255.255.255", "port": 9000},
        {"data": [1], "address": "255.255.255.255", "port": "9000"},
        {"data": [1], "address": 4294967295, "port": 9000},
    ],
)
def test_broadcast_invalid_args(client, body):
    client.post("/api/network/acquire")

    response = client.post("/api/network/broadcast", json=body)

    assert response.status_code == 400
    assert _error(response)["code"] == "INVALID_ARGS"


def test_broadcast_invalid_args_checked_before_socket(client):
    """Missing data is INVALID_ARGS even when nothing was acquired."""
    response = client.post(
        "/api/network/broadcast",
        json={"data": None, "address": "255.255.255.255", "port": 9000},
    )

    assert response.status_code == 400
    assert _error(response)["code"] == "INVALID_ARGS"


def test_broadcast_unresolvable_address_returns_send_failed(client, monkeypatch):
    real_getaddrinfo = socket.getaddrinfo

    def fake_getaddrinfo(host, *args, **kwargs):
        if host == "not-an-address":
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return real_getaddrinfo(host, *args, **kwargs)

    monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
    client.post("/api/network/acquire")

    response = client.post(
        "/api/network/broadcast",
        json={"data": [1, 2, 3], "address": "not-an-address", "port": 9000},
    )

    assert response.status_code == 502
    assert _error(response)["code"] == "SEND_FAILED"
    assert "Cannot resolve address 'not-an-address'" in _error(response)["message"]


def test_broadcast_transmission_error_returns_send_failed(client, fake_socket):
    client.post("/api/network/acquire")
    fake_socket.sendto.side_effect = OSError(101, "Network is unreachable")

    response = client.post("/api/network/broadcast", json=_BROADCAST)

    assert response.status_code == 502
    assert _error(response)["code"] == "SEND_FAILED"
    assert "Network is unreachable" in _error(response)["message"]

    # Channel stays usable after a transmission error
    fake_socket.sendto.side_effect = lambda data, addr: len(data)
    assert client.post("/api/network/broadcast", json=_BROADCAST).status_code == 200


# ── token ─────────────────────────────────────────────────────────────────────


def test_token_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "api_token", "s3cret")

    missing = client.post("/api/network/acquire")
    wrong = client.post("/api/network/acquire", headers={"x-api-token": "nope"})
    good = client.post("/api/network/acquire", headers={"x-api-token": "s3cret"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert _error(wrong)["status"] == "unauthorized"
    assert good.status_code == 200
