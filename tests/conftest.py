"""
Shared fixtures: fault-injectable holds and a stand-in broadcast socket.
"""

import socket
from unittest.mock import MagicMock

import pytest

from app.network.channel import BroadcastChannel
from app.network.holds import NetworkHold
from app.network.lock_manager import ResourceLockManager

FAKE_LOCAL_PORT = 54321


class FakeHold(NetworkHold):
    """Hold double that counts platform calls and can be told to fail."""

    def __init__(self, tag: str, deny: bool = False, fail_release: bool = False):
        super().__init__(tag)
        self.deny = deny
        self.fail_release = fail_release
        self.acquire_calls = 0
        self.release_calls = 0

    def _acquire(self) -> None:
        self.acquire_calls += 1
        if self.deny:
            raise PermissionError(f"{self.tag} denied by platform")

    def _release(self) -> None:
        self.release_calls += 1
        if self.fail_release:
            raise OSError(f"{self.tag} release failed")


def make_fake_socket(port: int = FAKE_LOCAL_PORT) -> MagicMock:
    """Socket mock whose sendto() reports every byte as sent."""
    sock = MagicMock(spec=socket.socket)
    sock.getsockname.return_value = ("0.0.0.0", port)
    sock.sendto.side_effect = lambda data, addr: len(data)
    return sock


@pytest.fixture
def receive_hold() -> FakeHold:
    return FakeHold("test_sync")


@pytest.fixture
def transmit_hold() -> FakeHold:
    return FakeHold("test_broadcast")


@pytest.fixture
def lock_manager(receive_hold, transmit_hold) -> ResourceLockManager:
    return ResourceLockManager(receive_hold, transmit_hold)


@pytest.fixture
def fake_socket() -> MagicMock:
    return make_fake_socket()


@pytest.fixture
def channel(lock_manager, fake_socket):
    ch = BroadcastChannel(lock_manager, socket_factory=lambda host: fake_socket)
    yield ch
    ch.close()
