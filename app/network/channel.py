"""
Broadcast channel — one outbound datagram socket guarded by the lock manager.

Lifecycle
---------
    Closed --open()--> Open --send()--> Open --close()--> Closed

``open()`` brings the ``ResourceLockManager`` to Active first and only then
binds a socket to an ephemeral port with ``SO_BROADCAST`` and ``SO_REUSEADDR``
set.  If the bind fails the holds are released again before the error is
raised, so a failed open never leaks anything.

Sending
-------
``send()`` returns an ``asyncio.Task`` immediately.  Address resolution goes
through ``loop.getaddrinfo`` and the ``sendto`` call runs in a worker thread,
so the event loop is never blocked.  Sends are independent: they may complete
in any order and any number may be in flight on the same socket.

``close()`` does not cancel sends that are already dispatched.  A send racing
with ``close()`` either completes on the still-open socket or fails with
``ChannelNotOpen`` / ``TransmissionFailed``; either way its task finishes.
Use ``drain()`` to wait for outstanding sends before closing.
"""

import asyncio
import ipaddress
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Callable

from app.network.errors import (
    AddressResolutionFailed,
    ChannelNotOpen,
    InvalidSendArguments,
    LockError,
    LockUnavailable,
    SocketBindFailed,
    TransmissionFailed,
)
from app.network.lock_manager import ResourceLockManager

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class SendRequest:
    """A single datagram to dispatch.  Validated on construction."""

    payload: bytes
    address: str
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            raise InvalidSendArguments("payload must be a byte sequence")
        if not isinstance(self.address, str) or not self.address.strip():
            raise InvalidSendArguments("address must be a non-empty string")
        if (
            isinstance(self.port, bool)
            or not isinstance(self.port, int)
            or not MIN_PORT <= self.port <= MAX_PORT
        ):
            raise InvalidSendArguments(
                f"port must be an integer in {MIN_PORT}..{MAX_PORT}"
            )
        object.__setattr__(self, "payload", bytes(self.payload))


def address_family(host: str) -> socket.AddressFamily:
    """IPv6 for IPv6 literals, IPv4 for everything else."""
    try:
        if ipaddress.ip_address(host).version == 6:
            return socket.AF_INET6
    except ValueError:
        pass
    return socket.AF_INET


def create_broadcast_socket(bind_host: str) -> socket.socket:
    """Create a broadcast-enabled datagram socket bound to an ephemeral port."""
    sock = socket.socket(address_family(bind_host), socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((bind_host, 0))
    except OSError:
        sock.close()
        raise
    return sock


class BroadcastChannel:
    """Single-owner broadcast socket whose lifetime is tied to the holds."""

    def __init__(
        self,
        lock_manager: ResourceLockManager,
        bind_host: str = "0.0.0.0",
        socket_factory: Callable[[str], socket.socket] = create_broadcast_socket,
    ) -> None:
        self._lock_manager = lock_manager
        self._bind_host = bind_host
        self._family = address_family(bind_host)
        self._socket_factory = socket_factory
        self._socket: socket.socket | None = None
        self._local_port: int | None = None
        # open/close may run on different worker threads
        self._state_lock = threading.Lock()
        # touched only from the event loop thread
        self._in_flight: set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    @property
    def local_port(self) -> int | None:
        return self._local_port

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ── Control operations ────────────────────────────────────────────────────

    def open(self) -> None:
        """Acquire the holds, then bind the socket.  No-op when already Open."""
        with self._state_lock:
            if self._socket is not None:
                return

            try:
                self._lock_manager.acquire()
            except LockError as exc:
                raise LockUnavailable(
                    f"Network holds unavailable: {exc.message}", exc
                ) from exc

            sock = None
            try:
                sock = self._socket_factory(self._bind_host)
                local_port = sock.getsockname()[1]
            except OSError as exc:
                if sock is not None:
                    sock.close()
                self._lock_manager.release()
                raise SocketBindFailed(
                    f"Could not bind broadcast socket on {self._bind_host}: {exc}",
                    exc,
                ) from exc

            self._socket = sock
            self._local_port = local_port

        logger.info("Broadcast channel open on %s:%d", self._bind_host, local_port)

    def close(self) -> None:
        """Close the socket (if any) and release the holds.  Never raises."""
        with self._state_lock:
            sock, self._socket = self._socket, None
            self._local_port = None

            if sock is not None:
                try:
                    sock.close()
                except OSError as exc:
                    logger.warning("Error closing broadcast socket: %s", exc)

            self._lock_manager.release()

        if sock is not None:
            logger.info("Broadcast channel closed")

    # ── Send path ─────────────────────────────────────────────────────────────

    def send(self, request: SendRequest) -> "asyncio.Task[int]":
        """
        Dispatch *request* without waiting for it.

        Must be called from a running event loop.  The returned task yields
        the number of bytes sent, or raises a ``SendError``.
        """
        task = asyncio.get_running_loop().create_task(self._send(request))
        self._in_flight.add(task)
        task.add_done_callback(self._on_send_done)
        return task

    async def drain(self, timeout: float) -> int:
        """
        Wait up to *timeout* seconds for in-flight sends.

        Returns the number still pending when the wait ended.  Those are
        abandoned, not cancelled.
        """
        pending = set(self._in_flight)
        if not pending:
            return 0
        _, pending = await asyncio.wait(pending, timeout=timeout)
        if pending:
            logger.warning(
                "%d broadcast send(s) still pending after %.1fs",
                len(pending),
                timeout,
            )
        return len(pending)

    async def _send(self, request: SendRequest) -> int:
        sock = self._socket
        if sock is None:
            raise ChannelNotOpen()

        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                request.address,
                request.port,
                family=self._family,
                type=socket.SOCK_DGRAM,
            )
        except (OSError, UnicodeError) as exc:
            raise AddressResolutionFailed(
                f"Cannot resolve address {request.address!r}: {exc}", exc
            ) from exc
        if not infos:
            raise AddressResolutionFailed(
                f"Cannot resolve address {request.address!r}: no results"
            )
        sockaddr = infos[0][4]

        try:
            sent = await asyncio.to_thread(sock.sendto, request.payload, sockaddr)
        except OSError as exc:
            raise TransmissionFailed(
                f"Send to {request.address}:{request.port} failed: {exc}", exc
            ) from exc

        logger.debug(
            "Sent %d byte(s) to %s:%d", sent, request.address, request.port
        )
        return sent

    def _on_send_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        # marks the exception retrieved; awaiting callers still see it
        exc = task.exception()
        if exc is not None:
            logger.debug("Broadcast send failed: %s", exc)
