"""
Network session — the single owner of the lock manager and broadcast channel.

One session is created per application lifespan and passed to the routes
through a FastAPI dependency; nothing about the socket or the holds lives at
module level.  ``shutdown()`` is the implicit teardown path: it closes the
channel exactly once, whether or not ``acquire()`` was ever called or
succeeded.
"""

import asyncio
import logging
import threading
from typing import Any

from app.config import Settings
from app.network.channel import BroadcastChannel, SendRequest
from app.network.errors import SendError, TransmissionFailed
from app.network.holds import NetworkHold, create_holds
from app.network.lock_manager import ResourceLockManager

logger = logging.getLogger(__name__)


class NetworkSession:
    """Acquire / send / release facade used by the HTTP control surface."""

    def __init__(
        self,
        lock_manager: ResourceLockManager,
        channel: BroadcastChannel,
        send_timeout: float = 5.0,
    ) -> None:
        self.lock_manager = lock_manager
        self.channel = channel
        self.send_timeout = send_timeout
        self._shutdown_lock = threading.Lock()
        self._shut_down = False
        self._sent_ok = 0
        self._sent_failed = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        holds: tuple[NetworkHold, NetworkHold] | None = None,
    ) -> "NetworkSession":
        receive_hold, transmit_hold = holds or create_holds(settings)
        lock_manager = ResourceLockManager(receive_hold, transmit_hold)
        channel = BroadcastChannel(lock_manager, bind_host=settings.bind_host)
        return cls(lock_manager, channel, send_timeout=settings.send_timeout)

    def acquire(self) -> int:
        """Take both holds and bind the socket.  Returns the local port."""
        self.channel.open()
        return self.channel.local_port  # type: ignore[return-value]

    def release(self) -> None:
        self.channel.close()

    async def send_broadcast(
        self,
        data: bytes,
        address: str,
        port: int,
        timeout: float | None = None,
    ) -> int:
        """
        Send one datagram and wait for its result.

        Raises ``InvalidSendArguments`` before anything is dispatched,
        ``ChannelNotOpen`` when there is no socket, and
        ``AddressResolutionFailed`` / ``TransmissionFailed`` from the send
        itself.  A send that outlives *timeout* is reported as
        ``TransmissionFailed`` but keeps running: it stays in flight and is
        drained by ``shutdown()`` like any other send.
        """
        request = SendRequest(payload=data, address=address, port=port)
        timeout = self.send_timeout if timeout is None else timeout
        task = self.channel.send(request)
        try:
            sent = await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError as exc:
            self._sent_failed += 1
            raise TransmissionFailed(
                f"Send to {address}:{port} timed out after {timeout:.1f}s; outcome unknown",
                exc,
            ) from exc
        except SendError:
            self._sent_failed += 1
            raise
        self._sent_ok += 1
        return sent

    async def shutdown(self, drain_timeout: float) -> None:
        """Let in-flight sends drain, then close.  Runs at most once."""
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True
        abandoned = await self.channel.drain(drain_timeout)
        if abandoned:
            logger.warning("Abandoning %d in-flight send(s) at shutdown", abandoned)
        self.channel.close()
        logger.info("Network session shut down")

    def snapshot(self) -> dict[str, Any]:
        return {
            "locks": "active" if self.lock_manager.active else "idle",
            "channel": "open" if self.channel.is_open else "closed",
            "local_port": self.channel.local_port,
            "in_flight": self.channel.in_flight,
            "sent_ok": self._sent_ok,
            "sent_failed": self._sent_failed,
        }
