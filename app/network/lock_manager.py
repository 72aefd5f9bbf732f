"""
Resource lock manager — owns the receive and transmit holds.

``acquire()`` is all-or-nothing: if the second hold is denied, the first is
given back before the error propagates, so the manager is never left with
exactly one hold.  ``release()`` never raises; it is safe to call from
teardown and error-recovery paths in any state.

Usage
-----
    manager = ResourceLockManager(receive_hold, transmit_hold)
    manager.acquire()        # raises LockError
    try:
        ...
    finally:
        manager.release()
"""

import logging
import threading

from app.network.errors import ReceiveHoldDenied, TransmitHoldDenied
from app.network.holds import NetworkHold

logger = logging.getLogger(__name__)


class ResourceLockManager:
    """Idle/Active state machine over two independent holds."""

    def __init__(self, receive_hold: NetworkHold, transmit_hold: NetworkHold) -> None:
        self._receive_hold = receive_hold
        self._transmit_hold = transmit_hold
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._receive_hold.held and self._transmit_hold.held

    def acquire(self) -> None:
        """Take both holds.  A no-op when already Active."""
        with self._lock:
            if self.active:
                return

            try:
                self._receive_hold.acquire()
            except Exception as exc:
                self._release_all()
                raise ReceiveHoldDenied(
                    f"Receive hold {self._receive_hold.tag!r} denied: {exc}", exc
                ) from exc

            try:
                self._transmit_hold.acquire()
            except Exception as exc:
                self._release_all()
                raise TransmitHoldDenied(
                    f"Transmit hold {self._transmit_hold.tag!r} denied: {exc}", exc
                ) from exc

            logger.info(
                "Network holds acquired (%s, %s)",
                self._receive_hold.tag,
                self._transmit_hold.tag,
            )

    def release(self) -> None:
        """Give back whatever is held.  Always ends Idle; never raises."""
        with self._lock:
            was_active = self.active
            self._release_all()
        if was_active:
            logger.info("Network holds released")

    def _release_all(self) -> None:
        for hold in (self._receive_hold, self._transmit_hold):
            try:
                hold.release()
            except Exception as exc:
                logger.warning("Failed to release hold %r: %s", hold.tag, exc)
