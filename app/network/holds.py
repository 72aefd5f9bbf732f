"""
Power-management holds.

A hold is a capability token: while it is held, the platform keeps the radio
in a state suitable for local broadcast traffic.  Two are used:

- the **receive hold** keeps inbound multicast/broadcast delivery enabled even
  when the radio would otherwise filter it to save power;
- the **transmit hold** keeps the radio in its high-performance mode so
  outbound broadcasts are not throttled.

Holds are not reference-counted.  ``acquire()`` on a held token and
``release()`` on an unheld token are both no-ops.

Hosts without such an OS concept get ``NoopHold``, which satisfies the same
state machine without touching the system.
"""

import logging
from abc import ABC, abstractmethod

from app.config import Settings

logger = logging.getLogger(__name__)


class NetworkHold(ABC):
    """Base class for a named power-management hold.

    Backends implement ``_acquire`` and ``_release``; the held flag and the
    no-op rules live here.
    """

    def __init__(self, tag: str) -> None:
        self.tag = tag
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take the hold.  Raises whatever the platform raises on denial."""
        if self._held:
            return
        self._acquire()
        self._held = True
        logger.debug("Hold %r acquired", self.tag)

    def release(self) -> None:
        """Give the hold back.  The token is considered released even if the
        platform call fails; the failure is re-raised for the caller to log."""
        if not self._held:
            return
        try:
            self._release()
        finally:
            self._held = False
        logger.debug("Hold %r released", self.tag)

    @abstractmethod
    def _acquire(self) -> None: ...

    @abstractmethod
    def _release(self) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r}, held={self._held})"


class NoopHold(NetworkHold):
    """Hold for hosts whose network stack never throttles broadcast traffic."""

    def _acquire(self) -> None:
        pass

    def _release(self) -> None:
        pass


def create_holds(settings: Settings) -> tuple[NetworkHold, NetworkHold]:
    """Return ``(receive_hold, transmit_hold)`` for this host."""
    return (
        NoopHold(settings.receive_hold_tag),
        NoopHold(settings.transmit_hold_tag),
    )
