"""
Exceptions raised by the network resource layer.

Every class carries the ``code`` reported on the HTTP control surface, so the
routes can turn any ``NetworkError`` into a response without a lookup table.
"""

ACQUIRE_FAILED = "ACQUIRE_FAILED"
RELEASE_FAILED = "RELEASE_FAILED"
INVALID_ARGS = "INVALID_ARGS"
NO_SOCKET = "NO_SOCKET"
SEND_FAILED = "SEND_FAILED"


class NetworkError(Exception):
    """Base class for every error surfaced to the controlling application."""

    code: str = ACQUIRE_FAILED

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


# ── Lock acquisition ──────────────────────────────────────────────────────────


class LockError(NetworkError):
    code = ACQUIRE_FAILED


class ReceiveHoldDenied(LockError):
    """The platform refused the multicast receive hold."""


class TransmitHoldDenied(LockError):
    """The platform refused the high-performance transmit hold."""


# ── Channel open ──────────────────────────────────────────────────────────────


class OpenError(NetworkError):
    code = ACQUIRE_FAILED


class LockUnavailable(OpenError):
    """``open()`` could not bring the lock manager to Active."""


class SocketBindFailed(OpenError):
    """Locks were acquired but the broadcast socket could not be created."""


# ── Send path ─────────────────────────────────────────────────────────────────


class SendError(NetworkError):
    code = SEND_FAILED


class InvalidSendArguments(SendError):
    code = INVALID_ARGS


class ChannelNotOpen(SendError):
    code = NO_SOCKET

    def __init__(self, message: str = "Broadcast channel is not open") -> None:
        super().__init__(message)


class AddressResolutionFailed(SendError):
    """The destination could not be resolved to a socket address."""


class TransmissionFailed(SendError):
    """The datagram could not be handed to the network stack."""
