# Broadcast channel and power-management hold lifecycle
from app.network.channel import BroadcastChannel, SendRequest, create_broadcast_socket
from app.network.errors import (
    AddressResolutionFailed,
    ChannelNotOpen,
    InvalidSendArguments,
    LockError,
    LockUnavailable,
    NetworkError,
    OpenError,
    ReceiveHoldDenied,
    SendError,
    SocketBindFailed,
    TransmissionFailed,
    TransmitHoldDenied,
)
from app.network.holds import NetworkHold, NoopHold, create_holds
from app.network.lock_manager import ResourceLockManager
from app.network.session import NetworkSession

__all__ = [
    "BroadcastChannel",
    "SendRequest",
    "create_broadcast_socket",
    "NetworkError",
    "LockError",
    "ReceiveHoldDenied",
    "TransmitHoldDenied",
    "OpenError",
    "LockUnavailable",
    "SocketBindFailed",
    "SendError",
    "InvalidSendArguments",
    "ChannelNotOpen",
    "AddressResolutionFailed",
    "TransmissionFailed",
    "NetworkHold",
    "NoopHold",
    "create_holds",
    "ResourceLockManager",
    "NetworkSession",
]
