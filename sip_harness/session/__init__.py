"""Session driver, transports, and per-exchange reporting."""

from .transport import Transport, SocketTransport
from .reporter import Reporter
from .driver import ConnectionState, SessionState, SessionDriver

__all__ = [
    'Transport',
    'SocketTransport',
    'Reporter',
    'ConnectionState',
    'SessionState',
    'SessionDriver',
]
