"""Error taxonomy and run reporting for SIP Harness."""

from .errors import (
    ErrorCode,
    ERROR_METADATA,
    SipError,
    SchemaError,
    EncodingError,
    ProtocolError,
    UnknownCodeError,
    ValidationError,
    UnknownTransactionError,
    ConfigError,
    TransportError,
    TransportConnectionError,
    TransportTimeout,
    NoResponseError,
    LoginRejectedError,
    SessionStateError,
)
from .report import (
    ReportStatus,
    Exchange,
    LatencyStats,
    RunReport,
)

__all__ = [
    # Errors
    'ErrorCode',
    'ERROR_METADATA',
    'SipError',
    'SchemaError',
    'EncodingError',
    'ProtocolError',
    'UnknownCodeError',
    'ValidationError',
    'UnknownTransactionError',
    'ConfigError',
    'TransportError',
    'TransportConnectionError',
    'TransportTimeout',
    'NoResponseError',
    'LoginRejectedError',
    'SessionStateError',
    # Report
    'ReportStatus',
    'Exchange',
    'LatencyStats',
    'RunReport',
]
