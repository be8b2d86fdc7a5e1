"""
Error codes and exceptions for SIP Harness.

Structured error codes for machine-parseable run reports.

Format: E{category}{number}
- E1xxx: Message errors
- E2xxx: Transaction input errors
- E3xxx: Configuration errors
- E4xxx: Session/transport errors
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Structured error codes."""

    # E1xxx: Message errors
    E1001_SCHEMA_MISMATCH = "E1001"
    E1002_ENCODING_FAILED = "E1002"
    E1003_MALFORMED_MESSAGE = "E1003"
    E1004_UNKNOWN_CODE = "E1004"
    E1005_CHECKSUM_MISMATCH = "E1005"

    # E2xxx: Transaction input errors
    E2001_MISSING_INPUT = "E2001"
    E2002_INVALID_INPUT = "E2002"
    E2003_UNKNOWN_TRANSACTION = "E2003"

    # E3xxx: Configuration errors
    E3001_INVALID_CONFIG = "E3001"
    E3002_VALIDATION_FAILED = "E3002"

    # E4xxx: Session/transport errors
    E4001_CONNECTION_FAILED = "E4001"
    E4002_IO_FAILED = "E4002"
    E4003_TIMEOUT = "E4003"
    E4004_NO_RESPONSE = "E4004"
    E4005_LOGIN_REJECTED = "E4005"
    E4006_INVALID_STATE = "E4006"


# Error code metadata
ERROR_METADATA = {
    ErrorCode.E1001_SCHEMA_MISMATCH: {
        'severity': 'error',
        'message': 'Fixed fields do not match the message schema',
        'recoverable': False,
    },
    ErrorCode.E1002_ENCODING_FAILED: {
        'severity': 'error',
        'message': 'Field cannot be encoded',
        'recoverable': False,
    },
    ErrorCode.E1003_MALFORMED_MESSAGE: {
        'severity': 'error',
        'message': 'Malformed or truncated message',
        'recoverable': False,
    },
    ErrorCode.E1004_UNKNOWN_CODE: {
        'severity': 'error',
        'message': 'Unknown message code',
        'recoverable': False,
    },
    ErrorCode.E1005_CHECKSUM_MISMATCH: {
        'severity': 'error',
        'message': 'Error detection checksum mismatch',
        'recoverable': False,
    },
    ErrorCode.E2001_MISSING_INPUT: {
        'severity': 'error',
        'message': 'Required transaction input missing',
        'recoverable': True,
    },
    ErrorCode.E2002_INVALID_INPUT: {
        'severity': 'error',
        'message': 'Transaction input is malformed',
        'recoverable': True,
    },
    ErrorCode.E2003_UNKNOWN_TRANSACTION: {
        'severity': 'error',
        'message': 'Unknown transaction',
        'recoverable': True,
    },
    ErrorCode.E3001_INVALID_CONFIG: {
        'severity': 'error',
        'message': 'Invalid configuration',
        'recoverable': False,
    },
    ErrorCode.E3002_VALIDATION_FAILED: {
        'severity': 'error',
        'message': 'Configuration validation failed',
        'recoverable': False,
    },
    ErrorCode.E4001_CONNECTION_FAILED: {
        'severity': 'critical',
        'message': 'Could not connect to server',
        'recoverable': False,
    },
    ErrorCode.E4002_IO_FAILED: {
        'severity': 'critical',
        'message': 'Transport I/O failed',
        'recoverable': True,
    },
    ErrorCode.E4003_TIMEOUT: {
        'severity': 'critical',
        'message': 'Timed out waiting for server',
        'recoverable': True,
    },
    ErrorCode.E4004_NO_RESPONSE: {
        'severity': 'critical',
        'message': 'No response received',
        'recoverable': True,
    },
    ErrorCode.E4005_LOGIN_REJECTED: {
        'severity': 'critical',
        'message': 'Server rejected login',
        'recoverable': False,
    },
    ErrorCode.E4006_INVALID_STATE: {
        'severity': 'error',
        'message': 'Operation not permitted in current session state',
        'recoverable': False,
    },
}


class SipError(Exception):
    """
    Base exception with a structured code and context.

    Example:
        raise ValidationError(
            'patron id is required',
            transaction='patron-status',
            field='patron_id',
        )
    """

    code = ErrorCode.E1003_MALFORMED_MESSAGE

    def __init__(self, detail: str, code: Optional[ErrorCode] = None, **context):
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code
        self.context = context

    def __str__(self) -> str:
        if self.context:
            pairs = ', '.join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.detail} ({pairs})"
        return self.detail

    @property
    def severity(self) -> str:
        return ERROR_METADATA.get(self.code, {}).get('severity', 'error')

    @property
    def recoverable(self) -> bool:
        return ERROR_METADATA.get(self.code, {}).get('recoverable', False)

    def to_dict(self) -> dict:
        return {
            'code': self.code.value,
            'type': type(self).__name__,
            'severity': self.severity,
            'message': ERROR_METADATA.get(self.code, {}).get('message', 'Unknown error'),
            'detail': self.detail,
            'recoverable': self.recoverable,
            'context': self.context or None,
        }


# Message errors

class SchemaError(SipError):
    """Fixed fields or tags do not match the schema for a message code."""
    code = ErrorCode.E1001_SCHEMA_MISMATCH


class EncodingError(SipError):
    """A tag or value cannot be put on the wire."""
    code = ErrorCode.E1002_ENCODING_FAILED


class ProtocolError(SipError):
    """Wire text cannot be parsed."""
    code = ErrorCode.E1003_MALFORMED_MESSAGE


class UnknownCodeError(ProtocolError):
    """Message code is not in the schema table."""
    code = ErrorCode.E1004_UNKNOWN_CODE


# Transaction input errors

class ValidationError(SipError):
    """Required transaction input is missing or malformed."""
    code = ErrorCode.E2001_MISSING_INPUT


class UnknownTransactionError(ValidationError):
    """Transaction name is not in the catalog."""
    code = ErrorCode.E2003_UNKNOWN_TRANSACTION


# Configuration errors

class ConfigError(SipError):
    """Configuration file cannot be loaded or is invalid."""
    code = ErrorCode.E3001_INVALID_CONFIG


# Session/transport errors

class TransportError(SipError):
    """Base class for all transport-layer errors."""
    code = ErrorCode.E4002_IO_FAILED


class TransportConnectionError(TransportError):
    """The transport could not establish a connection."""
    code = ErrorCode.E4001_CONNECTION_FAILED


class TransportTimeout(TransportError):
    """The transport gave up waiting for data."""
    code = ErrorCode.E4003_TIMEOUT


class NoResponseError(SipError):
    """A request was sent but no response arrived."""
    code = ErrorCode.E4004_NO_RESPONSE


class LoginRejectedError(SipError):
    """Login response reported failure and the login policy aborts."""
    code = ErrorCode.E4005_LOGIN_REJECTED


class SessionStateError(SipError):
    """Operation attempted in the wrong session state."""
    code = ErrorCode.E4006_INVALID_STATE
