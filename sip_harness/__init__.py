"""
SIP Harness v1.0 - Exercise and validate SIP2 library self-check servers.

This package provides:
- protocol: SIP2 field codec, message schemas and message model
- transactions: Catalog of request builders (login, item information, ...)
- session: Session driver, TCP transport and per-exchange reporting
- config: YAML configuration with environment variable support
- core: Error taxonomy and run reports with latency statistics
- cli: Command-line interface
"""

__version__ = "1.0.0"

from .protocol import Message, Field, FixedField, build, parse, sip_timestamp
from .transactions import TransactionRequest, build_transaction, get_transaction
from .session import SessionDriver, SocketTransport, Transport, Reporter
from .config import HarnessConfig, RunStep, load_config
from .core import RunReport, Exchange, SipError

__all__ = [
    # Version
    '__version__',
    # Protocol
    'Message',
    'Field',
    'FixedField',
    'build',
    'parse',
    'sip_timestamp',
    # Transactions
    'TransactionRequest',
    'build_transaction',
    'get_transaction',
    # Session
    'SessionDriver',
    'SocketTransport',
    'Transport',
    'Reporter',
    # Config
    'HarnessConfig',
    'RunStep',
    'load_config',
    # Core
    'RunReport',
    'Exchange',
    'SipError',
]
