"""Transaction builders and the catalog of supported transactions."""

from .catalog import (
    TransactionRequest,
    Transaction,
    CATALOG,
    ALIASES,
    get_transaction,
    build_transaction,
    transaction_names,
)

__all__ = [
    'TransactionRequest',
    'Transaction',
    'CATALOG',
    'ALIASES',
    'get_transaction',
    'build_transaction',
    'transaction_names',
]
