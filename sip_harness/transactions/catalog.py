"""
Transaction catalog.

One builder per supported transaction. Builders are pure functions of a
TransactionRequest; they validate required inputs and return a Message.
Validation always happens before anything is sent.

Usage:
    request = TransactionRequest(institution='myplace', item_id='123456789')
    msg = build_transaction('item-information', request)
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..core.errors import ErrorCode, UnknownTransactionError, ValidationError
from ..protocol.fields import FIELD_TERMINATOR, MESSAGE_TERMINATOR
from ..protocol.message import Message, build
from ..protocol.timestamp import sip_timestamp


Timestamp = Callable[[], str]

SUMMARY_WIDTH = 10
DEFAULT_LANGUAGE = '001'  # English


@dataclass(frozen=True)
class TransactionRequest:
    """
    Resolved inputs for building one message.

    None means the input was not supplied.
    """
    institution: Optional[str] = None
    location: Optional[str] = None
    item_id: Optional[str] = None
    patron_id: Optional[str] = None
    patron_password: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    terminal_password: Optional[str] = None
    summary: Optional[str] = None
    cancel: Optional[bool] = None
    start_item: Optional[str] = None
    end_item: Optional[str] = None
    language: Optional[str] = None


def _require(request: TransactionRequest, transaction: str, *names: str) -> None:
    for name in names:
        if getattr(request, name) is None:
            raise ValidationError(
                f"{name} is required",
                transaction=transaction,
                field=name,
            )


def _flag(value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return 'Y' if value else 'N'


def _language(request: TransactionRequest) -> str:
    return request.language or DEFAULT_LANGUAGE


# === Builders ===

def login(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """93: Login. Plain-text UID and password algorithms."""
    _require(request, 'login', 'username', 'password')
    return build('93', ['0', '0'], [
        ('CN', request.username),
        ('CO', request.password),
        ('CP', request.location),
    ])


def sc_status(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """99: SC Status. Status OK, 80-column printer, protocol 2.00."""
    return build('99', ['0', '080', '2.00'])


def item_information(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """17: Item Information."""
    _require(request, 'item-information', 'item_id')
    return build('17', [timestamp()], [
        ('AO', request.institution or ''),
        ('AB', request.item_id),
        ('AC', request.terminal_password),
    ])


def checkin(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """09: Checkin. Return date is the transaction date."""
    _require(request, 'checkin', 'item_id')
    now = timestamp()
    return build('09', ['N', now, now], [
        ('AP', request.location),
        ('AO', request.institution or ''),
        ('AB', request.item_id),
        ('AC', request.terminal_password),
        ('BI', _flag(request.cancel)),
    ])


def checkout(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """11: Checkout. No renewal policy, no offline due date."""
    _require(request, 'checkout', 'patron_id', 'item_id')
    return build('11', ['N', 'N', timestamp(), ' ' * 18], [
        ('AO', request.institution or ''),
        ('AA', request.patron_id),
        ('AB', request.item_id),
        ('AC', request.terminal_password),
        ('AD', request.patron_password),
        ('BI', _flag(request.cancel)),
    ])


def patron_status(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """23: Patron Status Request."""
    _require(request, 'patron-status', 'patron_id')
    return build('23', [_language(request), timestamp()], [
        ('AO', request.institution or ''),
        ('AA', request.patron_id),
        ('AC', request.terminal_password),
        ('AD', request.patron_password),
    ])


def patron_information(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """
    63: Patron Information.

    The summary is exactly ten characters; at most one position is 'Y'
    in practice, but any ten characters other than the terminators
    are accepted.
    """
    _require(request, 'patron-information', 'patron_id')
    summary = request.summary if request.summary is not None else ' ' * SUMMARY_WIDTH
    if len(summary) != SUMMARY_WIDTH:
        raise ValidationError(
            f"summary must be {SUMMARY_WIDTH} characters",
            code=ErrorCode.E2002_INVALID_INPUT,
            transaction='patron-information',
            field='summary',
            length=len(summary),
        )
    if FIELD_TERMINATOR in summary or MESSAGE_TERMINATOR in summary:
        raise ValidationError(
            "summary contains a reserved terminator",
            code=ErrorCode.E2002_INVALID_INPUT,
            transaction='patron-information',
            field='summary',
        )
    return build('63', [_language(request), timestamp(), summary], [
        ('AO', request.institution or ''),
        ('AA', request.patron_id),
        ('AC', request.terminal_password),
        ('AD', request.patron_password),
        ('BP', request.start_item),
        ('BQ', request.end_item),
    ])


def end_patron_session(request: TransactionRequest, timestamp: Timestamp = sip_timestamp) -> Message:
    """35: End Patron Session."""
    _require(request, 'end-patron-session', 'patron_id')
    return build('35', [timestamp()], [
        ('AO', request.institution or ''),
        ('AA', request.patron_id),
        ('AC', request.terminal_password),
        ('AD', request.patron_password),
    ])


# === Registry ===

@dataclass(frozen=True)
class Transaction:
    """A named request/response exchange."""
    name: str
    code: str
    response_code: str
    builder: Callable[..., Message]
    description: str


CATALOG: Dict[str, Transaction] = {t.name: t for t in (
    Transaction('login', '93', '94', login, 'Authenticate the terminal'),
    Transaction('sc-status', '99', '98', sc_status, 'Self-check status / ACS capabilities'),
    Transaction('item-information', '17', '18', item_information, 'Look up an item'),
    Transaction('checkin', '09', '10', checkin, 'Return an item'),
    Transaction('checkout', '11', '12', checkout, 'Charge an item to a patron'),
    Transaction('patron-status', '23', '24', patron_status, 'Patron status flags'),
    Transaction('patron-information', '63', '64', patron_information, 'Patron details and item lists'),
    Transaction('end-patron-session', '35', '36', end_patron_session, 'End a patron session'),
)}

ALIASES = {
    'status': 'sc-status',
    'item-info': 'item-information',
    'patron-info': 'patron-information',
    'end-session': 'end-patron-session',
}


def transaction_names() -> List[str]:
    return list(CATALOG)


def get_transaction(name: str) -> Transaction:
    """Look up a transaction by name or alias."""
    name = ALIASES.get(name, name)
    try:
        return CATALOG[name]
    except KeyError:
        raise UnknownTransactionError(
            "unknown transaction",
            transaction=name,
            known=', '.join(CATALOG),
        ) from None


def build_transaction(
    name: str,
    request: TransactionRequest,
    timestamp: Timestamp = sip_timestamp,
) -> Message:
    """Build the request message for a named transaction."""
    return get_transaction(name).builder(request, timestamp)
