"""
SIP2 message schemas.

Each message code has an ordered list of fixed fields (label and width)
and the variable-field tags it may carry. Widths follow SIP2 version 2.00.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from ..core.errors import UnknownCodeError


TIMESTAMP_WIDTH = 18


@dataclass(frozen=True)
class FixedFieldSpec:
    """One positional fixed field."""
    label: str
    width: int


@dataclass(frozen=True)
class MessageSchema:
    """Fixed-field layout and allowed tags for one message code."""
    code: str
    name: str
    fixed: Tuple[FixedFieldSpec, ...] = ()
    tags: Tuple[str, ...] = ()

    @property
    def fixed_width(self) -> int:
        return sum(spec.width for spec in self.fixed)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(spec.label for spec in self.fixed)


def _fixed(*pairs) -> Tuple[FixedFieldSpec, ...]:
    return tuple(FixedFieldSpec(label, width) for label, width in pairs)


_DATE = ('transaction date', TIMESTAMP_WIDTH)


# Human-readable labels for variable-field tags
TAG_NAMES = {
    'AA': 'patron identifier',
    'AB': 'item identifier',
    'AC': 'terminal password',
    'AD': 'patron password',
    'AE': 'personal name',
    'AF': 'screen message',
    'AG': 'print line',
    'AH': 'due date',
    'AJ': 'title identifier',
    'AM': 'library name',
    'AN': 'terminal location',
    'AO': 'institution id',
    'AP': 'current location',
    'AQ': 'permanent location',
    'AS': 'hold items',
    'AT': 'overdue items',
    'AU': 'charged items',
    'AV': 'fine items',
    'AY': 'sequence number',
    'AZ': 'checksum',
    'BD': 'home address',
    'BE': 'e-mail address',
    'BF': 'home phone number',
    'BG': 'owner',
    'BH': 'currency type',
    'BI': 'cancel',
    'BK': 'transaction id',
    'BL': 'valid patron',
    'BO': 'fee acknowledged',
    'BP': 'start item',
    'BQ': 'end item',
    'BT': 'fee type',
    'BU': 'recall items',
    'BV': 'fee amount',
    'BX': 'supported messages',
    'BZ': 'hold items limit',
    'CA': 'overdue items limit',
    'CB': 'charged items limit',
    'CC': 'fee limit',
    'CD': 'unavailable hold items',
    'CF': 'hold queue length',
    'CH': 'item properties',
    'CI': 'security inhibit',
    'CJ': 'recall date',
    'CK': 'media type',
    'CL': 'sort bin',
    'CM': 'hold pickup date',
    'CN': 'login user id',
    'CO': 'login password',
    'CP': 'location code',
    'CQ': 'valid patron password',
}


_SCHEMAS = (
    # Requests
    MessageSchema(
        '93', 'Login',
        _fixed(('UID algorithm', 1), ('PWD algorithm', 1)),
        ('CN', 'CO', 'CP'),
    ),
    MessageSchema(
        '99', 'SC Status',
        _fixed(('status code', 1), ('max print width', 3), ('protocol version', 4)),
    ),
    MessageSchema(
        '17', 'Item Information',
        _fixed(_DATE),
        ('AO', 'AB', 'AC'),
    ),
    MessageSchema(
        '09', 'Checkin',
        _fixed(('no block', 1), _DATE, ('return date', TIMESTAMP_WIDTH)),
        ('AP', 'AO', 'AB', 'AC', 'CH', 'BI'),
    ),
    MessageSchema(
        '11', 'Checkout',
        _fixed(('SC renewal policy', 1), ('no block', 1), _DATE,
               ('nb due date', TIMESTAMP_WIDTH)),
        ('AO', 'AA', 'AB', 'AC', 'CH', 'AD', 'BO', 'BI'),
    ),
    MessageSchema(
        '23', 'Patron Status Request',
        _fixed(('language', 3), _DATE),
        ('AO', 'AA', 'AC', 'AD'),
    ),
    MessageSchema(
        '63', 'Patron Information',
        _fixed(('language', 3), _DATE, ('summary', 10)),
        ('AO', 'AA', 'AC', 'AD', 'BP', 'BQ'),
    ),
    MessageSchema(
        '35', 'End Patron Session',
        _fixed(_DATE),
        ('AO', 'AA', 'AC', 'AD'),
    ),
    MessageSchema('97', 'Request ACS Resend'),
    MessageSchema('96', 'Request SC Resend'),

    # Responses
    MessageSchema(
        '94', 'Login Response',
        _fixed(('ok', 1)),
    ),
    MessageSchema(
        '98', 'ACS Status',
        _fixed(('on-line status', 1), ('checkin ok', 1), ('checkout ok', 1),
               ('ACS renewal policy', 1), ('status update ok', 1),
               ('off-line ok', 1), ('timeout period', 3),
               ('retries allowed', 3), ('date/time sync', TIMESTAMP_WIDTH),
               ('protocol version', 4)),
        ('AO', 'AM', 'BX', 'AN', 'AF', 'AG'),
    ),
    MessageSchema(
        '18', 'Item Information Response',
        _fixed(('circulation status', 2), ('security marker', 2),
               ('fee type', 2), _DATE),
        ('CF', 'AH', 'CJ', 'CM', 'AB', 'AJ', 'BG', 'BH', 'BV', 'CK', 'AQ',
         'AP', 'CH', 'AF', 'AG'),
    ),
    MessageSchema(
        '10', 'Checkin Response',
        _fixed(('ok', 1), ('resensitize', 1), ('magnetic media', 1),
               ('alert', 1), _DATE),
        ('AO', 'AB', 'AQ', 'AJ', 'CL', 'AA', 'CK', 'CH', 'AF', 'AG'),
    ),
    MessageSchema(
        '12', 'Checkout Response',
        _fixed(('ok', 1), ('renewal ok', 1), ('magnetic media', 1),
               ('desensitize', 1), _DATE),
        ('AO', 'AA', 'AB', 'AJ', 'AH', 'BT', 'CI', 'BH', 'BV', 'CK', 'CH',
         'BK', 'AF', 'AG'),
    ),
    MessageSchema(
        '24', 'Patron Status Response',
        _fixed(('patron status', 14), ('language', 3), _DATE),
        ('AO', 'AA', 'AE', 'BL', 'CQ', 'BH', 'BV', 'AF', 'AG'),
    ),
    MessageSchema(
        '64', 'Patron Information Response',
        _fixed(('patron status', 14), ('language', 3), _DATE,
               ('hold items count', 4), ('overdue items count', 4),
               ('charged items count', 4), ('fine items count', 4),
               ('recall items count', 4), ('unavailable holds count', 4)),
        ('AO', 'AA', 'AE', 'BZ', 'CA', 'CB', 'BL', 'CQ', 'BH', 'BV', 'CC',
         'AS', 'AT', 'AU', 'AV', 'BU', 'CD', 'BD', 'BE', 'BF', 'AF', 'AG'),
    ),
    MessageSchema(
        '36', 'End Session Response',
        _fixed(('end session', 1), _DATE),
        ('AO', 'AA', 'AF', 'AG'),
    ),
)

SCHEMAS: Dict[str, MessageSchema] = {schema.code: schema for schema in _SCHEMAS}


def get_schema(code: str) -> MessageSchema:
    """Look up the schema for a message code."""
    try:
        return SCHEMAS[code]
    except KeyError:
        raise UnknownCodeError("unknown message code", message_code=code) from None


def tag_name(tag: str) -> str:
    return TAG_NAMES.get(tag, 'unknown')
