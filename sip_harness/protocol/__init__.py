"""
SIP2 protocol layer.

Provides:
- fields: variable-field codec and error-detection trailer
- schema: fixed-field layouts and tag labels per message code
- message: immutable Message model with wire and display forms
- timestamp: 18-character SIP2 date/time values

This layer never touches the network.
"""

from .fields import (
    FIELD_TERMINATOR,
    MESSAGE_TERMINATOR,
    encode_field,
    decode_fields,
    checksum,
)
from .schema import (
    FixedFieldSpec,
    MessageSchema,
    SCHEMAS,
    TAG_NAMES,
    get_schema,
)
from .message import Field, FixedField, Message, build, parse
from .timestamp import sip_timestamp

__all__ = [
    # Codec
    'FIELD_TERMINATOR',
    'MESSAGE_TERMINATOR',
    'encode_field',
    'decode_fields',
    'checksum',
    # Schema
    'FixedFieldSpec',
    'MessageSchema',
    'SCHEMAS',
    'TAG_NAMES',
    'get_schema',
    # Message
    'Field',
    'FixedField',
    'Message',
    'build',
    'parse',
    # Timestamp
    'sip_timestamp',
]
