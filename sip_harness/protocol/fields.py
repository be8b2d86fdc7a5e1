"""
SIP2 field codec.

SIP2 messages are single lines of printable text:

    <code><fixed fields><tag><value>|<tag><value>|...[AY<n>AZ<xxxx>]\\r

Fixed fields carry no tag or terminator; their widths come from the
schema for the message code. Variable fields are a two-character tag, a
value and the '|' field terminator.

The optional error-detection trailer (sequence number AY, checksum AZ)
follows the last variable field.
"""

import re
from typing import List, Optional, Tuple

from ..core.errors import EncodingError, ErrorCode, ProtocolError


FIELD_TERMINATOR = '|'
MESSAGE_TERMINATOR = '\r'
TAG_WIDTH = 2

SEQUENCE_TAG = 'AY'
CHECKSUM_TAG = 'AZ'

_TRAILER = re.compile(r'AY(\d)AZ([0-9A-Fa-f]{4})$')


def check_value(value: str, what: str = 'value') -> str:
    """Reject values containing a protocol terminator."""
    if FIELD_TERMINATOR in value or MESSAGE_TERMINATOR in value:
        raise EncodingError(
            f"{what} contains a reserved terminator",
            value=value,
        )
    return value


def check_tag(tag: str) -> str:
    """Tags are exactly two printable, non-terminator characters."""
    if len(tag) != TAG_WIDTH or not tag.isprintable() or tag.isspace():
        raise EncodingError("tag must be two printable characters", tag=tag)
    return check_value(tag, 'tag')


def encode_field(tag: str, value: str) -> str:
    """Encode one variable field as tag + value + field terminator."""
    check_tag(tag)
    check_value(value)
    return f"{tag}{value}{FIELD_TERMINATOR}"


def decode_fields(raw: str) -> List[Tuple[str, str]]:
    """
    Decode variable fields into ordered (tag, value) pairs.

    The segment after the final terminator is ignored when empty; a
    final field without its terminator is accepted.

    Raises:
        ProtocolError: a segment is too short to hold a tag
    """
    if not raw:
        return []

    segments = raw.split(FIELD_TERMINATOR)
    if segments[-1] == '':
        segments.pop()

    pairs = []
    for position, segment in enumerate(segments):
        if len(segment) < TAG_WIDTH:
            raise ProtocolError(
                "field segment shorter than a tag",
                segment=segment,
                position=position,
            )
        pairs.append((segment[:TAG_WIDTH], segment[TAG_WIDTH:]))

    return pairs


# === Error detection ===

def checksum(text: str) -> str:
    """
    Compute the SIP2 checksum for everything up to and including 'AZ'.

    The checksum is the two's complement of the 16-bit sum of the
    character codes, as four upper-case hex digits.
    """
    total = sum(ord(c) for c in text) & 0xFFFF
    return f"{(-total) & 0xFFFF:04X}"


def append_error_detection(body: str, sequence: int) -> str:
    """Append the AY/AZ trailer to a message body (no terminator)."""
    if not 0 <= sequence <= 9:
        raise EncodingError("sequence number must be a single digit", sequence=sequence)
    prefix = f"{body}{SEQUENCE_TAG}{sequence}{CHECKSUM_TAG}"
    return prefix + checksum(prefix)


def strip_error_detection(body: str) -> Tuple[str, Optional[int]]:
    """
    Verify and remove an AY/AZ trailer from a message body.

    Returns:
        (body without trailer, sequence number or None when absent)

    Raises:
        ProtocolError: trailer present but checksum does not match
    """
    match = _TRAILER.search(body)
    if match is None:
        return body, None

    expected = checksum(body[:match.start(2)])
    received = match.group(2).upper()
    if received != expected:
        raise ProtocolError(
            "checksum mismatch",
            code=ErrorCode.E1005_CHECKSUM_MISMATCH,
            expected=expected,
            received=received,
        )

    return body[:match.start()], int(match.group(1))
