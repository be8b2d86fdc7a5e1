"""
SIP2 message model.

A Message is built once from a code, its fixed-field values and its
variable (tag, value) pairs, validated against the schema table, and is
immutable afterwards.

Example:
    msg = build('93', ['0', '0'], [('CN', 'siplogin'), ('CO', 'sippassword')])
    msg.to_wire()      # '9300CNsiplogin|COsippassword|\\r'
    parse(msg.to_wire()) == msg
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.errors import ProtocolError, SchemaError
from .fields import (
    MESSAGE_TERMINATOR,
    append_error_detection,
    check_tag,
    check_value,
    decode_fields,
    encode_field,
    strip_error_detection,
)
from .schema import get_schema, tag_name


@dataclass(frozen=True)
class Field:
    """Variable-length tagged field."""
    tag: str
    value: str


@dataclass(frozen=True)
class FixedField:
    """Positional fixed-width field; the label comes from the schema."""
    label: str
    value: str


@dataclass(frozen=True)
class Message:
    """
    Parsed or built SIP2 message.

    raw is the exact wire text for messages that were parsed or sent; it
    is not part of equality.
    """
    code: str
    fixed_fields: Tuple[FixedField, ...] = ()
    fields: Tuple[Field, ...] = ()
    sequence: Optional[int] = None
    raw: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return get_schema(self.code).name

    def fixed(self, label: str) -> str:
        """Value of the fixed field with the given schema label."""
        for fixed_field in self.fixed_fields:
            if fixed_field.label == label:
                return fixed_field.value
        raise KeyError(label)

    def get(self, tag: str, default: Optional[str] = None) -> Optional[str]:
        """First value for a tag."""
        for f in self.fields:
            if f.tag == tag:
                return f.value
        return default

    def get_all(self, tag: str) -> List[str]:
        """Every value for a repeated tag, in order."""
        return [f.value for f in self.fields if f.tag == tag]

    def to_wire(self, sequence: Optional[int] = None) -> str:
        """
        Serialize to wire text.

        Fixed fields are concatenated without separators; each variable
        field carries its own terminator. With a sequence number the
        AY/AZ error-detection trailer is appended.
        """
        parts = [self.code]
        parts.extend(fixed_field.value for fixed_field in self.fixed_fields)
        parts.extend(encode_field(f.tag, f.value) for f in self.fields)
        body = ''.join(parts)

        if sequence is not None:
            body = append_error_detection(body, sequence)

        return body + MESSAGE_TERMINATOR

    def to_display(self) -> str:
        """Render as aligned rows in construction order."""
        rows = [(self.code, self.name, '')]
        rows.extend(('', f.label, f.value) for f in self.fixed_fields)
        rows.extend((f.tag, tag_name(f.tag), f.value) for f in self.fields)

        width = max(len(label) for _, label, _ in rows)
        lines = []
        for key, label, value in rows:
            line = f"{key:<4}{label:<{width}}  {value}"
            lines.append(line.rstrip())
        return '\n'.join(lines)

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'name': self.name,
            'fixed': {f.label: f.value for f in self.fixed_fields},
            'fields': [[f.tag, f.value] for f in self.fields],
            'sequence': self.sequence,
        }


def build(
    code: str,
    fixed_field_values: Sequence[str],
    field_pairs: Iterable[Tuple[str, Optional[str]]] = (),
) -> Message:
    """
    Build a message validated against the schema for its code.

    Pairs whose value is None are absent and are dropped; all other
    pairs are kept in the given order.

    Raises:
        UnknownCodeError: code not in the schema table
        SchemaError: wrong fixed-field count or width, or a tag the
            code does not carry
        EncodingError: a value contains a terminator
    """
    schema = get_schema(code)
    values = list(fixed_field_values)

    if len(values) != len(schema.fixed):
        raise SchemaError(
            "fixed field count mismatch",
            message_code=code,
            expected=len(schema.fixed),
            actual=len(values),
        )

    fixed_fields = []
    for spec, value in zip(schema.fixed, values):
        if len(value) != spec.width:
            raise SchemaError(
                "fixed field width mismatch",
                message_code=code,
                label=spec.label,
                expected=spec.width,
                actual=len(value),
            )
        check_value(value, spec.label)
        fixed_fields.append(FixedField(spec.label, value))

    fields = []
    for tag, value in field_pairs:
        if value is None:
            continue
        check_tag(tag)
        if tag not in schema.tags:
            raise SchemaError("tag not allowed for message", message_code=code, tag=tag)
        check_value(value, tag)
        fields.append(Field(tag, value))

    return Message(code, tuple(fixed_fields), tuple(fields))


def parse(raw: str) -> Message:
    """
    Parse wire text back into a Message.

    Unknown tags are accepted; servers commonly send extension fields.

    Raises:
        ProtocolError: missing terminator, truncated fixed fields,
            malformed variable fields or a bad checksum
        UnknownCodeError: code not in the schema table
    """
    if not raw.endswith(MESSAGE_TERMINATOR):
        raise ProtocolError("missing message terminator", raw=raw)

    body = raw[:-len(MESSAGE_TERMINATOR)]
    if len(body) < 2:
        raise ProtocolError("message too short for a code", raw=raw)

    schema = get_schema(body[:2])
    body, sequence = strip_error_detection(body)

    offset = 2
    fixed_fields = []
    for spec in schema.fixed:
        end = offset + spec.width
        if len(body) < end:
            raise ProtocolError(
                "truncated fixed field",
                message_code=schema.code,
                label=spec.label,
            )
        fixed_fields.append(FixedField(spec.label, body[offset:end]))
        offset = end

    fields = tuple(Field(tag, value) for tag, value in decode_fields(body[offset:]))
    return Message(schema.code, tuple(fixed_fields), fields, sequence, raw=raw)
