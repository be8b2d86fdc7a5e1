"""
Tests for Phase 2: Message Model.

CRITICAL TESTS:
1. test_every_schema_round_trips - parse(to_wire(m)) == m for every code
2. test_wrong_fixed_count_rejected - schema mismatches never build
3. test_parse_with_trailer - error-detection trailer is verified and removed
"""

import pytest

from sip_harness.core.errors import (
    EncodingError,
    ErrorCode,
    ProtocolError,
    SchemaError,
    UnknownCodeError,
)
from sip_harness.protocol import SCHEMAS, Field, FixedField, build, parse, sip_timestamp
from sip_harness.protocol.schema import get_schema, tag_name

from conftest import TS


def _filler(schema):
    """Fixed-field values of the right widths."""
    return ['X' * spec.width for spec in schema.fixed]


class TestBuild:
    """Test building messages against the schema table."""

    def test_login_wire(self):
        """Login serializes with fixed fields then tagged fields."""
        msg = build('93', ['0', '0'], [('CN', 'siplogin'), ('CO', 'sippassword')])
        assert msg.to_wire() == '9300CNsiplogin|COsippassword|\r'

    def test_fields_are_ordered(self):
        """Fields keep the order they were given in."""
        msg = build('17', [TS], [('AO', 'myplace'), ('AB', '123'), ('AC', 'pw')])
        assert [f.tag for f in msg.fields] == ['AO', 'AB', 'AC']

    def test_none_values_dropped(self):
        """Absent inputs do not appear on the wire."""
        msg = build('93', ['0', '0'], [('CN', 'a'), ('CO', 'b'), ('CP', None)])
        assert msg.get('CP') is None
        assert 'CP' not in msg.to_wire()

    def test_empty_values_kept(self):
        """Empty strings are present fields."""
        msg = build('17', [TS], [('AO', ''), ('AB', '1')])
        assert msg.to_wire() == f'17{TS}AO|AB1|\r'

    @pytest.mark.parametrize('code', sorted(SCHEMAS))
    def test_wrong_fixed_count_rejected(self, code):
        """Too many fixed fields never build."""
        schema = SCHEMAS[code]
        with pytest.raises(SchemaError) as exc:
            build(code, _filler(schema) + ['X'])
        assert exc.value.code == ErrorCode.E1001_SCHEMA_MISMATCH

    def test_missing_fixed_field_rejected(self):
        """Too few fixed fields never build."""
        with pytest.raises(SchemaError):
            build('93', ['0'])

    @pytest.mark.parametrize('value', ['', '00', '2.0', '2.000'])
    def test_wrong_width_rejected(self, value):
        """Fixed values must match their declared width."""
        with pytest.raises(SchemaError) as exc:
            build('99', ['0', '080', value])
        assert exc.value.context['label'] == 'protocol version'

    def test_disallowed_tag_rejected(self):
        """Tags outside the code's list are schema errors."""
        with pytest.raises(SchemaError):
            build('93', ['0', '0'], [('AB', '123')])

    def test_terminator_in_value_rejected(self):
        """A value with '|' is an encoding error."""
        with pytest.raises(EncodingError):
            build('93', ['0', '0'], [('CN', 'bad|name')])

    def test_terminator_in_fixed_value_rejected(self):
        """Fixed values are checked for terminators too."""
        with pytest.raises(EncodingError):
            build('94', ['|'])

    def test_unknown_code(self):
        """Unknown codes raise UnknownCodeError."""
        with pytest.raises(UnknownCodeError) as exc:
            build('00', [])
        assert exc.value.context['message_code'] == '00'

    def test_message_is_immutable(self):
        """Built messages cannot be changed."""
        msg = build('94', ['1'])
        with pytest.raises(AttributeError):
            msg.code = '93'


class TestRoundTrip:
    """Test that parse inverts to_wire."""

    @pytest.mark.parametrize('code', sorted(SCHEMAS))
    def test_every_schema_round_trips(self, code):
        """Every code, with every allowed tag, survives the wire."""
        schema = SCHEMAS[code]
        pairs = [(tag, f'v{i}') for i, tag in enumerate(schema.tags)]
        msg = build(code, _filler(schema), pairs)
        assert parse(msg.to_wire()) == msg

    def test_repeated_tags(self):
        """Repeated tags come back in order."""
        msg = build('64', [' ' * 14, '001', TS] + ['0002'] + ['0000'] * 5, [
            ('AA', 'p1'),
            ('AS', 'hold-a'),
            ('AS', 'hold-b'),
        ])
        parsed = parse(msg.to_wire())
        assert parsed.get_all('AS') == ['hold-a', 'hold-b']
        assert parsed.fixed('hold items count') == '0002'

    def test_sequence_round_trip(self):
        """A message sent with a sequence number parses with it."""
        msg = build('93', ['0', '0'], [('CN', 'siplogin'), ('CO', 'sippassword')])
        wire = msg.to_wire(sequence=0)
        assert wire == '9300CNsiplogin|COsippassword|AY0AZF390\r'

        parsed = parse(wire)
        assert parsed.sequence == 0
        assert parsed.fields == msg.fields


class TestParse:
    """Test parsing wire text."""

    def test_fixed_fields_labelled(self):
        """Fixed fields are split by width and labelled."""
        msg = parse(f'18030001{TS}AB123|AJMoby Dick|\r')
        assert msg.fixed_fields == (
            FixedField('circulation status', '03'),
            FixedField('security marker', '00'),
            FixedField('fee type', '01'),
            FixedField('transaction date', TS),
        )
        assert msg.fields == (Field('AB', '123'), Field('AJ', 'Moby Dick'))

    def test_parse_with_trailer(self):
        """Trailer is verified and not kept as a field."""
        msg = parse('941AY0AZFDFD\r')
        assert msg.fixed('ok') == '1'
        assert msg.fields == ()
        assert msg.sequence == 0

    def test_bad_checksum(self):
        """A corrupted trailer is rejected."""
        with pytest.raises(ProtocolError) as exc:
            parse('940AY0AZFDFD\r')
        assert exc.value.code == ErrorCode.E1005_CHECKSUM_MISMATCH

    def test_missing_terminator(self):
        """Wire text without '\\r' is malformed."""
        with pytest.raises(ProtocolError):
            parse('941')

    def test_too_short(self):
        """A lone character cannot hold a code."""
        with pytest.raises(ProtocolError):
            parse('9\r')

    def test_truncated_fixed_fields(self):
        """Fixed fields shorter than the schema are malformed."""
        with pytest.raises(ProtocolError) as exc:
            parse('18030001\r')
        assert exc.value.context['label'] == 'transaction date'

    def test_unknown_code(self):
        """Unknown codes are reported as such."""
        with pytest.raises(UnknownCodeError):
            parse('ZZ\r')

    def test_unknown_tags_accepted(self):
        """Extension tags from servers are kept."""
        msg = parse('941XXvendor|\r')
        assert msg.get('XX') == 'vendor'

    def test_lookup_helpers(self):
        """get returns the first value or the default."""
        msg = parse('941\r')
        assert msg.get('AF') is None
        assert msg.get('AF', '') == ''
        assert msg.get_all('AF') == []
        with pytest.raises(KeyError):
            msg.fixed('missing')


class TestDisplay:
    """Test the human-readable form."""

    def test_display_order_and_labels(self):
        """Header, fixed fields and tagged fields appear in order."""
        msg = build('17', [TS], [('AO', 'myplace'), ('AB', '123456789')])
        lines = msg.to_display().splitlines()

        assert lines[0].startswith('17')
        assert 'Item Information' in lines[0]
        assert 'transaction date' in lines[1] and lines[1].endswith(TS)
        assert lines[2].startswith('AO') and 'institution id' in lines[2]
        assert lines[3].startswith('AB') and lines[3].endswith('123456789')

    def test_unknown_tag_label(self):
        """Unknown tags display as unknown."""
        assert tag_name('XX') == 'unknown'
        assert 'unknown' in parse('941XXvendor|\r').to_display()

    def test_to_dict(self):
        """Dictionary form keeps every part of the message."""
        data = parse('941AY3AZFDFA\r').to_dict()
        assert data['code'] == '94'
        assert data['name'] == 'Login Response'
        assert data['fixed'] == {'ok': '1'}
        assert data['sequence'] == 3


class TestSchemaTable:
    """Test the schema table itself."""

    def test_request_codes_present(self):
        """Every request code the catalog sends has a schema."""
        for code in ('93', '99', '17', '09', '11', '23', '63', '35'):
            assert get_schema(code).code == code

    def test_response_codes_present(self):
        """Every response code has a schema."""
        for code in ('94', '98', '18', '10', '12', '24', '64', '36'):
            assert get_schema(code).code == code

    def test_fixed_widths(self):
        """Widths add up to the SIP2 2.00 layouts."""
        assert get_schema('93').fixed_width == 2
        assert get_schema('99').fixed_width == 8
        assert get_schema('17').fixed_width == 18
        assert get_schema('98').fixed_width == 34
        assert get_schema('64').fixed_width == 59


class TestTimestamp:
    """Test SIP2 timestamps."""

    def test_width(self):
        """Timestamps are always 18 characters."""
        assert len(sip_timestamp()) == 18
        assert len(sip_timestamp(utc=True)) == 18

    def test_local_format(self):
        """Local time carries a blank zone."""
        from datetime import datetime
        assert sip_timestamp(datetime(2026, 10, 17, 10, 15, 0)) == '20261017    101500'

    def test_utc_format(self):
        """UTC carries a 'Z' zone."""
        from datetime import datetime, timezone
        when = datetime(2026, 10, 17, 10, 15, 0, tzinfo=timezone.utc)
        assert sip_timestamp(when, utc=True) == '20261017   Z101500'
