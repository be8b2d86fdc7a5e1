"""
Tests for Phase 1: Field Codec.

CRITICAL TESTS:
1. test_terminator_in_value_rejected - '|' or '\\r' in a value never reaches the wire
2. test_repeated_tags_kept_in_order - repeated tags survive decoding in order
3. test_checksum_known_vector - AZ checksum matches the SIP2 algorithm
"""

import pytest

from sip_harness.core.errors import EncodingError, ErrorCode, ProtocolError
from sip_harness.protocol.fields import (
    append_error_detection,
    check_tag,
    checksum,
    decode_fields,
    encode_field,
    strip_error_detection,
)


class TestEncodeField:
    """Test variable field encoding."""

    def test_basic(self):
        """Tag, value and terminator are concatenated."""
        assert encode_field('AB', '123456789') == 'AB123456789|'

    def test_empty_value(self):
        """An empty value still carries its terminator."""
        assert encode_field('AO', '') == 'AO|'

    @pytest.mark.parametrize('value', ['a|b', 'a\rb', '|', '\r'])
    def test_terminator_in_value_rejected(self, value):
        """Values containing a terminator cannot be encoded."""
        with pytest.raises(EncodingError) as exc:
            encode_field('AB', value)
        assert exc.value.code == ErrorCode.E1002_ENCODING_FAILED

    @pytest.mark.parametrize('tag', ['A', 'ABC', '', '  ', 'A|', 'A\r'])
    def test_bad_tag_rejected(self, tag):
        """Tags are exactly two printable characters."""
        with pytest.raises(EncodingError):
            check_tag(tag)

    def test_unicode_value(self):
        """Non-ASCII text passes through unchanged."""
        assert encode_field('AJ', 'Ærø') == 'AJÆrø|'


class TestDecodeFields:
    """Test variable field decoding."""

    def test_empty(self):
        """No variable section decodes to no fields."""
        assert decode_fields('') == []

    def test_pairs_in_order(self):
        """Fields decode to ordered (tag, value) pairs."""
        assert decode_fields('AOmyplace|AB123|ACsecret|') == [
            ('AO', 'myplace'),
            ('AB', '123'),
            ('AC', 'secret'),
        ]

    def test_repeated_tags_kept_in_order(self):
        """Repeated tags are all kept, in wire order."""
        pairs = decode_fields('AUone|AUtwo|AUthree|')
        assert pairs == [('AU', 'one'), ('AU', 'two'), ('AU', 'three')]

    def test_missing_final_terminator_accepted(self):
        """A last field without its terminator is still decoded."""
        assert decode_fields('AOx|ABy') == [('AO', 'x'), ('AB', 'y')]

    def test_empty_value(self):
        """A tag with nothing after it decodes to an empty value."""
        assert decode_fields('AO|') == [('AO', '')]

    def test_short_segment_rejected(self):
        """A segment too short for a tag is malformed."""
        with pytest.raises(ProtocolError) as exc:
            decode_fields('AOx|B|')
        assert exc.value.context['position'] == 1

    def test_empty_segment_rejected(self):
        """Two terminators in a row leave an empty segment."""
        with pytest.raises(ProtocolError):
            decode_fields('AOx||ABy|')

    def test_encode_decode_agree(self):
        """Encoded fields decode back to the same pairs."""
        pairs = [('CN', 'siplogin'), ('CO', 'sippassword'), ('CP', '')]
        raw = ''.join(encode_field(tag, value) for tag, value in pairs)
        assert decode_fields(raw) == pairs


class TestErrorDetection:
    """Test the AY/AZ trailer."""

    def test_checksum_known_vector(self):
        """Checksum is the negated 16-bit character sum."""
        assert checksum('9300CNsiplogin|COsippassword|AY0AZ') == 'F390'
        assert checksum('941AY0AZ') == 'FDFD'

    def test_checksum_is_four_upper_hex(self):
        """Checksums are always four upper-case hex digits."""
        value = checksum('99')
        assert len(value) == 4
        assert value == value.upper()

    def test_checksum_cancels_sum(self):
        """Character sum plus checksum is zero modulo 2**16."""
        text = '9300CNLoginUserID|COLoginPassword|CPLocationCode|AY5AZ'
        total = sum(ord(c) for c in text) + int(checksum(text), 16)
        assert total & 0xFFFF == 0

    def test_append(self):
        """Trailer is AY, one digit, AZ and the checksum."""
        body = append_error_detection('9300CNsiplogin|COsippassword|', 0)
        assert body == '9300CNsiplogin|COsippassword|AY0AZF390'

    @pytest.mark.parametrize('sequence', [-1, 10])
    def test_append_bad_sequence(self, sequence):
        """Sequence numbers are single digits."""
        with pytest.raises(EncodingError):
            append_error_detection('941', sequence)

    def test_strip_valid(self):
        """A valid trailer is removed and its sequence returned."""
        assert strip_error_detection('941AY0AZFDFD') == ('941', 0)

    def test_strip_lower_case_checksum(self):
        """Lower-case hex digits verify too."""
        assert strip_error_detection('941AY0AZfdfd') == ('941', 0)

    def test_strip_absent(self):
        """Bodies without a trailer are returned unchanged."""
        assert strip_error_detection('941') == ('941', None)

    def test_strip_mismatch(self):
        """A wrong checksum is a protocol error."""
        with pytest.raises(ProtocolError) as exc:
            strip_error_detection('941AY0AZFDFE')
        assert exc.value.code == ErrorCode.E1005_CHECKSUM_MISMATCH
        assert exc.value.context['expected'] == 'FDFD'
