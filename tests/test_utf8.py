"""Tests for the UTF-8 decoder."""

import pytest

from xkbmon.utf8 import DecodeStatus, Utf8Decoding, decode_utf8


def ok(code_point: int, length: int) -> Utf8Decoding:
    return Utf8Decoding(DecodeStatus.OK, code_point, length)


def invalid(skip: int) -> Utf8Decoding:
    return Utf8Decoding(DecodeStatus.INVALID, None, skip)


INCOMPLETE = Utf8Decoding(DecodeStatus.INCOMPLETE)


class TestAscii:
    """Tests for single-byte sequences."""

    def test_all_ascii_bytes(self):
        for byte in range(0x80):
            assert decode_utf8(bytes([byte])) == ok(byte, 1)

    def test_nul_is_a_character(self):
        assert decode_utf8(b"\x00abc") == ok(0, 1)

    def test_only_first_character_consumed(self):
        assert decode_utf8(b"ab") == ok(ord("a"), 1)


class TestEmptyInput:
    """Tests for empty buffers."""

    def test_empty_bytes(self):
        assert decode_utf8(b"") == INCOMPLETE

    def test_none(self):
        assert decode_utf8(None) == INCOMPLETE

    def test_zero_length(self):
        assert decode_utf8(b"abc", 0) == INCOMPLETE

    def test_offset_at_end(self):
        assert decode_utf8(b"abc", offset=3) == INCOMPLETE


class TestInvalidLeadBytes:
    """Tests for bytes that can never start a sequence."""

    @pytest.mark.parametrize("lead", [*range(0x80, 0xC2), *range(0xF5, 0x100)])
    def test_skip_one(self, lead):
        assert decode_utf8(bytes([lead, 0x80, 0x80, 0x80])) == invalid(1)

    def test_lone_invalid_lead(self):
        assert decode_utf8(b"\xff") == invalid(1)

    def test_overlong_two_byte(self):
        # Overlong "/" encoded as C0 AF
        assert decode_utf8(b"\xc0\xaf") == invalid(1)
        assert decode_utf8(b"\xc0\x80") == invalid(1)
        assert decode_utf8(b"\xc1\xbf") == invalid(1)


class TestRoundTrip:
    """Canonical encodings decode to their code point."""

    @pytest.mark.parametrize(
        "code_point",
        [
            0x7F,
            0x80,
            0xE9,
            0x7FF,
            0x800,
            0x0440,
            0x20AC,
            0xD7FF,
            0xE000,
            0xFFFD,
            0xFFFF,
            0x10000,
            0x1F600,
            0x3FFFF,
            0x40000,
            0xFFFFF,
            0x100000,
            0x10FFFF,
        ],
    )
    def test_boundaries(self, code_point):
        encoded = chr(code_point).encode("utf-8")
        assert decode_utf8(encoded) == ok(code_point, len(encoded))

    def test_every_lead_byte_row(self):
        # First and last code point of each lead byte row
        for code_point in range(0x80, 0x110000, 0x40):
            if 0xD800 <= code_point <= 0xDFFF:
                continue
            for cp in (code_point, code_point + 0x3F):
                encoded = chr(cp).encode("utf-8")
                assert decode_utf8(encoded) == ok(cp, len(encoded))

    def test_trailing_bytes_ignored(self):
        assert decode_utf8("Ру".encode("utf-8")) == ok(0x0420, 2)


class TestTruncation:
    """A valid sequence with bytes missing is incomplete."""

    @pytest.mark.parametrize("code_point", [0xE9, 0x20AC, 0xFFFD, 0x10000, 0x1F600, 0x10FFFF])
    def test_last_byte_removed(self, code_point):
        encoded = chr(code_point).encode("utf-8")
        assert decode_utf8(encoded[:-1]) == INCOMPLETE

    @pytest.mark.parametrize("lead", [0xC2, 0xDF, 0xE0, 0xED, 0xEF, 0xF0, 0xF4])
    def test_lone_lead_byte(self, lead):
        assert decode_utf8(bytes([lead])) == INCOMPLETE

    def test_length_limits_examined_bytes(self):
        encoded = "€".encode("utf-8")
        assert decode_utf8(encoded, 2) == INCOMPLETE
        assert decode_utf8(encoded, 3) == ok(0x20AC, 3)


class TestNarrowedContinuationRanges:
    """First continuation byte ranges from Unicode Table 3-7."""

    def test_e0_rejects_overlong(self):
        assert decode_utf8(b"\xe0\x9f\xbf") == invalid(1)
        assert decode_utf8(b"\xe0\xa0\x80") == ok(0x800, 3)

    def test_ed_rejects_surrogates(self):
        assert decode_utf8(b"\xed\xa0\x80") == invalid(1)
        assert decode_utf8(b"\xed\xbf\xbf") == invalid(1)
        assert decode_utf8(b"\xed\x9f\xbf") == ok(0xD7FF, 3)

    def test_f0_rejects_overlong(self):
        assert decode_utf8(b"\xf0\x8f\xbf\xbf") == invalid(1)
        assert decode_utf8(b"\xf0\x90\x80\x80") == ok(0x10000, 4)

    def test_f4_rejects_above_max(self):
        assert decode_utf8(b"\xf4\x90\x80\x80") == invalid(1)
        assert decode_utf8(b"\xf4\x8f\xbf\xbf") == ok(0x10FFFF, 4)

    def test_generic_range_is_not_enough(self):
        # Each of these would pass an "all continuations are 80..BF" check
        for seq in (b"\xe0\x80\x80", b"\xed\xb0\x80", b"\xf0\x80\x80\x80", b"\xf4\xbf\xbf\xbf"):
            assert decode_utf8(seq).status is DecodeStatus.INVALID


class TestSkipCount:
    """Invalid continuations skip up to the bad byte."""

    def test_bad_first_continuation(self):
        assert decode_utf8(b"\xe2A") == invalid(1)

    def test_bad_second_continuation(self):
        assert decode_utf8(b"\xe2\x82A") == invalid(2)

    def test_bad_third_continuation(self):
        assert decode_utf8(b"\xf0\x9f\x98A") == invalid(3)

    def test_bad_byte_is_next_lead(self):
        data = b"\xe2\x82\xd0\xa0"
        first = decode_utf8(data)
        assert first == invalid(2)
        assert decode_utf8(data, offset=first.length) == ok(0x0420, 2)

    def test_continuation_as_lead(self):
        assert decode_utf8(b"\x80\x80") == invalid(1)

    def test_error_before_truncation(self):
        # Bad byte found before the buffer ends
        assert decode_utf8(b"\xf0\x9fA") == invalid(2)


class TestOffsetAndLength:
    """Tests for decoding inside a larger buffer."""

    def test_offset(self):
        data = "aЖ".encode("utf-8")
        assert decode_utf8(data, offset=1) == ok(0x0416, 2)

    def test_length_clamped_to_buffer(self):
        assert decode_utf8(b"\xc3\xa9", 100) == ok(0xE9, 2)

    def test_bytearray_and_memoryview(self):
        data = "€".encode("utf-8")
        assert decode_utf8(bytearray(data)) == ok(0x20AC, 3)
        assert decode_utf8(memoryview(data)) == ok(0x20AC, 3)

    def test_buffer_not_modified(self):
        data = bytearray(b"\xe2\x82\xac")
        decode_utf8(data)
        assert data == bytearray(b"\xe2\x82\xac")

    def test_negative_offset(self):
        with pytest.raises(ValueError, match="offset"):
            decode_utf8(b"a", offset=-1)

    def test_negative_length(self):
        with pytest.raises(ValueError, match="length"):
            decode_utf8(b"a", -1)

    def test_str_rejected(self):
        with pytest.raises(TypeError):
            decode_utf8("a")


def test_deterministic():
    data = b"\xf0\x9f\x98\x80"
    assert decode_utf8(data) == decode_utf8(data)


def test_ok_property():
    assert decode_utf8(b"a").ok
    assert not decode_utf8(b"").ok
    assert not decode_utf8(b"\xff").ok
