"""Validating UTF-8 decoder (one code point at a time)."""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]

# Longest well-formed UTF-8 sequence
MAX_ENCODED_CODE_POINT_SIZE = 4

FIRST_LEAD_BYTE = 0xC2
LAST_LEAD_BYTE = 0xF4


class DecodeStatus(Enum):
    OK = "ok"
    INCOMPLETE = "incomplete"
    INVALID = "invalid"


@dataclass(frozen=True)
class Utf8Decoding:
    """
    Result of decoding a single code point.

    For OK results ``length`` is the number of bytes consumed (1..4).
    For INVALID results it is the number of bytes to skip before the next
    attempt (always >= 1). INCOMPLETE results consume nothing.
    """

    status: DecodeStatus
    code_point: Optional[int] = None
    length: int = 0

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.OK


INCOMPLETE = Utf8Decoding(DecodeStatus.INCOMPLETE)


class _LeadByte(NamedTuple):
    high: int
    ranges: tuple[tuple[int, int], tuple[int, int], tuple[int, int]]
    count: int


_ANY = (0x80, 0xBF)

# Rows are indexed by (lead byte - 0xC2). Narrowed first-continuation ranges
# follow Unicode Table 3-7: E0 excludes overlongs, ED excludes surrogates,
# F0 excludes overlongs and F4 excludes code points above U+10FFFF.
_LEAD_BYTES: tuple[_LeadByte, ...] = (
    # C2..DF: two-byte sequences
    _LeadByte(0x00000080, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000000C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000100, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000140, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000180, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000001C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000200, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000240, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000280, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000002C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000300, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000340, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000380, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000003C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000400, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000440, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000480, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000004C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000500, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000540, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000580, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000005C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000600, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000640, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000680, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000006C0, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000700, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000740, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x00000780, (_ANY, _ANY, _ANY), 1),
    _LeadByte(0x000007C0, (_ANY, _ANY, _ANY), 1),
    # E0..EF: three-byte sequences
    _LeadByte(0x00000000, ((0xA0, 0xBF), _ANY, _ANY), 2),
    _LeadByte(0x00001000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00002000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00003000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00004000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00005000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00006000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00007000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00008000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x00009000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x0000A000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x0000B000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x0000C000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x0000D000, ((0x80, 0x9F), _ANY, _ANY), 2),
    _LeadByte(0x0000E000, (_ANY, _ANY, _ANY), 2),
    _LeadByte(0x0000F000, (_ANY, _ANY, _ANY), 2),
    # F0..F4: four-byte sequences
    _LeadByte(0x00000000, ((0x90, 0xBF), _ANY, _ANY), 3),
    _LeadByte(0x00040000, (_ANY, _ANY, _ANY), 3),
    _LeadByte(0x00080000, (_ANY, _ANY, _ANY), 3),
    _LeadByte(0x000C0000, (_ANY, _ANY, _ANY), 3),
    _LeadByte(0x00100000, ((0x80, 0x8F), _ANY, _ANY), 3),
)


def decode_utf8(
    data: Optional[BytesLike],
    length: Optional[int] = None,
    offset: int = 0,
) -> Utf8Decoding:
    """
    Decode the code point starting at ``data[offset]``.

    At most ``length`` bytes are examined (default: everything up to the end
    of ``data``). The buffer is only read.

    Args:
        data: Byte buffer, may hold arbitrary bytes
        length: Number of bytes available from ``offset``
        offset: Position of the lead byte

    Returns:
        OK with the code point and the number of bytes it occupies,
        INCOMPLETE when the buffer ends before the sequence does (or is empty),
        INVALID with the number of bytes to skip for an ill-formed sequence

    Raises:
        TypeError: If data is not bytes-like
        ValueError: If offset or length is negative
    """
    if data is None:
        return INCOMPLETE
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected a bytes-like object, got {type(data).__name__}")
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")

    available = max(len(data) - offset, 0)
    if length is None:
        length = available
    elif length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    else:
        length = min(length, available)

    # Empty input is always incomplete
    if length == 0:
        return INCOMPLETE

    lead = data[offset]
    if lead <= 0x7F:
        return Utf8Decoding(DecodeStatus.OK, lead, 1)

    if not FIRST_LEAD_BYTE <= lead <= LAST_LEAD_BYTE:
        return Utf8Decoding(DecodeStatus.INVALID, None, 1)

    entry = _LEAD_BYTES[lead - FIRST_LEAD_BYTE]
    code_point = entry.high
    shift = entry.count * 6

    for i in range(min(length - 1, entry.count)):
        byte = data[offset + 1 + i]
        low, high = entry.ranges[i]
        if not low <= byte <= high:
            return Utf8Decoding(DecodeStatus.INVALID, None, i + 1)

        shift -= 6
        code_point |= (byte & 0x3F) << shift

    if shift == 0:
        return Utf8Decoding(DecodeStatus.OK, code_point, entry.count + 1)

    return INCOMPLETE
