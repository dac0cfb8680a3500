"""Short layout labels: the first two valid characters of a layout name."""

from typing import Optional

from .utf8 import MAX_ENCODED_CODE_POINT_SIZE, BytesLike, DecodeStatus, decode_utf8

SHORT_LABEL_CHARS = 2

# Two encoded code points plus the terminating NUL
SHORT_LABEL_CAPACITY = SHORT_LABEL_CHARS * MAX_ENCODED_CODE_POINT_SIZE + 1


class ShortLabel:
    """
    Fixed-capacity label holding up to two complete UTF-8 sequences.

    The content is stored in a NUL-terminated buffer of
    ``SHORT_LABEL_CAPACITY`` bytes, the same shape the label has on the
    X side. An empty label is falsy.
    """

    __slots__ = ("_buffer", "_size")

    def __init__(self, encoded: bytes = b""):
        if len(encoded) >= SHORT_LABEL_CAPACITY:
            raise ValueError(
                f"label content is {len(encoded)} bytes, "
                f"at most {SHORT_LABEL_CAPACITY - 1} fit"
            )
        if b"\0" in encoded:
            raise ValueError("label content must not contain NUL bytes")
        self._size = len(encoded)
        self._buffer = bytes(encoded).ljust(SHORT_LABEL_CAPACITY, b"\0")

    @property
    def buffer(self) -> bytes:
        """Whole NUL-terminated buffer, padded with NULs to full capacity."""
        return self._buffer

    @property
    def encoded(self) -> bytes:
        """Label bytes before the terminator."""
        return self._buffer[: self._size]

    @property
    def text(self) -> str:
        # Only complete, validated sequences are ever stored
        return self.encoded.decode("utf-8")

    def __bool__(self) -> bool:
        return self._size > 0

    def __len__(self) -> int:
        return self._size

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ShortLabel):
            return self._buffer == other._buffer
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._buffer)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"ShortLabel({self.encoded!r})"


EMPTY_LABEL = ShortLabel()


def build_short_label(name: Optional[BytesLike]) -> ShortLabel:
    """
    Build the short label for a raw layout name.

    The name is read as a C string (it ends at the first NUL byte, if any).
    Ill-formed sequences are dropped and do not count towards the two
    characters; a sequence cut off by the end of the name stops the scan.
    Valid sequences are copied byte for byte.

    Args:
        name: Raw name bytes of arbitrary length and validity, or None

    Returns:
        ShortLabel with zero, one or two characters
    """
    if name is None:
        return EMPTY_LABEL

    src = bytes(name)
    terminator = src.find(b"\0")
    remaining = terminator if terminator >= 0 else len(src)

    dst = bytearray(SHORT_LABEL_CAPACITY)
    read_pos = 0
    write_pos = 0
    emitted = 0

    while emitted < SHORT_LABEL_CHARS and remaining > 0:
        decoded = decode_utf8(src, remaining, read_pos)

        if decoded.status is DecodeStatus.INCOMPLETE:
            break
        if decoded.status is DecodeStatus.INVALID:
            read_pos += decoded.length
            remaining -= decoded.length
            continue

        n = decoded.length
        dst[write_pos : write_pos + n] = src[read_pos : read_pos + n]
        read_pos += n
        write_pos += n
        remaining -= n
        emitted += 1

    dst[write_pos] = 0
    return ShortLabel(bytes(dst[:write_pos]))
