"""Variable-length decoding of MDEC bitstreams into run-level words.

A BS image is a header of four 16-bit words (run-level size, magic,
quantiser scale, type) followed by Huffman coded data. Decoding produces
the run-level stream the MDEC consumes: two header words, then for each
8x8 block a DC word, AC words ``(run << 10) | (level & 0x3ff)`` and an
end-of-block word ``0xfe00``.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence

EOB = 0xFE00
HEADER_WORDS = 4

_SBIT = 17
_MASK32 = 0xFFFFFFFF
_MAX_DC_BITS = 16


def _code1(run: int, level: int, bits: int) -> int:
    return (run << 10) | (level & 0x3FF) | (bits << 16)


def _pair(run: int, level: int, bits: int) -> tuple[int, int]:
    """A code with a trailing sign bit: positive then negative level."""
    return _code1(run, level, bits + 1), _code1(run, -level, bits + 1)


def _same(run: int, level: int, bits: int) -> tuple[int, int]:
    value = _code1(run, level, bits)
    return value, value


def _dup(run: int, level: int, bits: int) -> tuple[int, int]:
    value = _code1(run, level, bits + 1)
    return value, value


def _table(*pairs: tuple[int, ...]) -> tuple[int, ...]:
    return tuple(value for pair in pairs for value in pair)


EOB_CODE = _code1(63, 512, 2)
ESCAPE_CODE = _code1(63, 0, 6)

# Codes 0100 ... 1xxx.
_VLC_NEXT = _table(
    _pair(0, 2, 4), _pair(2, 1, 4), _dup(1, 1, 3), _dup(1, -1, 3),
    *[_same(63, 512, 2)] * 4,
    _dup(0, 1, 2), _dup(0, 1, 2), _dup(0, -1, 2), _dup(0, -1, 2),
)

# Codes 000001xx ... 00111xxx.
_VLC0 = _table(
    *[_same(63, 0, 6)] * 4,
    _dup(2, 2, 7), _dup(2, -2, 7), _dup(9, 1, 7), _dup(9, -1, 7),
    _dup(0, 4, 7), _dup(0, -4, 7), _dup(8, 1, 7), _dup(8, -1, 7),
    _dup(7, 1, 6), _dup(7, 1, 6), _dup(7, -1, 6), _dup(7, -1, 6),
    _dup(6, 1, 6), _dup(6, 1, 6), _dup(6, -1, 6), _dup(6, -1, 6),
    _dup(1, 2, 6), _dup(1, 2, 6), _dup(1, -2, 6), _dup(1, -2, 6),
    _dup(5, 1, 6), _dup(5, 1, 6), _dup(5, -1, 6), _dup(5, -1, 6),
    _pair(13, 1, 8), _pair(0, 6, 8), _pair(12, 1, 8), _pair(11, 1, 8),
    _pair(3, 2, 8), _pair(1, 3, 8), _pair(0, 5, 8), _pair(10, 1, 8),
    *[_dup(0, 3, 5)] * 4,
    *[_dup(0, -3, 5)] * 4,
    *[_dup(4, 1, 5)] * 4,
    *[_dup(4, -1, 5)] * 4,
    *[_dup(3, 1, 5)] * 4,
    *[_dup(3, -1, 5)] * 4,
)


def _pairs(bits: int, entries: Sequence[tuple[int, int]]) -> tuple[int, ...]:
    return _table(*(_pair(run, level, bits) for run, level in entries))


# Codes 0000001000 ... 0000001111.
_VLC1 = _pairs(10, [(16, 1), (5, 2), (0, 7), (2, 3), (1, 4), (15, 1), (14, 1), (4, 2)])

# Codes 000000010000 ... 000000011111.
_VLC2 = _pairs(12, [
    (0, 11), (8, 2), (4, 3), (0, 10), (2, 4), (7, 2), (21, 1), (20, 1),
    (0, 9), (19, 1), (18, 1), (1, 5), (3, 3), (0, 8), (6, 2), (17, 1),
])

# Codes 0000000010000 ... 0000000011111.
_VLC3 = _pairs(13, [
    (10, 2), (9, 2), (5, 3), (3, 4), (2, 5), (1, 7), (1, 6), (0, 15),
    (0, 14), (0, 13), (0, 12), (26, 1), (25, 1), (24, 1), (23, 1), (22, 1),
])

# Codes 00000000010000 ... 00000000011111.
_VLC4 = _pairs(14, [(0, level) for level in range(31, 15, -1)])

# Codes 000000000010000 ... 000000000011111.
_VLC5 = _pairs(15, [(0, level) for level in range(40, 31, -1)]
               + [(1, level) for level in range(14, 7, -1)])

# Codes 0000000000010000 ... 0000000000011111.
_VLC6 = _pairs(16, [
    (1, 18), (1, 17), (1, 16), (1, 15), (6, 3), (16, 2), (15, 2), (14, 2),
    (13, 2), (12, 2), (11, 2), (31, 1), (30, 1), (29, 1), (28, 1), (27, 1),
])

_DC_SHORT_6BIT = tuple(_code1(0, level, 6) for level in (-7, -6, -5, -4, 4, 5, 6, 7))

_DC_Y = (
    (_code1(0, -1, 3),) * 8
    + (_code1(0, 1, 3),) * 8
    + (_code1(0, -3, 4),) * 4
    + (_code1(0, -2, 4),) * 4
    + (_code1(0, 2, 4),) * 4
    + (_code1(0, 3, 4),) * 4
    + (_code1(0, 0, 3),) * 8
    + _DC_SHORT_6BIT
)

_DC_UV = (
    (_code1(0, 0, 2),) * 16
    + (_code1(0, -1, 3),) * 8
    + (_code1(0, 1, 3),) * 8
    + (_code1(0, -3, 4),) * 4
    + (_code1(0, -2, 4),) * 4
    + (_code1(0, 2, 4),) * 4
    + (_code1(0, 3, 4),) * 4
    + _DC_SHORT_6BIT
)


def _valof(code: int) -> int:
    """Sign-extend the 10-bit level field of a code."""
    value = code & 0x3FF
    return value - 0x400 if value & 0x200 else value


class BitReader:
    """Reads a stream of 16-bit words MSB first through a 32-bit window.

    Words past the end of the input read as zero.
    """

    def __init__(self, words: Sequence[int]) -> None:
        self._words = [int(w) & 0xFFFF for w in words]
        self._pos = 0
        self._bitbuf = ((self._next_word() << 16) | self._next_word()) & _MASK32
        self._incnt = -16

    def _next_word(self) -> int:
        if self._pos < len(self._words):
            word = self._words[self._pos]
        else:
            word = 0
        self._pos += 1
        return word

    def show(self, nbits: int) -> int:
        """Return the next ``nbits`` bits without consuming them."""
        if not 0 <= nbits <= 32:
            raise ValueError("nbits must be in 0..32")
        return self._bitbuf >> (32 - nbits)

    def flush(self, nbits: int) -> None:
        """Consume ``nbits`` bits and refill the window."""
        if nbits < 0:
            raise ValueError("nbits must not be negative")
        self._bitbuf = (self._bitbuf << nbits) & _MASK32
        self._incnt += nbits
        while self._incnt >= 0:
            self._bitbuf = (self._bitbuf | (self._next_word() << self._incnt)) & _MASK32
            self._incnt -= 16


def _as_words(data: bytes | bytearray | memoryview | Sequence[int]) -> list[int]:
    if isinstance(data, (bytes, bytearray, memoryview)):
        raw = bytes(data)
        if len(raw) % 2:
            raise ValueError("bitstream length must be a whole number of 16-bit words")
        return list(struct.unpack(f"<{len(raw) // 2}H", raw))
    words = [int(w) for w in data]
    if any(not 0 <= w <= 0xFFFF for w in words):
        raise ValueError("bitstream words must be in 0..0xffff")
    return words


def _decode_dc(reader: BitReader, n: int, last_dc: list[int]) -> int:
    """Decode a differential DC code for block ``n`` of a macroblock."""
    code = reader.show(6)
    if n >= 2:
        slot = 2
        if code < len(_DC_Y):
            entry = _DC_Y[code]
            last_dc[slot] += _valof(entry) * 4
            return (entry & 0xFFFF0000) | (last_dc[slot] & 0x3FF)
        bit = 3
        while reader.show(bit) & 1:
            bit += 1
            if bit >= _MAX_DC_BITS:
                raise ValueError("invalid luma DC code")
        bit += 1
        nbit = bit * 2 - 1
    else:
        slot = n
        if code < len(_DC_UV):
            entry = _DC_UV[code]
            last_dc[slot] += _valof(entry) * 4
            return (entry & 0xFFFF0000) | (last_dc[slot] & 0x3FF)
        bit = 4
        while reader.show(bit) & 1:
            bit += 1
            if bit > _MAX_DC_BITS:
                raise ValueError("invalid chroma DC code")
        nbit = bit * 2
    value = reader.show(nbit) & ((1 << bit) - 1)
    if not value & (1 << (bit - 1)):
        value -= (1 << bit) - 1
    last_dc[slot] += value * 4
    return (nbit << 16) | (last_dc[slot] & 0x3FF)


def _decode_ac(reader: BitReader) -> int | None:
    """Look up the next AC code; None when no valid code follows."""
    code = reader.show(_SBIT)
    if code >= 1 << (_SBIT - 2):
        return _VLC_NEXT[(code >> 12) - 8]
    if code >= 1 << (_SBIT - 6):
        entry = _VLC0[(code >> 8) - 8]
        if entry == ESCAPE_CODE:
            reader.flush(6)
            entry = reader.show(16) | (16 << 16)
        return entry
    if code >= 1 << (_SBIT - 7):
        return _VLC1[(code >> 6) - 16]
    if code >= 1 << (_SBIT - 8):
        return _VLC2[(code >> 4) - 32]
    if code >= 1 << (_SBIT - 9):
        return _VLC3[(code >> 3) - 32]
    if code >= 1 << (_SBIT - 10):
        return _VLC4[(code >> 2) - 32]
    if code >= 1 << (_SBIT - 11):
        return _VLC5[(code >> 1) - 32]
    if code >= 1 << (_SBIT - 12):
        return _VLC6[code - 32]
    return None


def decode_vlc(data: bytes | bytearray | memoryview | Sequence[int]) -> list[int]:
    """Decode a BS bitstream into run-level words.

    ``data`` is the little-endian byte image or its 16-bit words, header
    included. The result holds the first two header words followed by
    ``2 * length`` run-level words; space left when the codes run out is
    filled with end-of-block words.
    """
    words = _as_words(data)
    if len(words) < HEADER_WORDS:
        raise ValueError(f"a BS header needs {HEADER_WORDS} words, got {len(words)}")
    length, magic, q_scale, kind = words[:HEADER_WORDS]
    out = [length, magic]
    end = 2 + length * 2
    q_code = q_scale << 10
    reader = BitReader(words[HEADER_WORDS:])
    last_dc = [0, 0, 0]
    n = 0

    while len(out) < end:
        if kind == 2:
            code2 = reader.show(10) | (10 << 16)
        else:
            code2 = _decode_dc(reader, n, last_dc)
            n = (n + 1) % 6
        code2 |= q_code

        while len(out) < end:
            out.append(code2 & 0xFFFF)
            reader.flush((code2 & _MASK32) >> 16)
            entry = _decode_ac(reader)
            if entry is None:
                out.extend([EOB] * (end - len(out)))
                return out
            code2 = entry
            if code2 == EOB_CODE:
                break
        if len(out) < end:
            out.append(code2 & 0xFFFF)
        reader.flush(2)

    return out