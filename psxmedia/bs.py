"""Encoder for the MDEC bitstream (BS) image format."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from psxmedia.dct import DCT_SIZE2, forward_dct

BS_MAGIC = 0x3800
BS_TYPE = 2
BS_HEADER_WORDS = 4

_BITBUF_SIZE = 16
_END_CODE = 32704
_EOB_CODE = (2, 2)
_ESCAPE_CODE = (1, 6)

ZSCAN = (
    0, 1, 8, 16, 9, 2, 3, 10,
    17, 24, 32, 25, 18, 11, 4, 5,
    12, 19, 26, 33, 40, 48, 41, 34,
    27, 20, 13, 6, 7, 14, 21, 28,
    35, 42, 49, 56, 57, 50, 43, 36,
    29, 22, 15, 23, 30, 37, 44, 51,
    58, 59, 52, 45, 38, 31, 39, 46,
    53, 60, 61, 54, 47, 55, 62, 63,
)

_DEFAULT_IQTAB = (
    2, 16, 16, 19, 16, 19, 22, 22, 22, 22, 22, 22, 26, 24, 26, 27,
    27, 27, 26, 26, 26, 26, 27, 27, 27, 29, 29, 29, 34, 34, 34, 29,
    29, 29, 27, 27, 29, 29, 32, 32, 34, 34, 37, 38, 37, 35, 35, 34,
    35, 38, 38, 40, 40, 40, 48, 48, 46, 46, 56, 56, 58, 69, 69, 83,
)

DC_Y_TABLE = (
    (4, 3), (0, 2), (1, 2), (5, 3), (6, 3),
    (14, 4), (30, 5), (62, 6), (126, 7), (254, 8),
)

DC_C_TABLE = (
    (0, 2), (1, 2), (2, 2), (6, 3), (14, 4),
    (30, 5), (62, 6), (126, 7), (254, 8), (510, 9),
)

# AC codes indexed by run, then by absolute level - 1: (code, bit count).
HUFF_TABLE = (
    ((6, 3), (8, 5), (10, 6), (12, 8), (76, 9), (66, 9), (20, 11), (58, 13),
     (48, 13), (38, 13), (32, 13), (52, 14), (50, 14), (48, 14), (46, 14),
     (62, 15), (60, 15), (58, 15), (56, 15), (54, 15), (52, 15), (50, 15),
     (48, 15), (46, 15), (44, 15), (42, 15), (40, 15), (38, 15), (36, 15),
     (34, 15), (32, 15), (48, 16), (46, 16), (44, 16), (42, 16), (40, 16),
     (38, 16), (36, 16), (34, 16), (32, 16)),
    ((6, 4), (12, 7), (74, 9), (24, 11), (54, 13), (44, 14), (42, 14),
     (62, 16), (60, 16), (58, 16), (56, 16), (54, 16), (52, 16), (50, 16),
     (38, 17), (36, 17), (34, 17), (32, 17)),
    ((10, 5), (8, 8), (22, 11), (40, 13), (40, 14)),
    ((14, 6), (72, 9), (56, 13), (38, 14)),
    ((12, 6), (30, 11), (36, 13)),
    ((14, 7), (18, 11), (36, 14)),
    ((10, 7), (60, 13), (40, 17)),
    ((8, 7), (42, 13)),
    ((14, 8), (34, 13)),
    ((10, 8), (34, 14)),
    ((78, 9), (32, 14)),
    ((70, 9), (52, 17)),
    ((68, 9), (50, 17)),
    ((64, 9), (48, 17)),
    ((28, 11), (46, 17)),
    ((26, 11), (44, 17)),
    ((16, 11), (42, 17)),
    ((62, 13),),
    ((52, 13),),
    ((50, 13),),
    ((46, 13),),
    ((44, 13),),
    ((62, 14),),
    ((60, 14),),
    ((58, 14),),
    ((56, 14),),
    ((54, 14),),
    ((62, 17),),
    ((60, 17),),
    ((58, 17),),
    ((56, 17),),
    ((54, 17),),
)

MAX_LEVEL = tuple(len(codes) for codes in HUFF_TABLE)

_MACROBLOCK = 16
_MACROBLOCK_PIXELS = _MACROBLOCK * _MACROBLOCK


def _tdiv(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def default_iqtab() -> tuple[int, ...]:
    """Return the standard 64-entry inverse quantisation table."""
    return _DEFAULT_IQTAB


def round_table() -> tuple[int, ...]:
    """Return the 768-entry clamp table: index ``v + 256`` gives ``v`` clamped to 0..255."""
    return tuple([0] * 256 + list(range(256)) + [255] * 256)


class BitWriter:
    """Packs variable-length codes MSB first into 16-bit words."""

    def __init__(self) -> None:
        self._words: list[int] = []
        self._bitbuf = 0
        self._bitcount = _BITBUF_SIZE
        self.total_bits = 0

    def put(self, value: int, nbits: int) -> None:
        """Append the low ``nbits`` bits of ``value``."""
        if not 0 <= nbits <= 32:
            raise ValueError("nbits must be in 0..32")
        value &= 0xFFFFFFFF
        self.total_bits += nbits
        if nbits < self._bitcount:
            self._bitcount -= nbits
            self._bitbuf = (self._bitbuf | (value << self._bitcount)) & 0xFFFF
            return
        nbits -= self._bitcount
        self._words.append((self._bitbuf | (value >> nbits)) & 0xFFFF)
        if nbits < _BITBUF_SIZE:
            self._bitcount = _BITBUF_SIZE - nbits
        else:
            self._words.append((value >> (nbits - _BITBUF_SIZE)) & 0xFFFF)
            self._bitcount = _BITBUF_SIZE * 2 - nbits
        self._bitbuf = (value << self._bitcount) & 0xFFFF

    def flush(self) -> list[int]:
        """Write out the partly filled word and return all words written."""
        self._words.append(self._bitbuf & 0xFFFF)
        return list(self._words)


@dataclass(frozen=True)
class InputImage:
    """A 16- or 24-bit raster to encode.

    A pixel at (x, y) starts at ``top + y * stride + x * bit // 8``. 24-bit
    pixels are stored as B, G, R bytes; 16-bit pixels as little-endian words
    with red in the low five bits. ``stride`` defaults to a tightly packed row
    and may be negative for bottom-up data.
    """

    width: int
    height: int
    bit: int
    data: bytes
    stride: int | None = None
    top: int = 0

    def __post_init__(self) -> None:
        if self.bit not in (16, 24):
            raise ValueError(f"unsupported pixel depth: {self.bit}")
        if self.width < 0 or self.height < 0:
            raise ValueError("image dimensions must not be negative")
        if self.stride is None:
            object.__setattr__(self, "stride", self.width * self.bit // 8)
        if self.width and self.height:
            span = (self.height - 1) * self.stride
            low = self.top + min(0, span)
            high = self.top + max(0, span) + self.width * self.bit // 8
            if low < 0 or high > len(self.data):
                raise ValueError("image data is too short for its dimensions")

    def _pixel(self, x: int, y: int) -> tuple[int, int, int]:
        """Return the (r, g, b) colour of a pixel."""
        pos = self.top + y * self.stride + x * self.bit // 8
        if self.bit == 16:
            c = self.data[pos] | (self.data[pos + 1] << 8)
            return (c & 31) * 8, ((c >> 5) & 31) * 8, ((c >> 10) & 31) * 8
        b, g, r = self.data[pos], self.data[pos + 1], self.data[pos + 2]
        return r, g, b


def rgb_to_yuv(pixels: Sequence[tuple[int, int, int]]) -> list[list[int]]:
    """Split a row-major 16x16 block of (r, g, b) pixels into six 8x8 blocks.

    The blocks come in the order Cb, Cr, Y0, Y1, Y2, Y3, with the luma
    blocks top-left, top-right, bottom-left, bottom-right. Chroma is the
    average of each 2x2 group of pixels.
    """
    if len(pixels) != _MACROBLOCK_PIXELS:
        raise ValueError(f"a macroblock needs {_MACROBLOCK_PIXELS} pixels, got {len(pixels)}")
    yuv = [
        (
            int(0.299 * r + 0.587 * g + 0.114 * b) - 128,
            int(-0.16874 * r - 0.33126 * g + 0.5 * b),
            int(0.5 * r - 0.41869 * g - 0.08131 * b),
        )
        for r, g, b in pixels
    ]

    cb = [0] * DCT_SIZE2
    cr = [0] * DCT_SIZE2
    for cy in range(8):
        for cx in range(8):
            p = 2 * cy * _MACROBLOCK + 2 * cx
            quad = (yuv[p], yuv[p + 1], yuv[p + _MACROBLOCK], yuv[p + _MACROBLOCK + 1])
            cb[cy * 8 + cx] = _tdiv(sum(v[1] for v in quad), 4)
            cr[cy * 8 + cx] = _tdiv(sum(v[2] for v in quad), 4)

    luma = [[0] * DCT_SIZE2 for _ in range(4)]
    for index, (y_value, _, _) in enumerate(yuv):
        py, px = divmod(index, _MACROBLOCK)
        block = (py // 8) * 2 + px // 8
        luma[block][(py % 8) * 8 + px % 8] = y_value

    return [cb, cr, *luma]


class _Encoder:
    """Run-level and Huffman coding state for one image."""

    def __init__(self, kind: int, q_scale: int, iqtab: Sequence[int]) -> None:
        self.writer = BitWriter()
        self.kind = kind
        self.q_scale = q_scale
        self.iqtab = iqtab
        self.last_dc = [0, 0, 0]
        self.rlsize = 0

    def _dc(self, n: int, level: int) -> None:
        if self.kind == 2:
            self.writer.put(level & 0x3FF, 10)
        else:
            level = _tdiv(level, 4)
            slot = n if n < 2 else 2
            table = DC_C_TABLE if n < 2 else DC_Y_TABLE
            prev = self.last_dc[slot]
            self.last_dc[slot] = level
            level -= prev
            cnt = min(abs(level).bit_length(), 9)
            if level < 0:
                level -= 1
            code, nbits = table[cnt]
            self.writer.put(code, nbits)
            if cnt:
                self.writer.put(level & ((1 << cnt) - 1), cnt)
        self.rlsize += 1

    def _ac(self, run: int, level: int) -> None:
        sign = 0 if level > 0 else 1
        abslevel = abs(level)
        if run <= 31 and abslevel <= MAX_LEVEL[run]:
            code, nbits = HUFF_TABLE[run][abslevel - 1]
            self.writer.put(code + sign, nbits)
        else:
            self.writer.put(*_ESCAPE_CODE)
            self.writer.put((run << 10) + (level & 0x3FF), 16)
        self.rlsize += 1

    def _eob(self) -> None:
        self.writer.put(*_EOB_CODE)
        self.rlsize += 1

    def macroblock(self, blocks: Sequence[Sequence[int]]) -> None:
        for n, block in enumerate(blocks):
            coeffs = [c >> 3 for c in forward_dct(block)]
            self._dc(n, _tdiv(coeffs[0], self.iqtab[0]))
            run = 0
            for zig in ZSCAN[1:]:
                level = _tdiv(coeffs[zig] * 8, self.iqtab[zig] * self.q_scale)
                if level == 0:
                    run += 1
                else:
                    self._ac(run, level)
                    run = 0
            self._eob()

    def finish(self) -> bytes:
        self.writer.put(_END_CODE, 16)
        words = self.writer.flush()
        length = (((self.rlsize + 1) // 2) + 31) & ~31
        header = [length & 0xFFFF, BS_MAGIC, self.q_scale & 0xFFFF, self.kind & 0xFFFF]
        everything = header + words
        return struct.pack(f"<{len(everything)}H", *everything)


def _macroblock_pixels(image: InputImage, x: int, y: int) -> list[tuple[int, int, int]]:
    """Read a 16x16 block, repeating the last column and row at the edges."""
    xw = min(image.width - x, _MACROBLOCK)
    yw = min(image.height - y, _MACROBLOCK)
    rows = []
    for i in range(yw):
        row = [image._pixel(x + j, y + i) for j in range(xw)]
        row += [row[-1]] * (_MACROBLOCK - xw)
        rows.append(row)
    rows += [rows[-1]] * (_MACROBLOCK - yw)
    return [pixel for row in rows for pixel in row]


def encode(
    image: InputImage,
    type: int = BS_TYPE,
    q_scale: int = 1,
    iqtab: Sequence[int] | None = None,
) -> bytes:
    """Encode an image as a BS bitstream, header included.

    Macroblocks are written column by column. ``q_scale`` 1 gives the best
    quality; larger values quantise more coarsely.
    """
    if q_scale < 1:
        raise ValueError("q_scale must be at least 1")
    table = default_iqtab() if iqtab is None else tuple(iqtab)
    if len(table) != DCT_SIZE2:
        raise ValueError(f"iqtab needs {DCT_SIZE2} entries, got {len(table)}")
    if any(not 1 <= v <= 255 for v in table):
        raise ValueError("iqtab entries must be in 1..255")

    encoder = _Encoder(type, q_scale, table)
    for x in range(0, image.width, _MACROBLOCK):
        for y in range(0, image.height, _MACROBLOCK):
            encoder.macroblock(rgb_to_yuv(_macroblock_pixels(image, x, y)))
    return encoder.finish()