"""Run-level decoding, inverse DCT and colour conversion for MDEC images.

The run-level words produced by :func:`psxmedia.vlc.decode_vlc` are turned
into 16x16 macroblocks of six 8x8 blocks (Cr, Cb and four luma blocks),
transformed back with an AA&N inverse DCT using 12-bit constants, and
converted to 15-bit or 24-bit RGB.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from psxmedia.bs import ZSCAN, default_iqtab
from psxmedia.vlc import EOB, decode_vlc

DSIZE = 8
DSIZE2 = DSIZE * DSIZE
BLOCKS_PER_MACROBLOCK = 6
MACROBLOCK = 16

AANSCALES = (
    1048576, 1454417, 1370031, 1232995, 1048576, 823861, 567485, 289301,
    1454417, 2017334, 1900287, 1710213, 1454417, 1142728, 787125, 401273,
    1370031, 1900287, 1790031, 1610986, 1370031, 1076426, 741455, 377991,
    1232995, 1710213, 1610986, 1449849, 1232995, 968758, 667292, 340183,
    1048576, 1454417, 1370031, 1232995, 1048576, 823861, 567485, 289301,
    823861, 1142728, 1076426, 968758, 823861, 647303, 445870, 227303,
    567485, 787125, 741455, 667292, 567485, 445870, 307121, 156569,
    289301, 401273, 377991, 340183, 289301, 227303, 156569, 79818,
)

_IQ_SHIFT = 14 - 2
_AAN_CONST_BITS = 12
_AAN_CONST_SCALE = 24 - _AAN_CONST_BITS
_AAN_EXTRA = 12

# Pixel offset of the stp bit the colour converter sets on every 15-bit pixel.
_STP = 1


def _scaler(x: int, n: int) -> int:
    """Shift right by ``n`` with rounding."""
    return (x + ((1 << n) >> 1)) >> n


_FIX_1_082392200 = _scaler(18159528, _AAN_CONST_SCALE)
_FIX_1_414213562 = _scaler(23726566, _AAN_CONST_SCALE)
_FIX_1_847759065 = _scaler(31000253, _AAN_CONST_SCALE)
_FIX_2_613125930 = _scaler(43840978, _AAN_CONST_SCALE)


def _muls(var: int, const: int) -> int:
    return (var * const) >> _AAN_CONST_BITS


def _rle_val(word: int) -> int:
    value = word & 0x3FF
    return value - 0x400 if value & 0x200 else value


def _check_table(table: Sequence[int], name: str) -> list[int]:
    values = [int(v) for v in table]
    if len(values) != DSIZE2:
        raise ValueError(f"{name} needs {DSIZE2} entries, got {len(values)}")
    return values


def build_iqtab(iq_y: Sequence[int]) -> list[int]:
    """Scale a 64-entry quantisation table by the AA&N factors."""
    table = _check_table(iq_y, "iq_y")
    return [q * scale >> _IQ_SHIFT for q, scale in zip(table, AANSCALES)]


def _aan_1d(v: Sequence[int]) -> list[int]:
    """One inverse AA&N pass over 8 values, without descaling."""
    z10 = v[0] + v[4]
    z11 = v[0] - v[4]
    z13 = v[2] + v[6]
    z12 = _muls(v[2] - v[6], _FIX_1_414213562) - z13

    tmp0 = z10 + z13
    tmp3 = z10 - z13
    tmp1 = z11 + z12
    tmp2 = z11 - z12

    z13 = v[3] + v[5]
    z10 = v[3] - v[5]
    z11 = v[1] + v[7]
    z12 = v[1] - v[7]

    tmp7 = z11 + z13
    z5 = (z12 - z10) * _FIX_1_847759065
    tmp6 = ((z10 * _FIX_2_613125930 + z5) >> _AAN_CONST_BITS) - tmp7
    tmp5 = _muls(z11 - z13, _FIX_1_414213562) - tmp6
    tmp4 = ((z12 * _FIX_1_082392200 - z5) >> _AAN_CONST_BITS) + tmp5

    return [
        tmp0 + tmp7,
        tmp1 + tmp6,
        tmp2 + tmp5,
        tmp3 - tmp4,
        tmp3 + tmp4,
        tmp2 - tmp5,
        tmp1 - tmp6,
        tmp0 - tmp7,
    ]


def idct(block: Sequence[int], used_col: int) -> list[int]:
    """Return the inverse DCT of a row-major 8x8 coefficient block.

    ``used_col`` is -1 for a block holding only its DC coefficient, otherwise
    a bitmask of the columns with non-zero coefficients in rows 1 to 7.
    """
    data = _check_table(block, "block")

    if used_col == -1:
        return [data[0]] * DSIZE2

    for col in range(DSIZE):
        column = data[col::DSIZE]
        if not used_col & (1 << col):
            if column[0]:
                data[col::DSIZE] = [column[0]] * DSIZE
                used_col |= 1 << col
            continue
        data[col::DSIZE] = _aan_1d(column)

    for row in range(DSIZE):
        base = row * DSIZE
        values = data[base:base + DSIZE]
        if used_col == 1:
            data[base:base + DSIZE] = [values[0]] * DSIZE
        else:
            data[base:base + DSIZE] = _aan_1d(values)

    return data


def rl_to_blocks(
    rl_words: Sequence[int],
    pos: int,
    iqtab: Sequence[int],
    iq_y: Sequence[int],
) -> tuple[list[list[int]], int]:
    """Decode one macroblock of run-level words starting at ``pos``.

    ``iqtab`` dequantises the two chroma blocks and ``iq_y`` the four luma
    blocks; both are scaled tables as made by :func:`build_iqtab`. Reading
    past the end of ``rl_words`` yields end-of-block words. Returns the six
    transformed blocks and the position after the macroblock.
    """
    chroma_table = _check_table(iqtab, "iqtab")
    luma_table = _check_table(iq_y, "iq_y")
    end = len(rl_words)

    def next_word() -> int:
        nonlocal pos
        if pos < end:
            word = int(rl_words[pos]) & 0xFFFF
            pos += 1
            return word
        return EOB

    blocks = [[0] * DSIZE2 for _ in range(BLOCKS_PER_MACROBLOCK)]
    table = chroma_table
    for index in range(BLOCKS_PER_MACROBLOCK):
        if index == 2:
            table = luma_table
        word = next_word()
        if word == EOB:
            break
        q_scale = word >> 10
        block = blocks[index]
        block[0] = _scaler(table[0] * _rle_val(word), _AAN_EXTRA - 3)
        k = 0
        used_col = 0
        while True:
            word = next_word()
            if word == EOB:
                break
            k += (word >> 10) + 1
            if k > 63:
                break
            zig = ZSCAN[k]
            block[zig] = _scaler(_rle_val(word) * table[k] * q_scale, _AAN_EXTRA)
            if zig > 7:
                used_col |= 1 << (zig & 7)
        if k == 0:
            used_col = -1
        blocks[index] = idct(block, used_col)

    return blocks, pos


def _yuv_pixels(blocks: Sequence[Sequence[int]]) -> Iterator[tuple[int, int, int]]:
    """Yield unscaled (r, g, b) sums for the 256 pixels of a macroblock."""
    if len(blocks) != BLOCKS_PER_MACROBLOCK:
        raise ValueError(f"a macroblock needs {BLOCKS_PER_MACROBLOCK} blocks, got {len(blocks)}")
    checked = [_check_table(block, "block") for block in blocks]
    cr, cb = checked[0], checked[1]
    for py in range(MACROBLOCK):
        for px in range(MACROBLOCK):
            c = (py >> 1) * DSIZE + (px >> 1)
            luma = checked[2 + (py >> 3) * 2 + (px >> 3)][(py & 7) * DSIZE + (px & 7)]
            y = luma << 10
            yield (
                y + 1434 * cr[c],
                y - 351 * cb[c] - 728 * cr[c],
                y + 1807 * cb[c],
            )


def _clamp5(value: int) -> int:
    c = _scaler(value, 23)
    if c < -16:
        return 0
    if c > 31 - 16:
        return 31
    return c + 16


def _clamp8(value: int) -> int:
    c = _scaler(value, 20)
    if c < -128:
        return 0
    if c > 255 - 128:
        return 255
    return c + 128


def yuv_to_rgb15(blocks: Sequence[Sequence[int]]) -> list[int]:
    """Convert a decoded macroblock to 256 row-major 15-bit pixels.

    Red is in the low five bits; bit 0 is always set.
    """
    return [
        _clamp5(r) | (_clamp5(g) << 5) | (_clamp5(b) << 10) | _STP
        for r, g, b in _yuv_pixels(blocks)
    ]


def yuv_to_rgb24(blocks: Sequence[Sequence[int]]) -> bytes:
    """Convert a decoded macroblock to 16x16 row-major R, G, B bytes."""
    out = bytearray()
    for r, g, b in _yuv_pixels(blocks):
        out += bytes((_clamp8(r), _clamp8(g), _clamp8(b)))
    return bytes(out)


def _macroblock_columns(
    data: bytes | Sequence[int],
    width: int,
    height: int,
    iqtab: Sequence[int] | None,
) -> Iterator[list[list[list[int]]]]:
    """Decode a BS image one column of macroblocks at a time."""
    if width <= 0 or height <= 0:
        raise ValueError("image dimensions must be positive")
    table = build_iqtab(default_iqtab() if iqtab is None else iqtab)
    rl_words = decode_vlc(data)[2:]
    rows = (height + MACROBLOCK - 1) // MACROBLOCK
    pos = 0
    for _ in range((width + MACROBLOCK - 1) // MACROBLOCK):
        column = []
        for _ in range(rows):
            blocks, pos = rl_to_blocks(rl_words, pos, table, table)
            column.append(blocks)
        yield column


def decode_rgb24(
    data: bytes | Sequence[int],
    width: int,
    height: int,
    iqtab: Sequence[int] | None = None,
) -> bytes:
    """Decode a BS image to top-down R, G, B bytes (``width * height * 3``).

    ``iqtab`` is the unscaled 64-entry quantisation table; the default table
    is used when it is None.
    """
    out = bytearray(width * height * 3) if width > 0 and height > 0 else bytearray()
    for cx, column in enumerate(_macroblock_columns(data, width, height, iqtab)):
        pixels = [yuv_to_rgb24(blocks) for blocks in column]
        x0 = cx * MACROBLOCK
        cols = min(MACROBLOCK, width - x0)
        for y in range(height):
            row = y % MACROBLOCK
            src = pixels[y // MACROBLOCK]
            start = (y * width + x0) * 3
            out[start:start + cols * 3] = src[row * MACROBLOCK * 3:row * MACROBLOCK * 3 + cols * 3]
    return bytes(out)


def decode_rgb15(
    data: bytes | Sequence[int],
    width: int,
    height: int,
    iqtab: Sequence[int] | None = None,
) -> list[int]:
    """Decode a BS image to bottom-up 15-bit pixels (``width * height``).

    The first decoded row lands in the last output row. ``iqtab`` is the
    unscaled quantisation table; the default table is used when it is None.
    """
    out = [0] * (width * height) if width > 0 and height > 0 else []
    for cx, column in enumerate(_macroblock_columns(data, width, height, iqtab)):
        pixels = [yuv_to_rgb15(blocks) for blocks in column]
        x0 = cx * MACROBLOCK
        cols = min(MACROBLOCK, width - x0)
        for y in range(height):
            row = y % MACROBLOCK
            src = pixels[y // MACROBLOCK]
            start = (height - 1 - y) * width + x0
            out[start:start + cols] = src[row * MACROBLOCK:row * MACROBLOCK + cols]
    return out