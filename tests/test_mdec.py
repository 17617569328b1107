import pytest

from psxmedia.bs import InputImage, ZSCAN, default_iqtab, encode
from psxmedia.mdec import (
    AANSCALES,
    build_iqtab,
    decode_rgb15,
    decode_rgb24,
    idct,
    rl_to_blocks,
    yuv_to_rgb15,
    yuv_to_rgb24,
)
from psxmedia.vlc import EOB


def _zero_blocks():
    return [[0] * 64 for _ in range(6)]


def _dc_word(value, q_scale=1):
    return (q_scale << 10) | (value & 0x3FF)


def _gray_image(width, height, level):
    return InputImage(width, height, 24, bytes([level]) * (width * height * 3))


def test_build_iqtab_scales_by_aan_factors():
    assert build_iqtab([4096] * 64) == list(AANSCALES)
    assert AANSCALES[0] == 1048576


def test_build_iqtab_rejects_wrong_length():
    with pytest.raises(ValueError):
        build_iqtab([1] * 63)


def test_idct_dc_only_fills_block():
    assert idct([5] + [0] * 63, -1) == [5] * 64


def test_idct_single_dc_column_fills_rows():
    assert idct([7] + [0] * 63, 0) == [7] * 64


def test_idct_zero_block_stays_zero():
    assert idct([0] * 64, 0) == [0] * 64
    assert idct([0] * 64, 0xFF) == [0] * 64


def test_idct_row_zero_coefficient_gives_identical_rows():
    block = [0] * 64
    block[0] = 40
    block[1] = 100
    result = idct(block, 0)
    rows = [result[r * 8:(r + 1) * 8] for r in range(8)]
    assert all(row == rows[0] for row in rows)


def test_idct_rejects_wrong_size():
    with pytest.raises(ValueError):
        idct([0] * 10, -1)


def test_rl_to_blocks_empty_stream_gives_zero_blocks():
    table = build_iqtab(default_iqtab())
    blocks, pos = rl_to_blocks([], 0, table, table)
    assert blocks == _zero_blocks()
    assert pos == 0


def test_rl_to_blocks_dc_only_macroblock():
    table = build_iqtab(default_iqtab())
    values = [3, -2, 1, 0, 4, -1]
    words = []
    for value in values:
        words += [_dc_word(value), EOB]
    blocks, pos = rl_to_blocks(words, 0, table, table)
    assert pos == len(words)
    assert blocks == [[value] * 64 for value in values]


def test_rl_to_blocks_continues_from_position():
    table = build_iqtab(default_iqtab())
    first = []
    for _ in range(6):
        first += [_dc_word(2), EOB]
    second = []
    for _ in range(6):
        second += [_dc_word(-3), EOB]
    words = first + second
    blocks_a, pos = rl_to_blocks(words, 0, table, table)
    blocks_b, end = rl_to_blocks(words, pos, table, table)
    assert blocks_a == [[2] * 64] * 6
    assert blocks_b == [[-3] * 64] * 6
    assert end == len(words)


def test_rl_to_blocks_run_past_end_of_block_stops_block():
    table = build_iqtab(default_iqtab())
    words = [_dc_word(5), (63 << 10) | 1, _dc_word(-4), EOB]
    blocks, pos = rl_to_blocks(words, 0, table, table)
    assert blocks[0] == [5] * 64
    assert blocks[1] == [-4] * 64
    assert pos == 4


def test_rl_to_blocks_ac_coefficient_in_first_row():
    table = build_iqtab(default_iqtab())
    words = [_dc_word(0), (0 << 10) | 3, EOB]
    blocks, _ = rl_to_blocks(words, 0, table, table)
    assert ZSCAN[1] == 1
    rows = [blocks[0][r * 8:(r + 1) * 8] for r in range(8)]
    assert any(rows[0])
    assert all(row == rows[0] for row in rows)


def test_yuv_to_rgb24_zero_blocks_is_mid_gray():
    pixels = yuv_to_rgb24(_zero_blocks())
    assert len(pixels) == 16 * 16 * 3
    assert set(pixels) == {128}


def test_yuv_to_rgb24_luma_block_layout():
    blocks = _zero_blocks()
    blocks[2] = [200000] * 64
    pixels = yuv_to_rgb24(blocks)

    def pixel(x, y):
        start = (y * 16 + x) * 3
        return tuple(pixels[start:start + 3])

    assert pixel(0, 0) == (255, 255, 255)
    assert pixel(7, 7) == (255, 255, 255)
    assert pixel(8, 0) == (128, 128, 128)
    assert pixel(0, 8) == (128, 128, 128)


def test_yuv_to_rgb24_first_chroma_block_drives_red():
    blocks = _zero_blocks()
    blocks[0] = [100000] * 64
    pixels = yuv_to_rgb24(blocks)
    r, g, b = pixels[0], pixels[1], pixels[2]
    assert r == 255
    assert b == 128
    assert g < 128


def test_yuv_to_rgb15_sets_low_bit_and_is_uniform():
    words = yuv_to_rgb15(_zero_blocks())
    assert len(words) == 256
    assert len(set(words)) == 1
    assert words[0] & 1 == 1


def test_yuv_to_rgb15_saturates_to_white():
    blocks = _zero_blocks()
    for index in range(2, 6):
        blocks[index] = [1 << 20] * 64
    assert set(yuv_to_rgb15(blocks)) == {0x7FFF}


def test_yuv_conversion_rejects_wrong_block_count():
    with pytest.raises(ValueError):
        yuv_to_rgb24(_zero_blocks()[:5])
    with pytest.raises(ValueError):
        yuv_to_rgb15(_zero_blocks()[:5])


def test_decode_rgb24_uniform_image():
    stream = encode(_gray_image(32, 16, 100))
    pixels = decode_rgb24(stream, 32, 16)
    assert len(pixels) == 32 * 16 * 3
    assert len(set(pixels)) == 1


def test_decode_rgb24_clips_partial_macroblocks():
    stream = encode(_gray_image(20, 10, 60))
    pixels = decode_rgb24(stream, 20, 10)
    assert len(pixels) == 20 * 10 * 3
    assert len(set(pixels)) == 1


def test_decode_rgb15_uniform_image():
    stream = encode(_gray_image(16, 32, 100))
    words = decode_rgb15(stream, 16, 32)
    assert len(words) == 16 * 32
    assert len(set(words)) == 1
    assert words[0] & 1 == 1


def test_decode_accepts_custom_table():
    stream = encode(_gray_image(16, 16, 90), iqtab=[4] * 64)
    pixels = decode_rgb24(stream, 16, 16, [4] * 64)
    assert len(pixels) == 16 * 16 * 3
    assert len(set(pixels)) == 1


@pytest.mark.parametrize("width, height", [(0, 16), (16, 0), (-1, 16)])
def test_decode_rejects_bad_dimensions(width, height):
    stream = encode(_gray_image(16, 16, 50))
    with pytest.raises(ValueError):
        decode_rgb24(stream, width, height)
    with pytest.raises(ValueError):
        decode_rgb15(stream, width, height)


def test_decode_rejects_bad_table():
    stream = encode(_gray_image(16, 16, 50))
    with pytest.raises(ValueError):
        decode_rgb24(stream, 16, 16, [1] * 10)