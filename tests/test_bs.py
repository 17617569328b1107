import random
import struct

import pytest

from psxmedia.bs import (
    BS_MAGIC,
    BitWriter,
    InputImage,
    default_iqtab,
    encode,
    rgb_to_yuv,
    round_table,
)


def _image24(width, height, color_at):
    out = bytearray()
    for y in range(height):
        for x in range(width):
            r, g, b = color_at(x, y)
            out += bytes((b, g, r))
    return bytes(out)


def _words(data):
    return list(struct.unpack(f"<{len(data) // 2}H", data))


def _bits(data):
    return "".join(format(w, "016b") for w in _words(data[8:]))


def _pattern(x, y):
    return (x * 20 % 256, y * 25 % 256, (x + y) * 7 % 256)


def test_default_iqtab_shape():
    table = default_iqtab()
    assert len(table) == 64
    assert table[0] == 2
    assert table[-1] == 83


def test_round_table_clamps():
    table = round_table()
    assert len(table) == 768
    assert table[0] == 0
    assert table[256 + 200] == 200
    assert table[767] == 255


def test_bitwriter_round_trip():
    rng = random.Random(7)
    writer = BitWriter()
    expected = ""
    for _ in range(200):
        nbits = rng.randint(1, 16)
        value = rng.getrandbits(nbits)
        writer.put(value, nbits)
        expected += format(value, f"0{nbits}b")
    words = writer.flush()
    bits = "".join(format(w, "016b") for w in words)
    assert writer.total_bits == len(expected)
    assert len(words) == len(expected) // 16 + 1
    assert bits.startswith(expected)
    assert set(bits[len(expected):]) <= {"0"}


def test_bitwriter_rejects_bad_width():
    with pytest.raises(ValueError):
        BitWriter().put(1, 33)


def test_rgb_to_yuv_black():
    blocks = rgb_to_yuv([(0, 0, 0)] * 256)
    assert len(blocks) == 6
    assert blocks[0] == [0] * 64
    assert blocks[1] == [0] * 64
    for luma in blocks[2:]:
        assert luma == [-128] * 64


def test_rgb_to_yuv_luma_quadrants():
    pixels = [
        (0, 0, 0) if (y < 8 and x < 8) else (255, 255, 255)
        for y in range(16)
        for x in range(16)
    ]
    blocks = rgb_to_yuv(pixels)
    assert blocks[2] == [-128] * 64
    for luma in blocks[3:]:
        assert all(v > 100 for v in luma)


def test_rgb_to_yuv_chroma_subsampling():
    pixels = [(0, 0, 255) if x < 8 else (0, 0, 0) for y in range(16) for x in range(16)]
    cb = rgb_to_yuv(pixels)[0]
    for cy in range(8):
        left = cb[cy * 8:cy * 8 + 4]
        right = cb[cy * 8 + 4:cy * 8 + 8]
        assert all(v > 0 for v in left)
        assert len(set(left)) == 1
        assert right == [0, 0, 0, 0]


def test_rgb_to_yuv_wrong_size():
    with pytest.raises(ValueError):
        rgb_to_yuv([(0, 0, 0)] * 255)


def test_encode_header_fields():
    image = InputImage(16, 16, 24, _image24(16, 16, _pattern))
    out = encode(image, 2, 3)
    words = _words(out)
    assert words[1] == BS_MAGIC
    assert words[2] == 3
    assert words[3] == 2
    assert words[0] % 32 == 0
    assert words[0] > 0


def test_encode_black_bitstream():
    out = encode(InputImage(16, 16, 24, bytes(16 * 16 * 3)))
    bits = _bits(out)
    chroma = "0" * 10 + "10"
    luma = "1000000000" + "10"
    assert bits[:24] == chroma * 2
    assert bits[24:72] == luma * 4
    assert bits[72:88] == format(32704, "016b")
    assert set(bits[88:]) <= {"0"}
    assert len(out) == 8 + 2 * (88 // 16 + 1)


def test_encode_is_deterministic_and_iqtab_default():
    image = InputImage(20, 12, 24, _image24(20, 12, _pattern))
    assert encode(image) == encode(image, iqtab=default_iqtab())


def test_encode_16bit_matches_24bit():
    r5, g5, b5 = 31, 16, 2
    word = (b5 << 10) | (g5 << 5) | r5
    data16 = struct.pack("<H", word) * (16 * 16)
    data24 = bytes((b5 * 8, g5 * 8, r5 * 8)) * (16 * 16)
    out16 = encode(InputImage(16, 16, 16, data16))
    out24 = encode(InputImage(16, 16, 24, data24))
    assert out16 == out24


def test_encode_pads_edges():
    small = InputImage(10, 10, 24, _image24(10, 10, _pattern))
    big = InputImage(
        16, 16, 24, _image24(16, 16, lambda x, y: _pattern(min(x, 9), min(y, 9)))
    )
    assert encode(small, 1) == encode(big, 1)


def test_encode_macroblock_order_is_column_major():
    def wide(x, y):
        return (0, 0, 0) if x < 16 else (255, 255, 255)

    def tall(x, y):
        return (0, 0, 0) if y < 16 else (255, 255, 255)

    out_wide = encode(InputImage(32, 16, 24, _image24(32, 16, wide)), 1)
    out_tall = encode(InputImage(16, 32, 24, _image24(16, 32, tall)), 1)
    assert out_wide == out_tall


def test_encode_stride_and_bottom_up():
    width, height = 12, 9
    packed = _image24(width, height, _pattern)
    row = width * 3
    padded = b"".join(packed[i * row:(i + 1) * row] + b"\xff\xff" for i in range(height))
    flipped = b"".join(packed[i * row:(i + 1) * row] for i in reversed(range(height)))
    reference = encode(InputImage(width, height, 24, packed))
    assert encode(InputImage(width, height, 24, padded, stride=row + 2)) == reference
    bottom_up = InputImage(width, height, 24, flipped, stride=-row, top=(height - 1) * row)
    assert encode(bottom_up) == reference


def test_encode_type_changes_dc_coding():
    image = InputImage(16, 16, 24, _image24(16, 16, _pattern))
    huffman = encode(image, 1)
    fixed = encode(image, 2)
    assert _words(huffman)[3] == 1
    assert huffman != fixed
    assert _words(huffman)[0] == _words(fixed)[0]


def test_encode_coarser_quantisation_uses_fewer_codes():
    rng = random.Random(3)
    noise = bytes(rng.randrange(256) for _ in range(32 * 32 * 3))
    image = InputImage(32, 32, 24, noise)
    fine = _words(encode(image, 2, 1))[0]
    coarse = _words(encode(image, 2, 16))[0]
    assert fine >= coarse


def test_encode_rejects_bad_arguments():
    image = InputImage(16, 16, 24, bytes(16 * 16 * 3))
    with pytest.raises(ValueError):
        encode(image, 2, 0)
    with pytest.raises(ValueError):
        encode(image, 2, 1, iqtab=[16] * 10)
    with pytest.raises(ValueError):
        encode(image, 2, 1, iqtab=[0] * 64)


def test_input_image_validation():
    with pytest.raises(ValueError):
        InputImage(16, 16, 8, bytes(256))
    with pytest.raises(ValueError):
        InputImage(16, 16, 24, bytes(100))
    with pytest.raises(ValueError):
        InputImage(-1, 16, 24, bytes(100))