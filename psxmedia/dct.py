"""Integer 8x8 discrete cosine transforms used by the bitstream codec.

``forward_dct`` is the slow but accurate integer transform with 13-bit
constants. ``inverse_dct_fast`` is the fast AA&N inverse transform with
8-bit constants and no rounding on descale.
"""

from __future__ import annotations

from collections.abc import Sequence

DCT_SIZE = 8
DCT_SIZE2 = DCT_SIZE * DCT_SIZE

# Forward transform parameters.
_F_CONST_BITS = 13
_F_PASS1_BITS = 1

_FIX_0_298631336 = 2446
_FIX_0_390180644 = 3196
_FIX_0_541196100 = 4433
_FIX_0_765366865 = 6270
_FIX_0_899976223 = 7373
_FIX_1_175875602 = 9633
_FIX_1_501321110 = 12299
_FIX_1_847759065 = 15137
_FIX_1_961570560 = 16069
_FIX_2_053119869 = 16819
_FIX_2_562915447 = 20995
_FIX_3_072711026 = 25172

# Fast inverse transform parameters.
_I_CONST_BITS = 8
_I_PASS1_BITS = 2
_I_FINAL_SHIFT = _I_PASS1_BITS + 3

_IFIX_1_082392200 = 277
_IFIX_1_414213562 = 362
_IFIX_1_847759065 = 473
_IFIX_2_613125930 = 669


def _check_block(block: Sequence[int]) -> list[int]:
    values = [int(v) for v in block]
    if len(values) != DCT_SIZE2:
        raise ValueError(f"a DCT block needs {DCT_SIZE2} coefficients, got {len(values)}")
    return values


def _descale_round(x: int, n: int) -> int:
    return (x + (1 << (n - 1))) >> n


def _fdct_1d(v: Sequence[int]) -> tuple[int, ...]:
    """One forward pass over 8 samples.

    Returns the even sums for outputs 0 and 4 unscaled, and outputs
    1, 2, 3, 5, 6, 7 as products that still need descaling, in index order.
    """
    tmp0, tmp7 = v[0] + v[7], v[0] - v[7]
    tmp1, tmp6 = v[1] + v[6], v[1] - v[6]
    tmp2, tmp5 = v[2] + v[5], v[2] - v[5]
    tmp3, tmp4 = v[3] + v[4], v[3] - v[4]

    tmp10, tmp13 = tmp0 + tmp3, tmp0 - tmp3
    tmp11, tmp12 = tmp1 + tmp2, tmp1 - tmp2

    out0 = tmp10 + tmp11
    out4 = tmp10 - tmp11

    z1 = (tmp12 + tmp13) * _FIX_0_541196100
    out2 = z1 + tmp13 * _FIX_0_765366865
    out6 = z1 + tmp12 * -_FIX_1_847759065

    z1 = tmp4 + tmp7
    z2 = tmp5 + tmp6
    z3 = tmp4 + tmp6
    z4 = tmp5 + tmp7
    z5 = (z3 + z4) * _FIX_1_175875602

    tmp4 *= _FIX_0_298631336
    tmp5 *= _FIX_2_053119869
    tmp6 *= _FIX_3_072711026
    tmp7 *= _FIX_1_501321110
    z1 *= -_FIX_0_899976223
    z2 *= -_FIX_2_562915447
    z3 = z3 * -_FIX_1_961570560 + z5
    z4 = z4 * -_FIX_0_390180644 + z5

    out7 = tmp4 + z1 + z3
    out5 = tmp5 + z2 + z4
    out3 = tmp6 + z2 + z3
    out1 = tmp7 + z1 + z4
    return out0, out1, out2, out3, out4, out5, out6, out7


def forward_dct(block: Sequence[int]) -> list[int]:
    """Return the forward DCT of a row-major 8x8 block of samples.

    The result stays scaled up by an overall factor of 8.
    """
    data = _check_block(block)
    odd_shift = _F_CONST_BITS - _F_PASS1_BITS

    for row in range(DCT_SIZE):
        base = row * DCT_SIZE
        raw = _fdct_1d(data[base:base + DCT_SIZE])
        for i, value in enumerate(raw):
            if i in (0, 4):
                data[base + i] = value << _F_PASS1_BITS
            else:
                data[base + i] = _descale_round(value, odd_shift)

    odd_shift = _F_CONST_BITS + _F_PASS1_BITS
    for col in range(DCT_SIZE):
        raw = _fdct_1d(data[col::DCT_SIZE])
        for i, value in enumerate(raw):
            shift = _F_PASS1_BITS if i in (0, 4) else odd_shift
            data[col + i * DCT_SIZE] = _descale_round(value, shift)

    return data


def _imul(var: int, const: int) -> int:
    return (var * const) >> _I_CONST_BITS


def _idct_1d(v: Sequence[int]) -> list[int]:
    """One fast inverse pass over 8 coefficients, without final descaling."""
    z10 = v[0] + v[4]
    z11 = v[0] - v[4]
    z13 = v[2] + v[6]
    z12 = _imul(v[2] - v[6], _IFIX_1_414213562) - z13

    tmp0 = z10 + z13
    tmp3 = z10 - z13
    tmp1 = z11 + z12
    tmp2 = z11 - z12

    z13 = v[3] + v[5]
    z10 = v[3] - v[5]
    z11 = v[1] + v[7]
    z12 = v[1] - v[7]

    z5 = _imul(z12 - z10, _IFIX_1_847759065)
    tmp7 = z11 + z13
    tmp6 = _imul(z10, _IFIX_2_613125930) + z5 - tmp7
    tmp5 = _imul(z11 - z13, _IFIX_1_414213562) - tmp6
    tmp4 = _imul(z12, _IFIX_1_082392200) - z5 + tmp5

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


def inverse_dct_fast(block: Sequence[int], k: int) -> list[int]:
    """Return the fast inverse DCT of a row-major 8x8 coefficient block.

    ``k`` is the number of coefficients in use; with ``k == 1`` only the DC
    coefficient is taken into account.
    """
    data = _check_block(block)

    if k == 1:
        return [data[0] >> _I_FINAL_SHIFT] * DCT_SIZE2

    for col in range(DCT_SIZE):
        column = data[col::DCT_SIZE]
        if any(column[1:]):
            column = _idct_1d(column)
        else:
            column = [column[0]] * DCT_SIZE
        data[col::DCT_SIZE] = column

    for row in range(DCT_SIZE):
        base = row * DCT_SIZE
        values = data[base:base + DCT_SIZE]
        if any(values[1:]):
            result = [v >> _I_FINAL_SHIFT for v in _idct_1d(values)]
        else:
            result = [values[0] >> _I_FINAL_SHIFT] * DCT_SIZE
        data[base:base + DCT_SIZE] = result

    return data