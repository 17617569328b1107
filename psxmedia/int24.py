"""Signed 24-bit integer stored as three little-endian bytes."""

from __future__ import annotations

INT24_MAX = 8388607
INT24_MIN = -8388608

_MASK = 0xFFFFFF
_SIGN = 0x800000


def _wrap(value: int) -> int:
    """Keep the low 24 bits of ``value`` and sign-extend them."""
    value &= _MASK
    return value - 0x1000000 if value & _SIGN else value


def _operand(other: object) -> int | None:
    if isinstance(other, Int24):
        return other._value
    if isinstance(other, int):
        return other
    return None


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    if b == 0:
        raise ZeroDivisionError("Int24 division by zero")
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


class Int24:
    """An immutable signed 24-bit integer; arithmetic wraps around."""

    __slots__ = ("_value",)

    def __init__(self, value: int | Int24 = 0) -> None:
        if isinstance(value, Int24):
            value = value._value
        elif not isinstance(value, int):
            raise TypeError(f"cannot make Int24 from {type(value).__name__}")
        self._value = _wrap(value)

    @classmethod
    def from_bytes(cls, data: bytes) -> Int24:
        """Build a value from exactly three little-endian bytes."""
        if len(data) != 3:
            raise ValueError("Int24 needs exactly 3 bytes")
        return cls(int.from_bytes(data, "little", signed=True))

    def to_bytes(self) -> bytes:
        """Return the three little-endian bytes of the value."""
        return (self._value & _MASK).to_bytes(3, "little")

    def __int__(self) -> int:
        return self._value

    def __float__(self) -> float:
        return float(self._value)

    def __bool__(self) -> bool:
        return self._value != 0

    def __add__(self, other: object) -> Int24:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return Int24(self._value + rhs)

    def __sub__(self, other: object) -> Int24:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return Int24(self._value - rhs)

    def __mul__(self, other: object) -> Int24:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return Int24(self._value * rhs)

    def __floordiv__(self, other: object) -> Int24:
        """Divide, rounding toward zero."""
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return Int24(_trunc_div(self._value, rhs))

    def __rshift__(self, other: object) -> Int24:
        if not isinstance(other, int):
            return NotImplemented
        return Int24(self._value >> other)

    def __lshift__(self, other: object) -> Int24:
        if not isinstance(other, int):
            return NotImplemented
        return Int24(self._value << other)

    def __neg__(self) -> Int24:
        return Int24(-self._value)

    def __eq__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._value == rhs

    def __lt__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._value < rhs

    def __le__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._value <= rhs

    def __gt__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._value > rhs

    def __ge__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._value >= rhs

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"Int24({self._value})"