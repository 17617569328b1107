"""Decoder for XA ADPCM audio sectors in 16.16 fixed point."""

from __future__ import annotations

import struct
from dataclasses import dataclass

NUM_SAMPLES = 224
NUM_SOUND_GROUPS = 18
SOUND_GROUP_SIZE = 128
HEADER_SIZE = 8
SECTOR_SIZE = HEADER_SIZE + NUM_SOUND_GROUPS * SOUND_GROUP_SIZE
WAV_BUFFER_SIZE = NUM_SAMPLES * NUM_SOUND_GROUPS * 2

XA_FILE = 0
XA_CHANNEL = 1
XA_TYPE = 2
XA_FLAGS = 3

XA_FLAG_STEREO = 1 << 0
XA_FLAG_HALF_HZ = 1 << 2

XA_AUDIO = 0x64
XA_VIDEO = 0x48
XA_BREAK = 0xE4

CHANNEL_SLOTS = 256

K0 = (0x00000000, 0x0000F000, 0x0001CC00, 0x00018800)
K1 = (0x00000000, 0x00000000, -0x0000D000, -0x0000DC00)

_PCM = struct.Struct("<h")


def _s32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _signed_byte(value: int) -> int:
    return value - 256 if value > 127 else value


def fix_mul(a: int, b: int) -> int:
    """Multiply two 16.16 fixed-point numbers with 32-bit wrap-around."""
    a = _s32(a)
    b = _s32(b)
    high_a, low_a = a >> 16, a & 0xFFFF
    high_b, low_b = b >> 16, b & 0xFFFF
    hahb = _s32((high_a * high_b) << 16)
    halb = _s32(high_a * low_b)
    lahb = _s32(low_a * high_b)
    lalb = ((low_a * low_b) & 0xFFFFFFFF) >> 16
    return _s32(hahb + halb + lahb + lalb)


def get_sound_data(group: bytes, unit: int, sample: int) -> int:
    """Return the signed 4-bit sample of a unit within a sound group."""
    shift = (unit % 2) * 4
    value = (group[16 + unit // 2 + sample * 4] >> shift) & 0x0F
    return value - 16 if value > 7 else value


def get_filter(group: bytes, unit: int) -> int:
    return (group[4 + unit] >> 4) & 0x03


def get_range(group: bytes, unit: int) -> int:
    return group[4 + unit] & 0x0F


@dataclass(frozen=True)
class SoundSector:
    """The subheader and the 18 sound groups of one XA sector."""

    header: bytes
    groups: tuple[bytes, ...]

    @classmethod
    def from_bytes(cls, data: bytes) -> SoundSector:
        if len(data) < SECTOR_SIZE:
            raise ValueError(f"an XA sector needs {SECTOR_SIZE} bytes, got {len(data)}")
        groups = tuple(
            bytes(data[start:start + SOUND_GROUP_SIZE])
            for start in range(HEADER_SIZE, SECTOR_SIZE, SOUND_GROUP_SIZE)
        )
        return cls(bytes(data[:HEADER_SIZE]), groups)

    def channel(self) -> int:
        return _signed_byte(self.header[XA_CHANNEL])

    def kind(self) -> int:
        return self.header[XA_TYPE]

    def file_no(self) -> int:
        return _signed_byte(self.header[XA_FILE])

    def stereo(self) -> bool:
        return bool(self.header[XA_FLAGS] & XA_FLAG_STEREO)

    def half_hz(self) -> bool:
        return bool(self.header[XA_FLAGS] & XA_FLAG_HALF_HZ)


@dataclass
class _Predictor:
    t1: int = 0
    t2: int = 0

    def step(self, sample: int, rng: int, filt: int) -> int:
        shift = (12 - rng) & 31
        scaled = _s32(_s32(sample << shift) * 2)
        past1 = fix_mul(K0[filt], self.t1)
        past2 = fix_mul(K1[filt], self.t2)
        self.t2 = self.t1
        self.t1 = _s32(scaled + past1 + past2)
        half = -((-self.t1) // 2) if self.t1 < 0 else self.t1 // 2
        return max(min(half, 32767), -32768)


class XADecoder:
    """XA ADPCM decoder keeping predictor state, saved per channel."""

    def __init__(self) -> None:
        self._left = _Predictor()
        self._right = _Predictor()
        self._saved = [(0, 0, 0, 0)] * CHANNEL_SLOTS

    @staticmethod
    def _check(channel: int) -> None:
        if not 0 <= channel < CHANNEL_SLOTS:
            raise ValueError(f"channel must be in 0..{CHANNEL_SLOTS - 1}")

    def reset(self, channel: int) -> None:
        """Clear the state saved for a channel."""
        self._check(channel)
        self._saved[channel] = (0, 0, 0, 0)

    def switch(self, channel: int) -> None:
        """Make the state saved for a channel the current state."""
        self._check(channel)
        t1, t2, t1_x, t2_x = self._saved[channel]
        self._left = _Predictor(t1, t2)
        self._right = _Predictor(t1_x, t2_x)

    def save(self, channel: int) -> None:
        """Store the current state under a channel."""
        self._check(channel)
        self._saved[channel] = (self._left.t1, self._left.t2, self._right.t1, self._right.t2)

    def decode_mono(self, sector: SoundSector) -> bytes:
        """Decode a mono sector to little-endian 16-bit PCM."""
        out = bytearray()
        for group in sector.groups:
            for unit in range(8):
                rng, filt = get_range(group, unit), get_filter(group, unit)
                for sample in range(28):
                    value = get_sound_data(group, unit, sample)
                    out += _PCM.pack(self._left.step(value, rng, filt))
        return bytes(out)

    def decode_stereo(self, sector: SoundSector) -> bytes:
        """Decode a stereo sector to interleaved little-endian 16-bit PCM."""
        out = bytearray()
        for group in sector.groups:
            for unit in range(0, 8, 2):
                rng, filt = get_range(group, unit), get_filter(group, unit)
                rng1, filt1 = get_range(group, unit + 1), get_filter(group, unit + 1)
                for sample in range(28):
                    left = get_sound_data(group, unit, sample)
                    out += _PCM.pack(self._left.step(left, rng, filt))
                    right = get_sound_data(group, unit + 1, sample)
                    out += _PCM.pack(self._right.step(right, rng1, filt1))
        return bytes(out)

    def convert(self, data: bytes, channel: int, file_start: int, file_end: int) -> bytes:
        """Decode a raw sector if it is audio of the given channel and file range.

        Returns empty bytes for sectors that do not match.
        """
        sector = SoundSector.from_bytes(data)
        if sector.channel() != channel or sector.kind() != XA_AUDIO:
            return b""
        if not file_start <= sector.file_no() <= file_end:
            return b""
        if sector.stereo():
            return self.decode_stereo(sector)
        return self.decode_mono(sector)