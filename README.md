# psxmedia

Pure-Python codecs for PlayStation media formats:

- **MDEC bitstream (BS) images**: encode RGB images into the Huffman-coded
  DCT bitstream read by the MDEC decoder, and decode such bitstreams back
  into 24-bit RGB bytes or 15-bit pixels.
- **XA ADPCM audio**: decode XA sound sectors into 16-bit little-endian PCM,
  mono or interleaved stereo.
- Small helpers: a wrapping signed 24-bit integer and a growable in-memory
  byte stream.

There are no third-party dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `psxmedia.bs` | `encode`, `InputImage`, `BitWriter`, `rgb_to_yuv`, `default_iqtab`, `round_table` |
| `psxmedia.vlc` | `decode_vlc`, `BitReader`: bitstream to run-level words |
| `psxmedia.mdec` | `decode_rgb24`, `decode_rgb15`, `idct`, `rl_to_blocks`, `yuv_to_rgb24`, `yuv_to_rgb15`, `build_iqtab` |
| `psxmedia.dct` | `forward_dct`, `inverse_dct_fast`: integer 8x8 DCTs |
| `psxmedia.xadecode` | `SoundSector`, `XADecoder` and the helpers `get_sound_data`, `get_filter`, `get_range`, `fix_mul` |
| `psxmedia.int24` | `Int24`, a wrapping signed 24-bit integer |
| `psxmedia.memstream` | `MemStream`, an in-memory byte stream |

## Images

`InputImage` describes a 16- or 24-bit raster. 24-bit pixels are stored as
B, G, R bytes; 16-bit pixels as little-endian words with red in the low five
bits. `stride` defaults to tightly packed rows and may be negative for
bottom-up data, with `top` giving the offset of the first row.

```python
from psxmedia import bs, mdec

image = bs.InputImage(width=16, height=16, bit=24, data=bytes(16 * 16 * 3))
stream = bs.encode(image)                 # type=2, q_scale=1, default table
rgb = mdec.decode_rgb24(stream, 16, 16)   # width * height * 3 bytes, top-down
```

`encode` returns the whole bitstream as bytes, four-word header included.
`q_scale` 1 gives the best quality; larger values quantise more coarsely.
`decode_rgb24` returns top-down R, G, B bytes. `decode_rgb15` returns a list
of `width * height` 15-bit pixels, bottom-up (the first decoded row is the
last row of the result), with red in the low five bits and bit 0 always set.
Both decoders take an optional unscaled 64-entry quantisation table; the
default table from `bs.default_iqtab()` is used otherwise.

The lower-level steps are available on their own: `vlc.decode_vlc` turns a
bitstream into run-level words, `mdec.rl_to_blocks` turns those into six
transformed 8x8 blocks per macroblock, and `mdec.yuv_to_rgb24` /
`mdec.yuv_to_rgb15` convert a macroblock to pixels.

## Audio

An XA sector is 2312 bytes: an 8-byte subheader followed by 18 sound groups
of 128 bytes.

```python
from psxmedia.xadecode import XADecoder

decoder = XADecoder()
pcm = decoder.convert(sector_bytes, channel=0, file_start=0, file_end=127)
```

`convert` returns empty bytes when the sector is not audio or belongs to
another channel or file range; otherwise it returns the decoded PCM. The
decoder keeps its filter history between sectors; `save`, `switch` and
`reset` keep separate histories for channels 0 to 255. `decode_mono` and
`decode_stereo` decode a parsed `SoundSector` directly.

## Helpers

```python
from psxmedia.int24 import Int24

sample = Int24.from_bytes(b"\xff\xff\xff")
int(sample)              # -1
(sample + 2).to_bytes()  # b"\x01\x00\x00"
```

Arithmetic on `Int24` wraps to 24 bits and `//` rounds toward zero.

`MemStream` holds bytes with a position: `read_byte` returns `None` at the
end, `read` returns fewer bytes near the end, writes grow the buffer, and
`seek` raises `EOFError` after moving past the end (or before the start when
seeking from the end).

## What it does not do

There is no command-line tool. The package works on bytes in memory: it does
not read STR or XA container files, split them into sectors, or write
images or WAV files to disk.