"""PlayStation media codecs: MDEC bitstream images, XA ADPCM audio and small helpers."""

__version__ = "0.1.0"

__all__ = ["bs", "dct", "int24", "mdec", "memstream", "vlc", "xadecode"]