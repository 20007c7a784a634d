"""Decoding of packed vertex channel bytes into numeric arrays.

All data is little-endian. Integer formats decode to non-negative ints:
signed and unsigned codes share the unsigned path. Float formats decode
to float32 values held in array('f').

Normalized formats:
    UNorm8  -> raw / 255
    UNorm16 -> raw / 65535
    SNorm8  -> max(raw / 127, -1.0)
    SNorm16 -> max(raw / 32767, -1.0)

The signed variants are clamped from below only.
"""

import struct
from array import array

from ..asset_format.asset_errors import UnsupportedFormat
from ..asset_format.vertex_formats import VertexFormat, element_size, is_integer


# struct codes for the raw read of each format
_STRUCT_CODES = {
    VertexFormat.FLOAT: "f",
    VertexFormat.FLOAT16: "e",
    VertexFormat.UNORM8: "B",
    VertexFormat.SNORM8: "b",
    VertexFormat.UNORM16: "H",
    VertexFormat.SNORM16: "h",
    VertexFormat.UINT8: "B",
    VertexFormat.SINT8: "B",
    VertexFormat.UINT16: "H",
    VertexFormat.SINT16: "H",
    VertexFormat.UINT32: "I",
    VertexFormat.SINT32: "I",
}

# (divisor, floor) for normalized formats
_NORMALIZE = {
    VertexFormat.UNORM8: (255.0, None),
    VertexFormat.UNORM16: (65535.0, None),
    VertexFormat.SNORM8: (127.0, -1.0),
    VertexFormat.SNORM16: (32767.0, -1.0),
}


class DecodedChannel:
    """Result of decoding one channel: either integers or float32 values."""

    __slots__ = ('format', 'values')

    def __init__(self, fmt, values):
        self.format = fmt
        self.values = values

    @property
    def is_integer(self):
        return is_integer(self.format)

    @property
    def floats(self):
        """Float values, or None for integer channels."""
        return None if self.is_integer else self.values

    @property
    def ints(self):
        """Integer values, or None for float channels."""
        return self.values if self.is_integer else None

    def __len__(self):
        return len(self.values)

    def __repr__(self):
        kind = "int" if self.is_integer else "float"
        return f"DecodedChannel({self.format.name}, {kind}[{len(self.values)}])"


def _unpack(data, fmt):
    try:
        code = _STRUCT_CODES[VertexFormat(fmt)]
    except (KeyError, ValueError):
        raise UnsupportedFormat(fmt) from None
    count = len(data) // element_size(fmt)
    return struct.unpack_from(f"<{count}{code}", data, 0)


def decode_integers(data, fmt):
    """Decode an integer-format byte span to a list of non-negative ints."""
    return list(_unpack(data, fmt))


def decode_floats(data, fmt):
    """Decode a float or normalized byte span to array('f')."""
    raw = _unpack(data, fmt)
    norm = _NORMALIZE.get(VertexFormat(fmt))
    if norm is None:
        return array('f', raw)
    divisor, floor = norm
    if floor is None:
        return array('f', (v / divisor for v in raw))
    return array('f', (max(v / divisor, floor) for v in raw))


def decode_vertex_data(data, fmt):
    """Decode a packed channel buffer according to its canonical format.

    Args:
        data: bytes-like, components packed back to back
        fmt: canonical VertexFormat (or its int code)

    Returns:
        DecodedChannel holding len(data) // element_size(fmt) values

    Raises:
        UnsupportedFormat: fmt is not a canonical format
    """
    try:
        fmt = VertexFormat(fmt)
    except ValueError:
        raise UnsupportedFormat(fmt) from None
    if is_integer(fmt):
        return DecodedChannel(fmt, decode_integers(data, fmt))
    return DecodedChannel(fmt, decode_floats(data, fmt))
