"""Vertex channel format table.

Canonical formats use the engine 2019+ VertexFormat numbering. The code
sets of older engines are remapped in engine_profiles.
"""

from enum import IntEnum

from .asset_errors import UnsupportedFormat


class VertexFormat(IntEnum):
    FLOAT = 0
    FLOAT16 = 1
    UNORM8 = 2
    SNORM8 = 3
    UNORM16 = 4
    SNORM16 = 5
    UINT8 = 6
    SINT8 = 7
    UINT16 = 8
    SINT16 = 9
    UINT32 = 10
    SINT32 = 11


# Bytes per component
FORMAT_SIZES = {
    VertexFormat.FLOAT: 4,
    VertexFormat.FLOAT16: 2,
    VertexFormat.UNORM8: 1,
    VertexFormat.SNORM8: 1,
    VertexFormat.UNORM16: 2,
    VertexFormat.SNORM16: 2,
    VertexFormat.UINT8: 1,
    VertexFormat.SINT8: 1,
    VertexFormat.UINT16: 2,
    VertexFormat.SINT16: 2,
    VertexFormat.UINT32: 4,
    VertexFormat.SINT32: 4,
}

INTEGER_FORMATS = frozenset((
    VertexFormat.UINT8, VertexFormat.SINT8,
    VertexFormat.UINT16, VertexFormat.SINT16,
    VertexFormat.UINT32, VertexFormat.SINT32,
))


def _canonical(fmt):
    try:
        return VertexFormat(fmt)
    except ValueError:
        raise UnsupportedFormat(fmt) from None


def element_size(fmt):
    """Size in bytes of one component of a canonical format."""
    return FORMAT_SIZES[_canonical(fmt)]


def is_integer(fmt):
    return _canonical(fmt) in INTEGER_FORMATS
