"""Mesh reconstruction from a Mesh object's field tree.

A Mesh record stores its geometry as opaque buffers whose layout is only
implied by other fields:

m_SubMeshes.Array[]:
    firstByte    u32   byte offset of the submesh's first index
    indexCount   u32
    topology     i32   0 = Triangles, 1 = Quads, 2 = Lines, 3 = LineStrip, 4 = Points
    firstVertex  u32
    vertexCount  u32

m_IndexFormat   1 = 32-bit indices, anything else (or absent) = 16-bit
m_IndexBuffer   little-endian index words

m_VertexData:
    m_VertexCount       number of vertices
    m_Channels.Array[]  stream u8, offset u8, format u8, dimension u8
    m_DataSize          inline vertex blob (when not streamed)

The vertex blob holds one or more streams back to back. Each stream is
vertex_count records of stream_length bytes; a channel lives at a fixed
offset inside its stream's record. A stream's record length is the furthest
end of any of its channels.

A channel's semantic (position, normal, uv3, ...) is its index in
m_Channels, interpreted through the engine generation's channel layout.
"""

import logging
import struct
from array import array
from enum import IntEnum

from ..asset_format.asset_constants import (
    INDEX_FORMAT_UINT32, CHANNEL_DIMENSION_MASK, IGNORED_SLOTS,
    SLOT_VERTEX, SLOT_NORMAL, SLOT_TANGENT, SLOT_COLOR, SLOT_UV_PREFIX,
)
from ..asset_format.asset_errors import MalformedRecord
from ..asset_format.vertex_formats import element_size
from ..engine_profiles import DEBUG_MESH, remap_format, select_generation
from .sg_streams import StreamRef, StreamDataLocator
from .sg_vertex import decode_vertex_data


_log = logging.getLogger("unity_scene.mesh")

# 32-bit indices are narrowed to 16 bits, saturating
MAX_INDEX_16 = 0xFFFF

# Semantic slot -> ParsedMesh attribute
_SLOT_ATTRS = {
    SLOT_VERTEX: 'vertices',
    SLOT_NORMAL: 'normals',
    SLOT_TANGENT: 'tangents',
    SLOT_COLOR: 'colors',
}


class Topology(IntEnum):
    TRIANGLES = 0
    QUADS = 1
    LINES = 2
    LINE_STRIP = 3
    POINTS = 4


class SubMeshInfo:
    """A slice of the index buffer with its own topology."""

    __slots__ = ('first_byte', 'index_count', 'topology', 'first_vertex', 'vertex_count')

    def __init__(self, first_byte=0, index_count=0, topology=Topology.TRIANGLES,
                 first_vertex=0, vertex_count=0):
        self.first_byte = first_byte
        self.index_count = index_count
        self.topology = topology
        self.first_vertex = first_vertex
        self.vertex_count = vertex_count

    @property
    def is_triangles(self):
        return self.topology == Topology.TRIANGLES

    @classmethod
    def from_field(cls, field):
        code = field["topology"].as_int
        try:
            topology = Topology(code)
        except ValueError:
            topology = code  # unknown codes kept raw, never triangles
        return cls(
            first_byte=field["firstByte"].as_uint,
            index_count=field["indexCount"].as_uint,
            topology=topology,
            first_vertex=field["firstVertex"].as_uint,
            vertex_count=field["vertexCount"].as_uint,
        )

    def __repr__(self):
        return (
            f"SubMeshInfo(first_byte={self.first_byte}, index_count={self.index_count}, "
            f"topology={self.topology!r})"
        )


class ChannelInfo:
    """Declared layout of one vertex channel. format is the raw code."""

    __slots__ = ('stream', 'offset', 'format', 'dimension')

    def __init__(self, stream=0, offset=0, format=0, dimension=0):
        self.stream = stream
        self.offset = offset
        self.format = format
        self.dimension = dimension

    @property
    def component_count(self):
        return self.dimension & CHANNEL_DIMENSION_MASK

    @classmethod
    def from_field(cls, field):
        return cls(
            stream=field["stream"].as_int,
            offset=field["offset"].as_int,
            format=field["format"].as_int,
            dimension=field["dimension"].as_int,
        )

    def __repr__(self):
        return (
            f"ChannelInfo(stream={self.stream}, offset={self.offset}, "
            f"format={self.format}, dimension={self.component_count})"
        )


class ParsedMesh:
    """Decoded geometry of a single Mesh object.

    Attribute arrays are flat array('f'); the component count of each is in
    dimensions (keyed by slot name: "vertex", "normal", "uv0", ...).
    """

    __slots__ = (
        'name', 'indices', 'channels', 'submeshes', 'vertex_count',
        'vertices', 'normals', 'tangents', 'colors', 'uvs', 'dimensions',
    )

    def __init__(self, name=""):
        self.name = name
        self.indices = array('H')
        self.channels = []
        self.submeshes = []
        self.vertex_count = 0
        self.vertices = array('f')
        self.normals = array('f')
        self.tangents = array('f')
        self.colors = array('f')
        self.uvs = []           # empty, or one entry per UV slot (None if absent)
        self.dimensions = {}

    @property
    def has_vertices(self):
        return len(self.vertices) > 0

    @property
    def vertex_dimension(self):
        return self.dimensions.get(SLOT_VERTEX, 3)

    @property
    def num_verts(self):
        dim = self.vertex_dimension
        return len(self.vertices) // dim if dim else 0

    @property
    def triangle_count(self):
        return len(self.indices) // 3

    @property
    def uv0(self):
        if self.uvs and self.uvs[0] is not None:
            return self.uvs[0]
        return None

    def positions(self):
        """Vertex positions as (x, y, z) tuples. Empty for 2D positions."""
        dim = self.vertex_dimension
        if dim < 3:
            return []
        verts = self.vertices
        return [tuple(verts[i:i + 3]) for i in range(0, len(verts) - dim + 1, dim)]

    def __repr__(self):
        return (
            f"ParsedMesh({self.name!r}, verts={self.num_verts}, "
            f"indices={len(self.indices)}, submeshes={len(self.submeshes)})"
        )


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

def read_submeshes(fields):
    """Submesh descriptors in declaration order. Absent array -> []."""
    array_field = fields["m_SubMeshes.Array"]
    if array_field.is_dummy:
        return []
    return [SubMeshInfo.from_field(sm) for sm in array_field]


def read_indices(fields, submeshes):
    """Decode m_IndexBuffer, keeping only triangle submeshes when possible."""
    data = fields["m_IndexBuffer.Array"].as_bytes
    index_format = fields["m_IndexFormat"]
    is_32bit = not index_format.is_dummy and index_format.as_int == INDEX_FORMAT_UINT32

    if is_32bit:
        count = len(data) // 4
        wide = struct.unpack_from(f"<{count}I", data, 0)
        indices = array('H', (min(v, MAX_INDEX_16) for v in wide))
        bytes_per_index = 4
    else:
        count = len(data) // 2
        indices = array('H', struct.unpack_from(f"<{count}H", data, 0))
        bytes_per_index = 2

    if submeshes:
        indices = filter_triangle_indices(indices, submeshes, bytes_per_index)
    return indices


def filter_triangle_indices(indices, submeshes, bytes_per_index):
    """Concatenate the index slices of triangle submeshes, in order.

    The slices are clamped to the decoded buffer. If nothing is collected
    (no triangle submesh, or only empty ones) the buffer is returned as is.
    """
    collected = array('H')
    for sm in submeshes:
        if not sm.is_triangles:
            continue
        start = sm.first_byte // bytes_per_index
        collected.extend(indices[start:start + sm.index_count])
    if collected:
        return collected
    return indices


def read_channels(fields):
    vertex_data = fields["m_VertexData"]
    if vertex_data.is_dummy:
        raise MalformedRecord("m_VertexData")
    channel_fields = vertex_data["m_Channels.Array"]
    if channel_fields.is_dummy:
        raise MalformedRecord("m_VertexData.m_Channels")
    return [ChannelInfo.from_field(ch) for ch in channel_fields]


def compute_stream_lengths(channels, version):
    """Per-stream record length: max over its channels of offset + size."""
    if not channels:
        return []
    lengths = [0] * (max(ch.stream for ch in channels) + 1)
    for ch in channels:
        fmt = remap_format(ch.format, version)
        end = ch.offset + ch.component_count * element_size(fmt)
        if end > lengths[ch.stream]:
            lengths[ch.stream] = end
    return lengths


def _gather(blob, base, stride, size, vertex_count):
    """Copy size bytes at base + i * stride for every vertex into one buffer."""
    if size == 0 or vertex_count == 0:
        return b""
    end = base + (vertex_count - 1) * stride + size
    if end > len(blob):
        raise MalformedRecord(
            "m_VertexData",
            f"vertex data truncated: need {end} bytes, have {len(blob)}",
        )
    view = memoryview(blob)
    if size == stride:
        return bytes(view[base:end])
    return b"".join(view[pos:pos + size] for pos in range(base, end, stride))


def _assign_channel(mesh, layout, position, decoded, dimension):
    slot = layout.slot_for(position)
    if slot is None or slot in IGNORED_SLOTS:
        return
    values = decoded.floats
    if values is None:
        # Integer data in a float slot; nothing to store
        _log.debug("Mesh %r: integer channel at slot %s skipped", mesh.name, slot)
        return

    mesh.dimensions[slot] = dimension
    if slot.startswith(SLOT_UV_PREFIX):
        if not mesh.uvs:
            mesh.uvs = [None] * layout.uv_slots
        mesh.uvs[int(slot[len(SLOT_UV_PREFIX):])] = values
    else:
        setattr(mesh, _SLOT_ATTRS[slot], values)


def read_vertex_data(mesh, blob, stream_lengths, version):
    """De-interleave every channel of the blob and store it on the mesh."""
    layout = select_generation(version).channels
    vertex_count = mesh.vertex_count
    start = 0
    for stream_index, stream_length in enumerate(stream_lengths):
        if stream_length == 0:
            continue
        for position, ch in enumerate(mesh.channels):
            if ch.stream != stream_index or ch.component_count == 0:
                continue
            fmt = remap_format(ch.format, version)
            dimension = ch.component_count
            size = element_size(fmt) * dimension
            packed = _gather(blob, start + ch.offset, stream_length, size, vertex_count)
            decoded = decode_vertex_data(packed, fmt)
            if DEBUG_MESH:
                _log.debug(
                    "Mesh %r: channel %d stream %d offset %d %s x%d -> %d values",
                    mesh.name, position, stream_index, ch.offset,
                    fmt.name, dimension, len(decoded),
                )
            _assign_channel(mesh, layout, position, decoded, dimension)
        start += stream_length * vertex_count


def assemble_mesh(fields, locator, version):
    """Reconstruct a mesh from its field tree.

    Args:
        fields: AssetField tree of a Mesh object
        locator: StreamDataLocator (anything with locate(StreamRef) -> bytes)
        version: EngineVersion of the container

    Returns:
        ParsedMesh

    Raises:
        UnsupportedFormat: a channel uses a format code unknown to the generation
        MissingResource: streamed vertex data can't be found
        MalformedRecord: vertex data fields are missing or the blob is short
    """
    mesh = ParsedMesh(fields["m_Name"].as_string)
    mesh.submeshes = read_submeshes(fields)
    mesh.indices = read_indices(fields, mesh.submeshes)
    mesh.channels = read_channels(fields)

    count_field = fields["m_VertexData.m_VertexCount"]
    if count_field.is_dummy:
        raise MalformedRecord("m_VertexData.m_VertexCount")
    mesh.vertex_count = count_field.as_uint

    stream_lengths = compute_stream_lengths(mesh.channels, version)
    blob = locator.locate(StreamRef.from_mesh_fields(fields))
    read_vertex_data(mesh, blob, stream_lengths, version)
    return mesh


def load_mesh(assets_file, fields):
    """Assemble a mesh stored in (or referenced from) an assets file."""
    return assemble_mesh(fields, StreamDataLocator(assets_file), assets_file.version)
