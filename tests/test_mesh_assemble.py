import pytest

from unity_scene.asset_format.asset_errors import (
    MalformedRecord, MissingResource, UnsupportedFormat,
)
from unity_scene.asset_format.asset_fields import AssetField
from unity_scene.asset_format.vertex_formats import VertexFormat
from unity_scene.scene_graph.sg_mesh import (
    Topology, assemble_mesh, compute_stream_lengths, load_mesh, read_channels,
)
from unity_scene.scene_graph.sg_streams import StreamDataLocator

from mesh_builders import (
    channel, channel_list, floats, mesh_fields, submesh, triangle_mesh_fields,
    u16, u32,
)


def assemble(assets, data, version=None):
    fields = AssetField.build("Base", data)
    return assemble_mesh(fields, StreamDataLocator(assets), version or assets.version)


def index_only_mesh(index_buffer, submeshes=None, index_format=None):
    return mesh_fields([], index_buffer=index_buffer, submeshes=submeshes,
                       index_format=index_format)


# -- vertex channels --------------------------------------------------------

def test_interleaved_position_and_uv(assets, v2018):
    blob = floats(
        0, 0, 0, 0, 0,
        1, 0, 0, 1, 0,
        0, 1, 0, 0, 1,
    )
    data = mesh_fields(
        channel_list(p0=channel(offset=0, fmt=0, dim=3), p4=channel(offset=12, fmt=0, dim=2)),
        vertex_blob=blob, vertex_count=3,
    )
    mesh = assemble(assets, data, v2018)

    assert list(mesh.vertices) == [0, 0, 0, 1, 0, 0, 0, 1, 0]
    assert len(mesh.uvs) == 8
    assert list(mesh.uvs[0]) == [0, 0, 1, 0, 0, 1]
    assert mesh.uvs[1] is None
    assert list(mesh.uv0) == [0, 0, 1, 0, 0, 1]
    assert len(mesh.normals) == 0
    assert mesh.dimensions == {"vertex": 3, "uv0": 2}
    assert mesh.num_verts == 3
    assert mesh.positions() == [(0, 0, 0), (1, 0, 0), (0, 1, 0)]


def test_multiple_streams(assets):
    blob = floats(1, 2, 3, 4, 5, 6) + bytes([255, 0, 0, 255, 0, 255, 0, 0])
    data = mesh_fields(
        channel_list(
            p0=channel(stream=0, dim=3),
            p3=channel(stream=1, fmt=int(VertexFormat.UNORM8), dim=4),
        ),
        vertex_blob=blob, vertex_count=2,
    )
    mesh = assemble(assets, data)
    assert list(mesh.vertices) == [1, 2, 3, 4, 5, 6]
    assert list(mesh.colors) == [1, 0, 0, 1, 0, 1, 0, 0]


def test_stream_lengths(v2019):
    channels = read_channels(AssetField.build("Base", mesh_fields(channel_list(
        p0=channel(stream=0, offset=0, dim=3),
        p1=channel(stream=0, offset=12, fmt=int(VertexFormat.FLOAT16), dim=4),
        p4=channel(stream=2, offset=0, fmt=int(VertexFormat.UNORM16), dim=2),
    ))))
    assert compute_stream_lengths(channels, v2019) == [20, 0, 4]


def test_legacy_channel_layout(assets, v5):
    blob = floats(1, 2, 3) + bytes([0, 51, 102, 255]) + floats(0.5, 0.25) + floats(0, 0, 1, -1)
    channels = [channel() for _ in range(8)]
    channels[0] = channel(offset=0, fmt=0, dim=3)
    channels[2] = channel(offset=12, fmt=2, dim=4)     # Color
    channels[3] = channel(offset=16, fmt=0, dim=2)     # uv0
    channels[7] = channel(offset=24, fmt=0, dim=4)     # tangent
    mesh = assemble(assets, mesh_fields(channels, vertex_blob=blob, vertex_count=1), v5)

    assert list(mesh.vertices) == [1, 2, 3]
    assert list(mesh.colors) == pytest.approx([0.0, 0.2, 0.4, 1.0])
    assert len(mesh.uvs) == 4
    assert list(mesh.uvs[0]) == [0.5, 0.25]
    assert list(mesh.tangents) == [0, 0, 1, -1]


def test_2017_snorm_normals(assets, v2017):
    blob = floats(0, 0, 0) + bytes([0x7F, 0x80, 0x00, 0x00])
    channels = [channel() for _ in range(8)]
    channels[0] = channel(offset=0, fmt=0, dim=3)
    channels[1] = channel(offset=12, fmt=4, dim=4)     # SNorm8 in the 2017 table
    mesh = assemble(assets, mesh_fields(channels, vertex_blob=blob, vertex_count=1), v2017)
    assert list(mesh.normals) == [1.0, -1.0, 0.0, 0.0]


def test_positions_outside_layout_are_ignored(assets):
    channels = channel_list(count=16, p0=channel(dim=3), p15=channel(offset=12, dim=1))
    data = mesh_fields(channels, vertex_blob=floats(1, 2, 3, 9), vertex_count=1)
    mesh = assemble(assets, data)
    assert list(mesh.vertices) == [1, 2, 3]


def test_two_component_positions(assets):
    data = mesh_fields(channel_list(p0=channel(dim=2)), vertex_blob=floats(1, 2, 3, 4, 5, 6),
                       vertex_count=3)
    mesh = assemble(assets, data)
    assert list(mesh.vertices) == [1, 2, 3, 4, 5, 6]
    assert mesh.num_verts == 3
    assert mesh.positions() == []


def test_integer_channels(assets):
    channels = channel_list(
        p0=channel(dim=3),
        p13=channel(offset=12, fmt=int(VertexFormat.UINT8), dim=4),
    )
    data = mesh_fields(channels, vertex_blob=floats(1, 2, 3) + bytes([1, 2, 3, 4]), vertex_count=1)
    mesh = assemble(assets, data)
    assert list(mesh.vertices) == [1, 2, 3]


def test_integer_data_in_float_slot_is_not_stored(assets):
    channels = channel_list(p0=channel(fmt=int(VertexFormat.UINT16), dim=3))
    mesh = assemble(assets, mesh_fields(channels, vertex_blob=u16(1, 2, 3), vertex_count=1))
    assert len(mesh.vertices) == 0
    assert not mesh.has_vertices


# -- indices ----------------------------------------------------------------

def test_triangle_submeshes_are_concatenated(assets):
    data = index_only_mesh(
        u16(*range(12)),
        submeshes=[
            submesh(0, 3, topology=0),
            submesh(6, 2, topology=2),
            submesh(10, 3, topology=0),
        ],
    )
    mesh = assemble(assets, data)
    assert list(mesh.indices) == [0, 1, 2, 5, 6, 7]
    assert [sm.topology for sm in mesh.submeshes] == [
        Topology.TRIANGLES, Topology.LINES, Topology.TRIANGLES,
    ]


def test_no_triangle_submesh_keeps_raw_buffer(assets):
    data = index_only_mesh(u16(*range(6)), submeshes=[submesh(0, 2, topology=2),
                                                      submesh(4, 2, topology=7)])
    mesh = assemble(assets, data)
    assert list(mesh.indices) == [0, 1, 2, 3, 4, 5]
    assert mesh.submeshes[1].topology == 7
    assert not mesh.submeshes[1].is_triangles


def test_no_submeshes_keeps_raw_buffer(assets):
    mesh = assemble(assets, index_only_mesh(u16(3, 2, 1)))
    assert mesh.submeshes == []
    assert list(mesh.indices) == [3, 2, 1]


def test_submesh_slice_is_clamped(assets):
    data = index_only_mesh(u16(*range(12)), submeshes=[submesh(20, 10)])
    assert list(assemble(assets, data).indices) == [10, 11]


def test_32bit_indices_saturate(assets):
    data = index_only_mesh(u32(1, 70000, 65535, 4), index_format=1)
    assert list(assemble(assets, data).indices) == [1, 65535, 65535, 4]


def test_32bit_submesh_offsets(assets):
    data = index_only_mesh(u32(*range(6)), index_format=1,
                           submeshes=[submesh(12, 3)])
    assert list(assemble(assets, data).indices) == [3, 4, 5]


def test_missing_index_format_means_16bit(assets):
    mesh = assemble(assets, index_only_mesh(u32(70000)))
    assert list(mesh.indices) == [70000 & 0xFFFF, 70000 >> 16]


def test_triangle_count(assets):
    mesh = assemble(assets, triangle_mesh_fields([(0, 0, 0), (1, 0, 0), (0, 1, 0)]))
    assert mesh.triangle_count == 1
    assert mesh.name == "Tri"


# -- failures ---------------------------------------------------------------

def test_missing_vertex_data(assets):
    with pytest.raises(MalformedRecord) as excinfo:
        assemble(assets, {"m_Name": "Broken", "m_IndexBuffer": b""})
    assert excinfo.value.field == "m_VertexData"


def test_missing_vertex_count(assets):
    data = mesh_fields([])
    del data["m_VertexData"]["m_VertexCount"]
    with pytest.raises(MalformedRecord):
        assemble(assets, data)


def test_truncated_vertex_blob(assets):
    data = mesh_fields(channel_list(p0=channel(dim=3)), vertex_blob=floats(0, 0, 0, 1, 1, 1),
                       vertex_count=3)
    with pytest.raises(MalformedRecord):
        assemble(assets, data)


def test_unsupported_channel_format(assets):
    data = mesh_fields(channel_list(p0=channel(fmt=15, dim=3)), vertex_blob=b"\x00" * 12,
                       vertex_count=1)
    with pytest.raises(UnsupportedFormat):
        assemble(assets, data)


def test_missing_streamed_data(assets):
    data = mesh_fields(
        channel_list(p0=channel(dim=3)), vertex_count=1,
        stream_data={"offset": 0, "size": 12, "path": "archive:/CAB-1/CAB-1.resS"},
    )
    with pytest.raises(MissingResource):
        load_mesh(assets, AssetField.build("Base", data))
