import pytest

from unity_scene.asset_format.asset_errors import TextureDecodeError
from unity_scene.engine_profiles import SceneOptions
from unity_scene.scene_graph.sg_classes import SceneGraph
from unity_scene.scene_graph.sg_materials import flip_rows, texture_from_material

from mesh_builders import (
    add_game_object, add_material, add_mesh, add_mesh_filter, add_renderer, add_texture,
    triangle_mesh_fields,
)

PROPERTY_NAMES = SceneOptions().texture_property_names

# 1x2 image: top row red, bottom row blue
RED_OVER_BLUE = bytes([255, 0, 0, 255, 0, 0, 255, 255])
BLUE_OVER_RED = bytes([0, 0, 255, 255, 255, 0, 0, 255])


def material_fields(assets, mat_id):
    return assets.get_base_field(mat_id)


def test_flip_rows():
    assert flip_rows(RED_OVER_BLUE, 1, 2) == BLUE_OVER_RED
    data = bytes(range(24))    # 2x3
    assert flip_rows(data, 2, 3) == data[16:24] + data[8:16] + data[0:8]


def test_flip_rows_short_data():
    with pytest.raises(TextureDecodeError):
        flip_rows(b"\x00" * 7, 1, 2)


def test_main_tex_preferred(assets, texture_decoder):
    add_texture(assets, 100, 1, 1, b"\x01\x01\x01\x01", name="Base")
    add_texture(assets, 101, 1, 1, b"\x02\x02\x02\x02", name="Main")
    add_material(assets, 10, [("_BaseMap", 100), ("_MainTex", 101)])
    image = texture_from_material(assets, material_fields(assets, 10), texture_decoder,
                                  PROPERTY_NAMES)
    assert image.name == "Main"
    assert texture_decoder.decoded == ["Main"]


def test_falls_back_to_next_known_name(assets, texture_decoder):
    add_texture(assets, 100, 1, 1, b"\x01" * 4, name="Base")
    add_texture(assets, 101, 1, 1, b"", broken=True, name="Main")
    add_material(assets, 10, [("_MainTex", 101), ("_BumpMap", 0), ("_BaseMap", 100)])
    image = texture_from_material(assets, material_fields(assets, 10), texture_decoder,
                                  PROPERTY_NAMES)
    assert image.name == "Base"


def test_falls_back_to_any_texture(assets, texture_decoder):
    add_texture(assets, 100, 1, 1, b"\x01" * 4, name="Detail")
    add_material(assets, 10, [("_EmissionMap", 0), ("_DetailAlbedoMap", 100)])
    image = texture_from_material(assets, material_fields(assets, 10), texture_decoder,
                                  PROPERTY_NAMES)
    assert image.name == "Detail"


def test_no_resolvable_texture(assets, texture_decoder):
    add_material(assets, 10, [("_MainTex", 0), ("_BaseMap", 555)])
    assert texture_from_material(assets, material_fields(assets, 10), texture_decoder,
                                 PROPERTY_NAMES) is None


def test_renderer_texture_is_flipped(assets, texture_decoder):
    add_game_object(assets, 1, 2, "Quad")
    add_texture(assets, 100, 1, 2, RED_OVER_BLUE)
    add_material(assets, 10, [("_MainTex", 100)])
    add_renderer(assets, 20, 1, [10])
    obj = SceneGraph(texture_decoder=texture_decoder).load(assets).get(2)
    assert obj.has_texture
    assert obj.texture_data == BLUE_OVER_RED
    assert (obj.texture_width, obj.texture_height) == (1, 2)


def test_second_material_used_when_first_has_no_texture(assets, texture_decoder):
    add_game_object(assets, 1, 2, "Quad")
    add_texture(assets, 100, 1, 1, b"\x09" * 4, name="Second")
    add_material(assets, 10, [("_MainTex", 0)])
    add_material(assets, 11, [("_MainTex", 100)])
    add_renderer(assets, 20, 1, [0, 10, 11])
    obj = SceneGraph(texture_decoder=texture_decoder).load(assets).get(2)
    assert obj.texture.name == "Second"


def test_texture_failure_is_isolated(assets, texture_decoder):
    add_game_object(assets, 1, 2, "Broken")
    add_game_object(assets, 3, 4, "Fine")
    add_texture(assets, 100, 1, 1, b"", broken=True)
    add_texture(assets, 101, 1, 1, b"\x07" * 4)
    add_material(assets, 10, [("_MainTex", 100)])
    add_material(assets, 11, [("_MainTex", 101)])
    add_renderer(assets, 20, 1, [10])
    add_renderer(assets, 21, 3, [11])
    scene = SceneGraph(texture_decoder=texture_decoder).load(assets)
    assert not scene.get(2).has_texture
    assert scene.get(4).texture_data == b"\x07" * 4


def test_textures_skipped_without_decoder(assets):
    add_game_object(assets, 1, 2, "Quad")
    add_texture(assets, 100, 1, 1, b"\x01" * 4)
    add_material(assets, 10, [("_MainTex", 100)])
    add_renderer(assets, 20, 1, [10])
    assert not SceneGraph().load(assets).get(2).has_texture


def test_texture_in_external_file(assets, texture_decoder, tmp_path, v2019):
    from unity_scene.asset_format.asset_container import AssetsFile

    shared = AssetsFile(str(tmp_path / "sharedassets0.assets"), v2019)
    add_texture(shared, 5, 1, 1, b"\x03" * 4, name="Shared")
    assets.add_external(1, shared)

    add_game_object(assets, 1, 2, "Quad")
    assets.add_asset(10, 21, {
        "m_SavedProperties": {"m_TexEnvs": [
            {"first": "_MainTex", "second": {"m_Texture": {"m_FileID": 1, "m_PathID": 5}}},
        ]},
    })
    add_renderer(assets, 20, 1, [10])
    obj = SceneGraph(texture_decoder=texture_decoder).load(assets).get(2)
    assert obj.texture.name == "Shared"


class UnsupportedPixelFormatDecoder:
    """Decoder that gives up on one texture with an arbitrary exception."""

    def __init__(self, unsupported):
        self.unsupported = unsupported

    def decode(self, assets_file, fields):
        name = fields["m_Name"].as_string
        if name == self.unsupported:
            raise NotImplementedError("crunched texture format")
        return fields["pixels"].as_bytes, fields["m_Width"].as_int, fields["m_Height"].as_int


def test_unexpected_decoder_error_is_isolated(assets):
    triangle = [(0, 0, 0), (1, 0, 0), (0, 1, 0)]
    add_game_object(assets, 1, 2, "Bad")
    add_game_object(assets, 3, 4, "Good")
    add_mesh(assets, 50, triangle_mesh_fields(triangle))
    add_mesh_filter(assets, 60, 1, 50)
    add_mesh_filter(assets, 61, 3, 50)
    add_texture(assets, 100, 1, 1, b"\x01" * 4, name="Crunched")
    add_texture(assets, 101, 1, 1, b"\x02" * 4, name="Plain")
    add_material(assets, 10, [("_MainTex", 100)])
    add_material(assets, 11, [("_MainTex", 101)])
    add_renderer(assets, 20, 1, [10])
    add_renderer(assets, 21, 3, [11])

    scene = SceneGraph(texture_decoder=UnsupportedPixelFormatDecoder("Crunched")).load(assets)
    bad, good = scene.get(2), scene.get(4)
    assert bad.has_mesh
    assert not bad.has_texture
    assert good.has_mesh
    assert good.texture_data == b"\x02" * 4
    assert scene.load_summary["textures"] == 1


def test_unexpected_decoder_error_tries_next_property(assets):
    add_texture(assets, 100, 1, 1, b"\x01" * 4, name="Crunched")
    add_texture(assets, 101, 1, 1, b"\x02" * 4, name="Base")
    add_material(assets, 10, [("_MainTex", 100), ("_BaseMap", 101)])
    image = texture_from_material(assets, material_fields(assets, 10),
                                  UnsupportedPixelFormatDecoder("Crunched"), PROPERTY_NAMES)
    assert image.name == "Base"
