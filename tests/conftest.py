import pytest

from unity_scene.asset_format.asset_container import AssetsFile
from unity_scene.asset_format.asset_errors import TextureDecodeError
from unity_scene.engine_profiles import EngineVersion


class FakeTextureDecoder:
    """Returns the raw "pixels" field; "broken" textures fail to decode."""

    def __init__(self):
        self.decoded = []

    def decode(self, assets_file, fields):
        name = fields["m_Name"].as_string
        if fields["broken"].as_bool:
            raise TextureDecodeError(f"cannot decode {name}")
        self.decoded.append(name)
        return fields["pixels"].as_bytes, fields["m_Width"].as_int, fields["m_Height"].as_int


@pytest.fixture
def v2019():
    return EngineVersion.parse("2019.4.31f1")


@pytest.fixture
def v2018():
    return EngineVersion.parse("2018.4.2f1")


@pytest.fixture
def v2017():
    return EngineVersion.parse("2017.4.40f1")


@pytest.fixture
def v5():
    return EngineVersion.parse("5.6.7f1")


@pytest.fixture
def assets(tmp_path, v2019):
    return AssetsFile(str(tmp_path / "level0"), v2019)


@pytest.fixture
def texture_decoder():
    return FakeTextureDecoder()
