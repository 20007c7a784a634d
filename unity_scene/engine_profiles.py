"""Engine-generation profiles for mesh decoding.

The mesh record does not say how its vertex channels are encoded. Two
things depend on the engine version the container was written with:

    * the meaning of a channel's raw format code (three code tables), and
    * which semantic slot a channel's *position* in m_Channels refers to
      (two layouts; there is no stored channel type).

The two change at different version thresholds, so each registered
EngineGeneration pairs one format table with one channel layout. Everything
here is data; the decoders just look it up.

Adding a generation:
    1. Build a VertexFormatConfig and a ChannelLayoutConfig for it
    2. Create an EngineGeneration with the lowest major version it covers
    3. Call register_generation() to add it to the registry
"""

import os
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .asset_format.asset_constants import (
    SLOT_VERTEX, SLOT_NORMAL, SLOT_TANGENT, SLOT_COLOR,
    SLOT_BLEND_WEIGHT, SLOT_BLEND_INDICES,
)
from .asset_format.asset_errors import UnsupportedFormat
from .asset_format.vertex_formats import VertexFormat


# Verbose per-channel logging in the mesh assembler.
# Activate with UNITY_SCENE_DEBUG_MESH=1.
DEBUG_MESH = os.environ.get('UNITY_SCENE_DEBUG_MESH', '') == '1'


# ---------------------------------------------------------------------------
# Engine version
# ---------------------------------------------------------------------------

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)([a-zA-Z]*)(\d*)")


@dataclass(frozen=True)
class EngineVersion:
    """Engine version string as stored in the container metadata."""

    major: int
    minor: int = 0
    patch: int = 0
    release_type: str = "f"
    build: int = 0

    @classmethod
    def parse(cls, text: str) -> "EngineVersion":
        """Parse strings like "2019.4.31f1" or "5.6.7p3"."""
        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Unrecognized engine version: {text!r}")
        major, minor, patch, rtype, build = match.groups()
        return cls(int(major), int(minor), int(patch), rtype or "f", int(build or 0))

    def __lt__(self, other):
        return (self.major, self.minor, self.patch) < (other.major, other.minor, other.patch)

    def __str__(self):
        return f"{self.major}.{self.minor}.{self.patch}{self.release_type}{self.build}"


# ---------------------------------------------------------------------------
# Raw format code tables
# ---------------------------------------------------------------------------

# VertexChannelFormat (engine 5.x and older)
LEGACY_FORMAT_TABLE = {
    0: VertexFormat.FLOAT,
    1: VertexFormat.FLOAT16,
    2: VertexFormat.UNORM8,     # Color
    3: VertexFormat.UINT8,      # Byte
    4: VertexFormat.UINT32,
}

# VertexFormat v1 (engine 2017-2018). Color and UNorm8 are the same encoding.
V2017_FORMAT_TABLE = {
    0: VertexFormat.FLOAT,
    1: VertexFormat.FLOAT16,
    2: VertexFormat.UNORM8,     # Color
    3: VertexFormat.UNORM8,
    4: VertexFormat.SNORM8,
    5: VertexFormat.UNORM16,
    6: VertexFormat.SNORM16,
    7: VertexFormat.UINT8,
    8: VertexFormat.SINT8,
    9: VertexFormat.UINT16,
    10: VertexFormat.SINT16,
    11: VertexFormat.UINT32,
    12: VertexFormat.SINT32,
}


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass
class VertexFormatConfig:
    """Raw channel format code -> canonical VertexFormat.

    A table of None means the raw code already is canonical.
    """

    format_table: Optional[Dict[int, VertexFormat]] = None

    def remap(self, code: int) -> Optional[VertexFormat]:
        if self.format_table is None:
            try:
                return VertexFormat(code)
            except ValueError:
                return None
        return self.format_table.get(code)


@dataclass
class ChannelLayoutConfig:
    """Positional channel index -> semantic slot name.

    Positions past the end of the layout are ignored.
    """

    slots: Tuple[str, ...] = ()
    uv_slots: int = 8

    def slot_for(self, position: int) -> Optional[str]:
        if 0 <= position < len(self.slots):
            return self.slots[position]
        return None


def _uv_names(count):
    return tuple(f"uv{i}" for i in range(count))


# Engine 2018+: ChannelTypeV3 order
CHANNEL_LAYOUT_V3 = ChannelLayoutConfig(
    slots=(SLOT_VERTEX, SLOT_NORMAL, SLOT_TANGENT, SLOT_COLOR)
    + _uv_names(8)
    + (SLOT_BLEND_WEIGHT, SLOT_BLEND_INDICES),
    uv_slots=8,
)

# Engine 5.x - 2017: ChannelTypeV2 order, tangent moved to the end
CHANNEL_LAYOUT_V2 = ChannelLayoutConfig(
    slots=(SLOT_VERTEX, SLOT_NORMAL, SLOT_COLOR) + _uv_names(4) + (SLOT_TANGENT,),
    uv_slots=4,
)


@dataclass
class EngineGeneration:
    """Complete decoding profile for a range of engine versions."""

    generation_id: str = "unity2019"
    name: str = "Unity 2019+"
    min_major: int = 2019

    formats: VertexFormatConfig = field(default_factory=VertexFormatConfig)
    channels: ChannelLayoutConfig = field(default_factory=lambda: CHANNEL_LAYOUT_V3)

    notes: str = ""


@dataclass
class SceneOptions:
    """Options controlling a scene load."""

    load_meshes: bool = True
    load_textures: bool = True

    # Try the MeshCollider's mesh before the MeshFilter's.
    prefer_collider_mesh: bool = True

    # Material texture properties checked in order before falling back to
    # the first texture environment with any resolvable texture.
    texture_property_names: Tuple[str, ...] = (
        "_MainTex",       # Standard shader
        "_BaseMap",       # URP/HDRP Lit
        "_Albedo",
        "_BaseColorMap",  # HDRP
        "_Diffuse",       # Legacy shaders
        "_DiffuseMap",
        "mainTexture",
        "_Texture",
    )

    # Display name for transforms whose GameObject can't be resolved.
    placeholder_name: str = "[Unknown]"


# ---------------------------------------------------------------------------
# Generation registry
# ---------------------------------------------------------------------------

ENGINE_GENERATIONS: Dict[str, EngineGeneration] = {}


def register_generation(generation: EngineGeneration) -> None:
    """Register an engine generation in the global registry."""
    ENGINE_GENERATIONS[generation.generation_id] = generation


def get_generation(generation_id: str) -> Optional[EngineGeneration]:
    """Look up a generation by its id string."""
    return ENGINE_GENERATIONS.get(generation_id)


def select_generation(version: EngineVersion) -> EngineGeneration:
    """Pick the registered generation with the highest min_major <= major.

    Versions older than every registered generation use the oldest one.
    """
    ordered = sorted(ENGINE_GENERATIONS.values(), key=lambda g: g.min_major)
    chosen = ordered[0]
    for generation in ordered:
        if version.major >= generation.min_major:
            chosen = generation
    return chosen


register_generation(EngineGeneration(
    generation_id="legacy",
    name="Unity 5.x",
    min_major=0,
    formats=VertexFormatConfig(format_table=LEGACY_FORMAT_TABLE),
    channels=CHANNEL_LAYOUT_V2,
    notes="VertexChannelFormat codes (Float, Float16, Color, Byte, UInt32), 4 UV sets",
))

register_generation(EngineGeneration(
    generation_id="unity2017",
    name="Unity 2017",
    min_major=2017,
    formats=VertexFormatConfig(format_table=V2017_FORMAT_TABLE),
    channels=CHANNEL_LAYOUT_V2,
    notes="VertexFormat v1 codes (Color aliases UNorm8), 4 UV sets",
))

register_generation(EngineGeneration(
    generation_id="unity2018",
    name="Unity 2018",
    min_major=2018,
    formats=VertexFormatConfig(format_table=V2017_FORMAT_TABLE),
    channels=CHANNEL_LAYOUT_V3,
    notes="VertexFormat v1 codes, 8 UV sets and blend channels",
))

register_generation(EngineGeneration(
    generation_id="unity2019",
    name="Unity 2019+",
    min_major=2019,
    formats=VertexFormatConfig(format_table=None),
    channels=CHANNEL_LAYOUT_V3,
    notes="Raw format codes are canonical",
))


def remap_format(code: int, version: EngineVersion) -> VertexFormat:
    """Map a raw channel format code to its canonical VertexFormat.

    Args:
        code: format byte as stored in the channel descriptor
        version: EngineVersion of the container

    Raises:
        UnsupportedFormat: code is not defined for that engine generation
    """
    fmt = select_generation(version).formats.remap(code)
    if fmt is None:
        raise UnsupportedFormat(code, version)
    return fmt
