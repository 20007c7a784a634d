"""Mesh and scene reconstruction for Unity serialized asset files.

Decodes Mesh objects (vertex channels, index buffer, submeshes) for all
three vertex-format generations and assembles Transform hierarchies into a
scene graph with world matrices, bounds, textures and ray picking.
"""

__version__ = "0.3.0"

from .engine_profiles import EngineVersion, SceneOptions, select_generation
from .asset_format.asset_errors import (
    MeshDecodeError, UnsupportedFormat, MalformedRecord, MissingResource,
    TextureDecodeError,
)
from .asset_format.asset_fields import AssetField
from .asset_format.asset_container import AssetsFile, BundleArchive, BundleEntry
from .scene_graph.sg_mesh import ParsedMesh, assemble_mesh, load_mesh
from .scene_graph.sg_streams import StreamDataLocator, StreamRef
from .scene_graph.sg_classes import SceneGraph, SceneObject

__all__ = [
    'EngineVersion',
    'SceneOptions',
    'select_generation',
    'MeshDecodeError',
    'UnsupportedFormat',
    'MalformedRecord',
    'MissingResource',
    'TextureDecodeError',
    'AssetField',
    'AssetsFile',
    'BundleArchive',
    'BundleEntry',
    'ParsedMesh',
    'assemble_mesh',
    'load_mesh',
    'StreamDataLocator',
    'StreamRef',
    'SceneGraph',
    'SceneObject',
]
