"""Texture lookup through MeshRenderer -> Material -> Texture2D.

MeshRenderer:
    m_Materials.Array[]          PPtr<Material>

Material:
    m_SavedProperties.m_TexEnvs.Array[]:
        first                    property name ("_MainTex", ...)
        second.m_Texture         PPtr<Texture>

Texture pixel decoding is delegated to a texture decoder: any object with

    decode(assets_file, texture_fields) -> (pixels, width, height)

returning 4 bytes per pixel, rows top to bottom. Rows are flipped here so
row 0 is the bottom of the image, as the renderer expects.
"""

import logging

import numpy as np

from ..asset_format.asset_constants import TEXTURE_BYTES_PER_PIXEL
from ..asset_format.asset_errors import TextureDecodeError
from ..asset_format.asset_fields import read_pointer
from .sg_result import Resolved


_log = logging.getLogger("unity_scene.materials")


class TextureImage:
    """Decoded RGBA pixels, bottom row first."""

    __slots__ = ('pixels', 'width', 'height', 'name')

    def __init__(self, pixels, width, height, name=""):
        self.pixels = pixels
        self.width = width
        self.height = height
        self.name = name

    def __repr__(self):
        return f"TextureImage({self.name!r}, {self.width}x{self.height})"


def flip_rows(data, width, height, bytes_per_pixel=TEXTURE_BYTES_PER_PIXEL):
    """Reverse the row order of a packed image."""
    stride = width * bytes_per_pixel
    needed = stride * height
    if len(data) < needed:
        raise TextureDecodeError(
            f"Pixel data too small: {len(data)} bytes for {width}x{height}"
        )
    rows = np.frombuffer(data, dtype=np.uint8, count=needed).reshape(height, stride)
    return rows[::-1].tobytes()


def _texture_env_pointer(tex_env):
    return read_pointer(tex_env["second"]["m_Texture"])


def load_texture(assets_file, file_id, path_id, decoder):
    """Decode the texture a pointer refers to.

    Returns TextureImage, or None if the pointer doesn't resolve or the
    decoder produced no pixels.
    """
    owner, entry = assets_file.get_asset(path_id, file_id)
    if entry is None:
        return None
    pixels, width, height = decoder.decode(owner, entry.fields)
    if not pixels:
        return None
    flipped = flip_rows(pixels, width, height)
    return TextureImage(flipped, width, height, entry.fields["m_Name"].as_string)


def _try_texture(assets_file, file_id, path_id, decoder):
    result = Resolved.attempt(load_texture, assets_file, file_id, path_id, decoder)
    if result.error is not None:
        _log.debug("Texture %d:%d failed to decode: %s", file_id, path_id, result.error)
    return result.value


def texture_from_material(assets_file, material_fields, decoder, property_names):
    """First decodable texture of a material.

    Well-known property names are tried in the given order; after that any
    texture environment with a non-null texture is tried.
    """
    tex_envs = material_fields["m_SavedProperties"]["m_TexEnvs.Array"]
    if tex_envs.is_dummy:
        return None

    for prop_name in property_names:
        for tex_env in tex_envs:
            if tex_env["first"].as_string != prop_name:
                continue
            file_id, path_id = _texture_env_pointer(tex_env)
            if path_id != 0:
                image = _try_texture(assets_file, file_id, path_id, decoder)
                if image is not None:
                    return image

    for tex_env in tex_envs:
        file_id, path_id = _texture_env_pointer(tex_env)
        if path_id != 0:
            image = _try_texture(assets_file, file_id, path_id, decoder)
            if image is not None:
                return image
    return None


def texture_from_renderer(assets_file, renderer_fields, decoder, property_names):
    """Walk a renderer's materials until one yields a texture."""
    for mat_ptr in renderer_fields["m_Materials.Array"]:
        file_id, path_id = read_pointer(mat_ptr)
        if path_id == 0:
            continue
        owner, entry = assets_file.get_asset(path_id, file_id)
        if entry is None:
            continue
        image = texture_from_material(owner, entry.fields, decoder, property_names)
        if image is not None:
            return image
    return None
