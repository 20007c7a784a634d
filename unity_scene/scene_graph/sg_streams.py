"""Locating mesh vertex data, inline or streamed.

Meshes either carry their vertex blob inline (m_VertexData.m_DataSize) or
point at a byte range of an external resource through m_StreamData:

    offset: u32   byte offset inside the resource
    size:   u32   byte count
    path:   str   "archive:/CAB-.../CAB-....resS" inside a bundle, or a
                  file name relative to the assets file on disk

Streamed ranges are looked up, in order:
    1. in the bundle the assets file was loaded from, by entry name
       (archive prefix and directories stripped)
    2. on disk next to the assets file
    3. in the bundle by the untrimmed path (data.unity3d style bundles)
"""

import logging
import os
import posixpath

from ..asset_format.asset_constants import ARCHIVE_PREFIX
from ..asset_format.asset_errors import MalformedRecord, MissingResource


_log = logging.getLogger("unity_scene.streams")


class StreamRef:
    """Where a mesh's vertex blob lives.

    Either inline is set (the blob itself), or offset/size/path describe a
    range of an external resource.
    """

    __slots__ = ('offset', 'size', 'path', 'inline')

    def __init__(self, offset=0, size=0, path="", inline=None):
        self.offset = offset
        self.size = size
        self.path = path
        self.inline = inline

    @property
    def is_inline(self):
        return self.inline is not None

    @classmethod
    def from_mesh_fields(cls, fields):
        """Read the stream reference of a Mesh field tree.

        Raises:
            MalformedRecord: neither streamed nor inline vertex data exists
        """
        stream = fields["m_StreamData"]
        if not stream.is_dummy:
            offset = stream["offset"].as_uint
            size = stream["size"].as_uint
            path = stream["path"].as_string
            if size > 0 and path:
                return cls(offset, size, path)

        vertex_data = fields["m_VertexData"]
        if vertex_data.is_dummy:
            raise MalformedRecord("m_VertexData")
        return cls(inline=vertex_data["m_DataSize"].as_bytes)

    def __repr__(self):
        if self.is_inline:
            return f"StreamRef(inline, {len(self.inline)} bytes)"
        return f"StreamRef({self.path!r}, offset={self.offset}, size={self.size})"


class StreamDataLocator:
    """Resolves StreamRefs against one assets file and its bundle."""

    def __init__(self, assets_file):
        self.assets_file = assets_file

    def locate(self, ref):
        """Return the vertex blob a StreamRef points at.

        Raises:
            MissingResource: streamed data not found in any location
        """
        if ref.is_inline:
            return ref.inline

        bundle = self.assets_file.bundle
        path = ref.path
        is_archive_path = path.startswith(ARCHIVE_PREFIX)

        # 1. Entry of the bundle this file came from
        if bundle is not None and is_archive_path:
            name = posixpath.basename(path[len(ARCHIVE_PREFIX):])
            entry = bundle.find_entry(name)
            if entry is not None:
                _log.debug("Stream %r -> bundle entry %r", path, name)
                return bundle.read_entry_slice(entry, ref.offset, ref.size)

        # 2. Loose file next to the assets file. The user may have
        # extracted both the assets file and its .resS from a bundle.
        disk_path = self._disk_path(path, is_archive_path)
        if disk_path is not None and os.path.isfile(disk_path):
            _log.debug("Stream %r -> file %s", path, disk_path)
            with open(disk_path, "rb") as f:
                f.seek(ref.offset)
                return f.read(ref.size)

        # 3. Bundle entry named by the full path, no archive prefix
        if bundle is not None:
            entry = bundle.find_entry(path)
            if entry is not None:
                _log.debug("Stream %r -> bundle entry by full path", path)
                return bundle.read_entry_slice(entry, ref.offset, ref.size)

        raise MissingResource(path)

    def _disk_path(self, path, is_archive_path):
        if not self.assets_file.path:
            return None
        root = os.path.dirname(os.fspath(self.assets_file.path))

        fixed = path
        if self.assets_file.bundle is None and is_archive_path:
            fixed = posixpath.basename(path)
        if not os.path.isabs(fixed):
            fixed = os.path.join(root, fixed)
        return fixed
