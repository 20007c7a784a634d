"""In-memory view of a serialized assets file and its parent bundle.

The container parser itself lives outside this package. It hands over an
AssetsFile holding one AssetEntry per object (path id, class id and the
deserialized field tree), plus the BundleArchive the file was loaded from
when there is one.

Usage:
    assets = AssetsFile("level0", EngineVersion.parse("2021.3.5f1"))
    assets.add_asset(1, CLASS_GAME_OBJECT, {"m_Name": "Cube", ...})
    for entry in assets.get_assets_of_type(CLASS_TRANSFORM):
        ...
"""

import io
import threading

from .asset_fields import AssetField


class AssetEntry:
    """One object stored in an assets file."""

    __slots__ = ('path_id', 'class_id', 'fields')

    def __init__(self, path_id, class_id, fields):
        self.path_id = path_id
        self.class_id = class_id
        self.fields = fields

    def __repr__(self):
        return f"AssetEntry({self.path_id}, class={self.class_id})"


class BundleEntry:
    """Directory entry of a bundle: a named byte range of the data area."""

    __slots__ = ('name', 'offset', 'size')

    def __init__(self, name, offset, size):
        self.name = name
        self.offset = offset
        self.size = size

    def __repr__(self):
        return f"BundleEntry({self.name!r}, offset={self.offset}, size={self.size})"


class BundleArchive:
    """Bundle directory plus the shared reader over its decompressed data.

    Several meshes in one load may read from the same bundle, so every
    seek+read pair on the shared reader happens under a lock.
    """

    def __init__(self, reader, entries=None, path=None):
        if isinstance(reader, (bytes, bytearray)):
            reader = io.BytesIO(reader)
        self.reader = reader
        self.entries = list(entries or [])
        self.path = path
        self.lock = threading.Lock()

    def find_entry(self, name):
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def read_range(self, offset, size):
        """Read size bytes at an absolute data offset."""
        with self.lock:
            self.reader.seek(offset)
            return self.reader.read(size)

    def read_entry_slice(self, entry, offset, size):
        return self.read_range(entry.offset + offset, size)


class AssetsFile:
    """A loaded assets file.

    Attributes:
        path: on-disk path the file was loaded from (or its name inside a bundle)
        version: EngineVersion from the file metadata
        bundle: BundleArchive the file lives in, or None for loose files
        externals: file_id -> AssetsFile for resolving cross-file pointers
    """

    def __init__(self, path, version, bundle=None):
        self.path = path
        self.version = version
        self.bundle = bundle
        self.entries = {}       # path_id -> AssetEntry, insertion ordered
        self.externals = {}     # file_id (1-based) -> AssetsFile

    def add_asset(self, path_id, class_id, fields):
        if not isinstance(fields, AssetField):
            fields = AssetField.build("Base", fields)
        entry = AssetEntry(path_id, class_id, fields)
        self.entries[path_id] = entry
        return entry

    def add_external(self, file_id, assets_file):
        self.externals[file_id] = assets_file

    def get_assets_of_type(self, class_id):
        return [e for e in self.entries.values() if e.class_id == class_id]

    def get_asset(self, path_id, file_id=0):
        """Resolve a (file_id, path_id) pointer to (AssetsFile, AssetEntry).

        Returns (None, None) when either part can't be resolved.
        """
        target = self if file_id == 0 else self.externals.get(file_id)
        if target is None:
            return None, None
        entry = target.entries.get(path_id)
        if entry is None:
            return None, None
        return target, entry

    def get_base_field(self, path_id, file_id=0):
        """Field tree of the object a pointer refers to, or None."""
        _, entry = self.get_asset(path_id, file_id)
        return entry.fields if entry is not None else None

    def __repr__(self):
        return f"AssetsFile({self.path!r}, {self.version}, objects={len(self.entries)})"
