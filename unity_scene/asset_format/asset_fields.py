"""Python representation of a deserialized asset's typed field tree.

Field trees are normally produced by the container parser from the file's
type tree. The nodes here are built from plain Python values instead, which
is all the mesh and scene code needs: named and indexed lookup, typed scalar
reads, raw byte spans and ordered iteration over array nodes.

    fields = AssetField.build("Base", {"m_Name": "Cube", "m_Children": []})
    fields["m_Name"].as_string              # "Cube"
    fields["m_Children.Array"].is_dummy     # False (empty array)
    fields["m_Missing.x"].is_dummy          # True
"""


class AssetField:
    """A single node of a field tree.

    Nodes are one of: a scalar value node, a byte-span node, a named
    container (children looked up by name) or an array (children looked up
    by index). Lookups that miss return the shared dummy node, whose scalar
    accessors return the type's zero value.
    """

    __slots__ = ('name', 'value', 'children', 'is_array', '_by_name')

    def __init__(self, name, value=None, children=None, is_array=False):
        self.name = name
        self.value = value
        self.children = children if children is not None else []
        self.is_array = is_array
        self._by_name = {}
        if not is_array:
            for child in self.children:
                self._by_name.setdefault(child.name, child)

    @classmethod
    def build(cls, name, data):
        """Build a field tree from nested dicts, lists, bytes and scalars."""
        if isinstance(data, AssetField):
            return data
        if isinstance(data, dict):
            return cls(name, children=[cls.build(k, v) for k, v in data.items()])
        if isinstance(data, (list, tuple)):
            return cls(name, children=[cls.build("data", v) for v in data], is_array=True)
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        return cls(name, value=data)

    # -- lookup -------------------------------------------------------------

    @property
    def is_dummy(self):
        return self is DUMMY_FIELD

    def __getitem__(self, key):
        if isinstance(key, int):
            if self.is_array and -len(self.children) <= key < len(self.children):
                return self.children[key]
            return DUMMY_FIELD
        node = self
        for part in key.split("."):
            node = node._child(part)
            if node is DUMMY_FIELD:
                break
        return node

    def _child(self, part):
        if self is DUMMY_FIELD:
            return DUMMY_FIELD
        # "Array" is the element list of a vector field; our arrays and
        # byte spans already are that list.
        if part == "Array" and (self.is_array or isinstance(self.value, bytes)):
            return self
        return self._by_name.get(part, DUMMY_FIELD)

    def get(self, key):
        """Like indexing, but returns None instead of the dummy node."""
        node = self[key]
        return None if node.is_dummy else node

    def __iter__(self):
        return iter(self.children)

    def __len__(self):
        if isinstance(self.value, bytes):
            return len(self.value)
        return len(self.children)

    # -- typed scalar reads -------------------------------------------------

    @property
    def as_int(self):
        if self.value is None:
            return 0
        return int(self.value)

    @property
    def as_uint(self):
        return self.as_int & 0xFFFFFFFF

    @property
    def as_long(self):
        return self.as_int

    @property
    def as_float(self):
        if self.value is None:
            return 0.0
        return float(self.value)

    @property
    def as_bool(self):
        return bool(self.value)

    @property
    def as_string(self):
        if self.value is None:
            return ""
        if isinstance(self.value, bytes):
            return self.value.decode('utf-8', errors='replace')
        return str(self.value)

    @property
    def as_bytes(self):
        """Raw byte span. Arrays of small ints (byte vectors) are packed."""
        if isinstance(self.value, bytes):
            return self.value
        if self.is_array:
            return bytes(child.as_int & 0xFF for child in self.children)
        return b""

    def __repr__(self):
        if self is DUMMY_FIELD:
            return "AssetField(<dummy>)"
        if self.is_array:
            return f"AssetField({self.name!r}, array[{len(self.children)}])"
        if self.children:
            return f"AssetField({self.name!r}, fields={len(self.children)})"
        return f"AssetField({self.name!r}, {self.value!r})"


DUMMY_FIELD = AssetField("<dummy>")


def read_pointer(field):
    """Read a PPtr field as (file_id, path_id)."""
    return field["m_FileID"].as_int, field["m_PathID"].as_long


def read_vector3(field):
    return (field["x"].as_float, field["y"].as_float, field["z"].as_float)


def read_quaternion(field):
    """Read a quaternion field as (x, y, z, w)."""
    return (
        field["x"].as_float,
        field["y"].as_float,
        field["z"].as_float,
        field["w"].as_float,
    )
