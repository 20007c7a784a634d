"""Error taxonomy for mesh and texture decoding.

UnsupportedFormat, MalformedRecord and MissingResource are fatal to the
mesh being assembled and nothing else. The scene builder catches them per
object and records the object as having no mesh.
"""


class MeshDecodeError(ValueError):
    """Base class for errors raised while assembling a single mesh."""


class UnsupportedFormat(MeshDecodeError):
    """Unknown vertex format code for the engine generation in use."""

    def __init__(self, code, version=None):
        self.code = code
        self.version = version
        if version is not None:
            msg = f"Unsupported vertex format {code!r} for engine {version}"
        else:
            msg = f"Unsupported vertex format {code!r}"
        super().__init__(msg)


class MalformedRecord(MeshDecodeError):
    """A structural field required to produce geometry is absent or short."""

    def __init__(self, field, detail=""):
        self.field = field
        msg = f"Malformed mesh record: {field}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class MissingResource(MeshDecodeError):
    """The streamed vertex data blob could not be located."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Can't find resource for mesh: {path!r}")


class TextureDecodeError(ValueError):
    """Raised by texture decoders for textures they cannot produce pixels for."""
