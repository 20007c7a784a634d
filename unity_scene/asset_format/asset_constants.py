"""Constants for Unity serialized asset files."""

# Class IDs (from the engine's ClassIDReference table)
CLASS_GAME_OBJECT = 1
CLASS_TRANSFORM = 4
CLASS_MATERIAL = 21
CLASS_MESH_RENDERER = 23
CLASS_TEXTURE_2D = 28
CLASS_MESH_FILTER = 33
CLASS_MESH = 43
CLASS_MESH_COLLIDER = 64
CLASS_RECT_TRANSFORM = 224

# Transform-bearing classes, enumerated in this order
TRANSFORM_CLASSES = (CLASS_TRANSFORM, CLASS_RECT_TRANSFORM)

# Scheme prefix used by m_StreamData.path for entries inside the same bundle
ARCHIVE_PREFIX = "archive:/"

# m_IndexFormat values
INDEX_FORMAT_UINT16 = 0
INDEX_FORMAT_UINT32 = 1

# Low nibble of ChannelInfo.dimension is the component count
CHANNEL_DIMENSION_MASK = 0x0F

# Semantic slot names used by the channel layout tables
SLOT_VERTEX = "vertex"
SLOT_NORMAL = "normal"
SLOT_TANGENT = "tangent"
SLOT_COLOR = "color"
SLOT_BLEND_WEIGHT = "blend_weight"
SLOT_BLEND_INDICES = "blend_indices"
SLOT_UV_PREFIX = "uv"

# Slots decoded but never stored on the mesh
IGNORED_SLOTS = frozenset((SLOT_BLEND_WEIGHT, SLOT_BLEND_INDICES))

# Bytes per pixel of decoded texture data handed back by texture decoders
TEXTURE_BYTES_PER_PIXEL = 4
