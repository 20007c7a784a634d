"""Scene graph built from the Transform hierarchy of an assets file.

Every Transform / RectTransform becomes one SceneObject. Objects live in a
flat list (SceneGraph.objects); parent and child links are indices into that
list, so the parent link is a plain back-reference and ownership runs from
the roots down.

Loading runs in passes:
    1. read every transform (parent, GameObject, local position/rotation/scale)
    2. link children to parents; objects without a known parent are roots
    3. resolve meshes (MeshCollider first, then MeshFilter) and textures
       (MeshRenderer materials) per GameObject
    4. compute world matrices from the roots down
    5. compute world-space bounds

Relevant fields:

Transform:
    m_GameObject            PPtr<GameObject>
    m_Father                PPtr<Transform>, path id 0 for roots
    m_Children.Array[]      PPtr<Transform>
    m_LocalPosition         Vector3f
    m_LocalRotation         Quaternionf (x, y, z, w)
    m_LocalScale            Vector3f

MeshFilter / MeshCollider / MeshRenderer:
    m_GameObject            PPtr<GameObject>
    m_Mesh                  PPtr<Mesh> (filter and collider)
"""

import logging

import numpy as np

from ..asset_format.asset_constants import (
    CLASS_GAME_OBJECT, CLASS_MESH_COLLIDER, CLASS_MESH_FILTER,
    CLASS_MESH_RENDERER, TRANSFORM_CLASSES,
)
from ..asset_format.asset_fields import read_pointer, read_quaternion, read_vector3
from ..engine_profiles import SceneOptions
from .sg_materials import texture_from_renderer
from .sg_math import Bounds, compose_trs, transform_points
from .sg_mesh import load_mesh
from .sg_result import Resolved


_log = logging.getLogger("unity_scene.scene")

MESH_SOURCE_COLLIDER = "collider"
MESH_SOURCE_FILTER = "filter"


class SceneObject:
    """One Transform in the scene, with whatever mesh/texture it resolved."""

    __slots__ = (
        'index', 'name', 'transform_id', 'game_object_id', 'parent', 'children',
        'child_ids', 'local_position', 'local_rotation', 'local_scale',
        'world_matrix', 'mesh', 'mesh_source', 'uv', 'texture', 'bounds',
        'selected',
    )

    def __init__(self, index, name, transform_id, game_object_id=0):
        self.index = index
        self.name = name
        self.transform_id = transform_id
        self.game_object_id = game_object_id
        self.parent = None          # index into SceneGraph.objects
        self.children = []          # indices into SceneGraph.objects
        self.child_ids = []         # transform path ids as declared by m_Children
        self.local_position = (0.0, 0.0, 0.0)
        self.local_rotation = (0.0, 0.0, 0.0, 1.0)
        self.local_scale = (1.0, 1.0, 1.0)
        self.world_matrix = np.eye(4, dtype=np.float64)
        self.mesh = None
        self.mesh_source = None
        self.uv = None
        self.texture = None
        self.bounds = Bounds.empty()
        self.selected = False

    @property
    def has_mesh(self):
        return self.mesh is not None and self.mesh.has_vertices

    @property
    def has_texture(self):
        return self.texture is not None

    @property
    def texture_data(self):
        return self.texture.pixels if self.texture is not None else None

    @property
    def texture_width(self):
        return self.texture.width if self.texture is not None else 0

    @property
    def texture_height(self):
        return self.texture.height if self.texture is not None else 0

    @property
    def local_matrix(self):
        return compose_trs(self.local_position, self.local_rotation, self.local_scale)

    @property
    def world_position(self):
        return tuple(float(v) for v in self.world_matrix[:3, 3])

    def __repr__(self):
        return f"SceneObject({self.index}, {self.name!r}, transform={self.transform_id})"


class SceneGraph:
    """Scene hierarchy of one assets file.

    Usage:
        scene = SceneGraph(texture_decoder=decoder)
        scene.load(assets_file)
        for obj in scene.walk():
            ...
        hit = scene.pick(origin, direction)

    Each load() replaces everything from the previous one.
    """

    def __init__(self, options=None, texture_decoder=None):
        self.options = options or SceneOptions()
        self.texture_decoder = texture_decoder
        self.assets_file = None
        self.objects = []
        self.root_indices = []
        self._by_transform = {}     # transform path id -> object index

    # -- access ---------------------------------------------------------------

    @property
    def roots(self):
        return [self.objects[i] for i in self.root_indices]

    def get(self, transform_id):
        index = self._by_transform.get(transform_id)
        return self.objects[index] if index is not None else None

    def parent_of(self, obj):
        return self.objects[obj.parent] if obj.parent is not None else None

    def children_of(self, obj):
        return [self.objects[i] for i in obj.children]

    def walk(self):
        """Depth-first traversal from the roots, children in order."""
        visited = set()
        stack = list(reversed(self.root_indices))
        while stack:
            index = stack.pop()
            if index in visited:
                continue
            visited.add(index)
            obj = self.objects[index]
            yield obj
            stack.extend(reversed(obj.children))

    # -- loading --------------------------------------------------------------

    def clear(self):
        self.assets_file = None
        self.objects = []
        self.root_indices = []
        self._by_transform = {}

    def load(self, assets_file):
        """Build the scene from every transform in assets_file."""
        self.clear()
        self.assets_file = assets_file

        parent_ids = self._read_transforms(assets_file)
        self._link_hierarchy(parent_ids)
        if self.options.load_meshes or self.options.load_textures:
            self._resolve_components(assets_file)
        self._compute_world_matrices()
        for obj in self.objects:
            self._compute_bounds(obj)

        summary = self.load_summary
        _log.info(
            "Loaded scene %s: %d objects, %d roots, %d meshes, %d textures",
            assets_file.path, summary['objects'], summary['roots'],
            summary['meshes'], summary['textures'],
        )
        return self

    @property
    def load_summary(self):
        return {
            'objects': len(self.objects),
            'roots': len(self.root_indices),
            'meshes': sum(1 for o in self.objects if o.has_mesh),
            'textures': sum(1 for o in self.objects if o.has_texture),
        }

    def _game_object_name(self, assets_file, go_id):
        if go_id == 0:
            return None
        _, entry = assets_file.get_asset(go_id)
        if entry is None or entry.class_id != CLASS_GAME_OBJECT:
            return None
        return entry.fields["m_Name"].as_string

    def _read_transforms(self, assets_file):
        """Pass 1. Returns the parent transform id of each object."""
        parent_ids = []
        for class_id in TRANSFORM_CLASSES:
            for entry in assets_file.get_assets_of_type(class_id):
                fields = entry.fields
                _, go_id = read_pointer(fields["m_GameObject"])
                name = self._game_object_name(assets_file, go_id)
                if name is None:
                    name = self.options.placeholder_name

                obj = SceneObject(len(self.objects), name, entry.path_id, go_id)
                obj.local_position = read_vector3(fields["m_LocalPosition"])
                obj.local_rotation = read_quaternion(fields["m_LocalRotation"])
                obj.local_scale = read_vector3(fields["m_LocalScale"])
                obj.child_ids = [read_pointer(c)[1] for c in fields["m_Children.Array"]]

                self._by_transform[entry.path_id] = obj.index
                self.objects.append(obj)
                parent_ids.append(read_pointer(fields["m_Father"])[1])
        return parent_ids

    def _link_hierarchy(self, parent_ids):
        """Pass 2. Unknown parents make an object a root rather than dropping it."""
        for obj, parent_id in zip(self.objects, parent_ids):
            parent_index = self._by_transform.get(parent_id) if parent_id != 0 else None
            if parent_index is None:
                if parent_id != 0:
                    _log.debug("%r: parent transform %d not found, treating as root",
                               obj, parent_id)
                self.root_indices.append(obj.index)
                continue
            obj.parent = parent_index
            self.objects[parent_index].children.append(obj.index)

    def _components_by_game_object(self, assets_file, class_id):
        mapping = {}
        for entry in assets_file.get_assets_of_type(class_id):
            _, go_id = read_pointer(entry.fields["m_GameObject"])
            mapping[go_id] = entry
        return mapping

    def _resolve_components(self, assets_file):
        """Pass 3. Per-object failures leave that object without mesh/texture."""
        colliders = self._components_by_game_object(assets_file, CLASS_MESH_COLLIDER)
        filters = self._components_by_game_object(assets_file, CLASS_MESH_FILTER)
        renderers = self._components_by_game_object(assets_file, CLASS_MESH_RENDERER)

        sources = [(MESH_SOURCE_COLLIDER, colliders), (MESH_SOURCE_FILTER, filters)]
        if not self.options.prefer_collider_mesh:
            sources.reverse()

        for obj in self.objects:
            if obj.game_object_id == 0:
                continue
            if self.options.load_meshes:
                self._resolve_mesh(assets_file, obj, sources)
            renderer = renderers.get(obj.game_object_id)
            if (self.options.load_textures and renderer is not None
                    and self.texture_decoder is not None):
                self._resolve_texture(assets_file, obj, renderer)

    def _mesh_from_component(self, assets_file, component_fields):
        file_id, path_id = read_pointer(component_fields["m_Mesh"])
        if path_id == 0:
            return None
        owner, entry = assets_file.get_asset(path_id, file_id)
        if entry is None:
            return None
        return load_mesh(owner, entry.fields)

    def _resolve_mesh(self, assets_file, obj, sources):
        """Use the first source whose mesh has vertices. If none has, keep
        the last mesh that assembled at all (indices and submeshes only)."""
        for source, components in sources:
            component = components.get(obj.game_object_id)
            if component is None:
                continue
            result = Resolved.attempt(self._mesh_from_component, assets_file, component.fields)
            if result.error is not None:
                _log.warning("%s: %s mesh failed to load: %s", obj.name, source, result.error)
                continue
            if not result.ok:
                continue
            obj.mesh = result.value
            obj.mesh_source = source
            obj.uv = obj.mesh.uv0
            if obj.mesh.has_vertices:
                return

    def _resolve_texture(self, assets_file, obj, renderer):
        result = Resolved.attempt(
            texture_from_renderer, assets_file, renderer.fields,
            self.texture_decoder, self.options.texture_property_names,
        )
        if result.error is not None:
            _log.warning("%s: texture failed to load: %s", obj.name, result.error)
        obj.texture = result.value

    def _propagate(self, start_index, parent_matrix, visited):
        stack = [(start_index, parent_matrix)]
        while stack:
            index, parent = stack.pop()
            if index in visited:
                continue
            visited.add(index)
            obj = self.objects[index]
            obj.world_matrix = parent @ obj.local_matrix
            for child in obj.children:
                stack.append((child, obj.world_matrix))

    def _compute_world_matrices(self):
        """Pass 4. Objects only reachable through a parent cycle are placed
        as if they were roots."""
        visited = set()
        identity = np.eye(4, dtype=np.float64)
        for root in self.root_indices:
            self._propagate(root, identity, visited)
        for obj in self.objects:
            if obj.index not in visited:
                _log.warning("%r is part of a transform cycle", obj)
                self._propagate(obj.index, identity, visited)

    def _compute_bounds(self, obj):
        """Pass 5. World-space AABB of the mesh vertices; empty without a mesh."""
        if not obj.has_mesh:
            obj.bounds = Bounds.empty()
            return
        dim = obj.mesh.vertex_dimension
        if dim < 3:
            obj.bounds = Bounds.empty()
            return
        verts = np.frombuffer(obj.mesh.vertices, dtype=np.float32)
        count = len(verts) // dim
        points = verts[:count * dim].reshape(count, dim)[:, :3]
        obj.bounds = Bounds.from_points(transform_points(obj.world_matrix, points))

    # -- interaction ----------------------------------------------------------

    def pick(self, origin, direction):
        """Closest object whose bounds the ray hits, or None.

        Ties go to the object loaded first.
        """
        closest = None
        closest_dist = np.inf
        for obj in self.objects:
            dist = obj.bounds.intersect_ray(origin, direction)
            if dist is not None and dist < closest_dist:
                closest = obj
                closest_dist = dist
        return closest

    def deselect_all(self):
        for obj in self.objects:
            obj.selected = False

    def select(self, obj):
        """Make obj the only selected object (None clears the selection)."""
        self.deselect_all()
        if obj is not None:
            obj.selected = True
        return obj
