"""Transform math for the scene graph.

Matrices are 4x4 numpy float64 arrays acting on column vectors, so the
translation sits in the last column and a child's world matrix is
parent_world @ local. Quaternions are (x, y, z, w) as stored in Transform
components.
"""

import numpy as np


def quaternion_to_matrix(q):
    """3x3 rotation matrix of a quaternion (x, y, z, w). Not normalized."""
    x, y, z, w = q
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array([
        [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
        [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
        [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
    ], dtype=np.float64)


def compose_trs(position, rotation, scale):
    """Local matrix applying scale, then rotation, then translation."""
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = quaternion_to_matrix(rotation) * np.asarray(scale, dtype=np.float64)
    m[:3, 3] = position
    return m


def transform_points(matrix, points):
    """Apply a 4x4 matrix to an (N, 3) array of points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def translation_of(matrix):
    return tuple(float(v) for v in matrix[:3, 3])


class Bounds:
    """Axis-aligned bounding box. An empty box contains nothing."""

    __slots__ = ('minimum', 'maximum')

    def __init__(self, minimum=None, maximum=None):
        self.minimum = None if minimum is None else np.asarray(minimum, dtype=np.float64)
        self.maximum = None if maximum is None else np.asarray(maximum, dtype=np.float64)

    @classmethod
    def empty(cls):
        return cls()

    @classmethod
    def from_points(cls, points):
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if points.shape[0] == 0:
            return cls()
        return cls(points.min(axis=0), points.max(axis=0))

    @property
    def is_empty(self):
        return self.minimum is None

    def intersect_ray(self, origin, direction):
        """Slab test. Returns the positive distance along the ray to the box,
        or None.

        A ray starting inside the box reports where it leaves the box.
        Distances are in units of the direction vector's length.
        """
        if self.is_empty:
            return None
        t_near = 0.0
        t_far = np.inf
        for axis in range(3):
            o = float(origin[axis])
            d = float(direction[axis])
            lo = self.minimum[axis]
            hi = self.maximum[axis]
            if d == 0.0:
                if o < lo or o > hi:
                    return None
                continue
            t1 = (lo - o) / d
            t2 = (hi - o) / d
            if t1 > t2:
                t1, t2 = t2, t1
            t_near = max(t_near, t1)
            t_far = min(t_far, t2)
            if t_near > t_far:
                return None
        if t_near > 0.0:
            return float(t_near)
        if 0.0 < t_far < np.inf:
            return float(t_far)
        return None

    def __repr__(self):
        if self.is_empty:
            return "Bounds(<empty>)"
        return f"Bounds({self.minimum.tolist()}, {self.maximum.tolist()})"
