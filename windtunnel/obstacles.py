"""
obstacles.py: Obstacle geometry supplied to the wind tunnel core
"""

import numpy as np

from . import config


def _as_vector(value):
    """Accept a 3-sequence or an {x, y, z} dict"""
    if isinstance(value, dict):
        return np.array([value.get('x', 0.0), value.get('y', 0.0), value.get('z', 0.0)], dtype=np.float64)
    return np.asarray(value, dtype=np.float64).reshape(3)


class Sphere:
    """Spherical obstacle. Affects particle velocity and heat."""

    bounding_type = "sphere"

    def __init__(self, position, radius):
        self.position = _as_vector(position)
        self.radius = float(radius)

    @property
    def bounding_size(self):
        # Radius stored in the x component
        return np.array([self.radius, self.radius, self.radius])

    def __repr__(self):
        return f"Sphere(position={self.position.tolist()}, radius={self.radius})"


class Box:
    """
    Axis-aligned box obstacle

    Carried through the core and drawn by the preview, but inert to
    forces and heat.
    """

    bounding_type = "box"

    def __init__(self, position, half_extents):
        self.position = _as_vector(position)
        self.half_extents = _as_vector(half_extents)

    @property
    def bounding_size(self):
        return self.half_extents.copy()

    def __repr__(self):
        return f"Box(position={self.position.tolist()}, half_extents={self.half_extents.tolist()})"


def obstacle_from_dict(raw):
    """
    Build an obstacle from a host-application dict

    Parameters:
    -----------
    raw : dict
        {'bounding_type': 'sphere' | 'box', 'position': ..., 'bounding_size': ...}
        camelCase keys (boundingType, boundingSize) are accepted as well

    Returns:
    --------
    obstacle : Sphere or Box
    """
    if isinstance(raw, (Sphere, Box)):
        return raw

    values = config.normalize_keys(raw)
    kind = values.get('bounding_type')
    position = values.get('position', (0.0, 0.0, 0.0))
    size = _as_vector(values.get('bounding_size', (0.0, 0.0, 0.0)))

    if kind == "sphere":
        return Sphere(position, size[0])
    elif kind == "box":
        return Box(position, size)
    raise ValueError(f"Unknown obstacle bounding type: {kind!r}")


def obstacles_from_list(items):
    if not items:
        return []
    return [obstacle_from_dict(item) for item in items]


def first_sphere(obstacles):
    for obstacle in obstacles:
        if isinstance(obstacle, Sphere):
            return obstacle
    return None


def pack_spheres(obstacles):
    """
    Pack sphere obstacles into an (M, 4) array [x, y, z, radius] for the kernels

    Radii are floored at OBSTACLE_MIN_RADIUS so a degenerate sphere cannot
    divide by zero. Boxes are skipped.
    """
    rows = []
    for obstacle in obstacles:
        if isinstance(obstacle, Sphere):
            px, py, pz = obstacle.position
            rows.append((px, py, pz, max(config.OBSTACLE_MIN_RADIUS, obstacle.radius)))
        elif isinstance(obstacle, Box):
            continue
        else:
            raise TypeError(f"Not an obstacle: {obstacle!r}")

    if not rows:
        return np.empty((0, 4), dtype=np.float64)
    return np.array(rows, dtype=np.float64)
