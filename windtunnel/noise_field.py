"""
noise_field.py: Deterministic 4D (space + time) value noise
"""

import math

from numba import njit

from . import config

HASH_MASK = 0xFFFFFFFF
HASH_X = 374761393
HASH_Y = 668265263
HASH_Z = 2147483647
HASH_T = 1274126177
HASH_MIX = 1274126177
HASH_RANGE = 4294967296.0


@njit(cache=True)
def hash4(xi, yi, zi, ti, seed):
    """
    Integer lattice hash -> [0, 1)

    Parameters:
    -----------
    xi, yi, zi, ti : int
        Lattice coordinates (wrapped to 32 bits)
    seed : int
        Noise seed

    Returns:
    --------
    value : float
        Pseudo-random value in [0, 1)
    """
    h = ((xi & HASH_MASK) * HASH_X) & HASH_MASK
    h += ((yi & HASH_MASK) * HASH_Y) & HASH_MASK
    h += ((zi & HASH_MASK) * HASH_Z) & HASH_MASK
    h += ((ti & HASH_MASK) * HASH_T) & HASH_MASK
    h += seed & HASH_MASK
    h &= HASH_MASK

    h ^= h >> 13
    h = (h * HASH_MIX) & HASH_MASK
    h ^= h >> 16

    return h / HASH_RANGE


@njit(cache=True)
def fade(u):
    """Smoothstep fade"""
    return u * u * (3.0 - 2.0 * u)


@njit(cache=True)
def lerp(a, b, t):
    return a + (b - a) * t


@njit(cache=True)
def _trilinear_slice(x0, y0, z0, t0, fx, fy, fz, seed):
    """Trilinear interpolation of the 8 spatial corners at time lattice t0"""
    x1 = x0 + 1
    y1 = y0 + 1
    z1 = z0 + 1

    # near z plane
    a = lerp(hash4(x0, y0, z0, t0, seed), hash4(x1, y0, z0, t0, seed), fx)
    b = lerp(hash4(x0, y1, z0, t0, seed), hash4(x1, y1, z0, t0, seed), fx)
    near = lerp(a, b, fy)

    # far z plane
    a = lerp(hash4(x0, y0, z1, t0, seed), hash4(x1, y0, z1, t0, seed), fx)
    b = lerp(hash4(x0, y1, z1, t0, seed), hash4(x1, y1, z1, t0, seed), fx)
    far = lerp(a, b, fy)

    return lerp(near, far, fz)


@njit(cache=True)
def noise3(x, y, z, t, seed):
    """
    Value noise in [-1, 1], smoothly interpolated in 3D with time as 4th dimension

    Parameters:
    -----------
    x, y, z : float
        Sample position
    t : float
        Sample time
    seed : int
        Noise seed

    Returns:
    --------
    value : float
        Noise value in [-1, 1]
    """
    x0 = int(math.floor(x))
    y0 = int(math.floor(y))
    z0 = int(math.floor(z))
    t0 = int(math.floor(t))

    fx = fade(x - x0)
    fy = fade(y - y0)
    fz = fade(z - z0)
    ft = fade(t - t0)

    v0 = _trilinear_slice(x0, y0, z0, t0, fx, fy, fz, seed)
    v1 = _trilinear_slice(x0, y0, z0, t0 + 1, fx, fy, fz, seed)

    # [0, 1) -> [-1, 1]
    return lerp(v0, v1, ft) * 2.0 - 1.0


class NoiseField:
    """
    Seeded value noise field

    The seed is fixed at construction; identical inputs always give
    identical output for one instance.
    """

    def __init__(self, seed=config.NOISE_SEED):
        self.seed = int(seed) & HASH_MASK

    def noise3(self, x, y, z, t):
        return noise3(float(x), float(y), float(z), float(t), self.seed)

    def __repr__(self):
        return f"NoiseField(seed={self.seed})"
