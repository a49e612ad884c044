"""
curl_noise.py: Divergence-free turbulence as the curl of a noise vector potential
"""

import numpy as np
from numba import njit

from . import config
from .noise_field import NoiseField, noise3

SPATIAL_SCALE = config.CURL_SPATIAL_SCALE
TIME_SCALE = config.CURL_TIME_SCALE
EPS = config.CURL_EPSILON
OFFSET_X, OFFSET_Y, OFFSET_Z = config.CURL_CHANNEL_OFFSETS


@njit(cache=True)
def curl_sample(x, y, z, t, seed):
    """
    Curl of the vector potential A = (n1, n2, n3) at (x, y, z, t)

    Each potential channel is the same noise field shifted in time, and
    the partial derivatives are central differences with a fixed step.

    Returns:
    --------
    (cx, cy, cz) : tuple of float
    """
    X = x * SPATIAL_SCALE
    Y = y * SPATIAL_SCALE
    Z = z * SPATIAL_SCALE
    T = t * TIME_SCALE

    tx = T + OFFSET_X
    ty = T + OFFSET_Y
    tz = T + OFFSET_Z
    inv = 1.0 / (2.0 * EPS)

    dAz_dy = (noise3(X, Y + EPS, Z, tz, seed) - noise3(X, Y - EPS, Z, tz, seed)) * inv
    dAy_dz = (noise3(X, Y, Z + EPS, ty, seed) - noise3(X, Y, Z - EPS, ty, seed)) * inv

    dAx_dz = (noise3(X, Y, Z + EPS, tx, seed) - noise3(X, Y, Z - EPS, tx, seed)) * inv
    dAz_dx = (noise3(X + EPS, Y, Z, tz, seed) - noise3(X - EPS, Y, Z, tz, seed)) * inv

    dAy_dx = (noise3(X + EPS, Y, Z, ty, seed) - noise3(X - EPS, Y, Z, ty, seed)) * inv
    dAx_dy = (noise3(X, Y + EPS, Z, tx, seed) - noise3(X, Y - EPS, Z, tx, seed)) * inv

    return dAz_dy - dAy_dz, dAx_dz - dAz_dx, dAy_dx - dAx_dy


class CurlNoiseField:
    """Turbulence vector field derived from a NoiseField"""

    def __init__(self, noise=None):
        self.noise = noise if noise is not None else NoiseField()

    @property
    def seed(self):
        return self.noise.seed

    def sample(self, x, y, z, t):
        """Returns the turbulence vector at (x, y, z, t) as a length-3 array"""
        cx, cy, cz = curl_sample(float(x), float(y), float(z), float(t), self.noise.seed)
        return np.array([cx, cy, cz])
