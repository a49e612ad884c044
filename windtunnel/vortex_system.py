"""
vortex_system.py: Procedural point vortices emulating wake shedding behind a sphere
"""

import math

import numpy as np
from numba import njit

from . import config
from .obstacles import first_sphere

# Column layout of the packed vortex array
VX, VY, VZ, STRENGTH, RADIUS, AGE, LIFE, SIGN = range(8)
VORTEX_COLUMNS = 8

CORE_EPS = config.VORTEX_CORE_EPS


class Vortex:
    """A single shed vortex. The z component of pos is unused by the field."""

    def __init__(self, pos, strength, radius, life, sign, age=0.0):
        self.pos = np.asarray(pos, dtype=np.float64).reshape(3)
        self.strength = float(strength)
        self.radius = float(radius)
        self.age = float(age)
        self.life = float(life)
        self.sign = 1 if sign >= 0 else -1

    @property
    def alive(self):
        return self.age < self.life

    def __repr__(self):
        return (f"Vortex(pos={self.pos.tolist()}, strength={self.strength:.3f}, "
                f"radius={self.radius:.3f}, age={self.age:.3f}/{self.life:.3f}, sign={self.sign})")


@njit(cache=True)
def vortex_velocity(px, py, vortices):
    """
    Sum of 2D point-vortex contributions in the X-Y plane

    Parameters:
    -----------
    px, py : float
        Sample position (z is ignored)
    vortices : array (K, 8)
        Packed vortices [x, y, z, strength, radius, age, life, sign]

    Returns:
    --------
    (vx, vy, vz) : tuple of float
        vz is always 0
    """
    vx = 0.0
    vy = 0.0

    for k in range(vortices.shape[0]):
        dx = px - vortices[k, VX]
        dy = py - vortices[k, VY]
        radius = vortices[k, RADIUS]
        radius2 = radius * radius

        r2 = dx * dx + dy * dy + CORE_EPS
        falloff = math.exp(-r2 / radius2)

        # 1 at spawn, 0 at expiry
        life_k = 1.0 - min(1.0, vortices[k, AGE] / vortices[k, LIFE])

        s = vortices[k, STRENGTH] * vortices[k, SIGN] * falloff * life_k / (r2 + radius2)

        vx += -dy * s
        vy += dx * s

    return vx, vy, 0.0


class VortexSystem:
    """
    Spawns, ages and samples wake vortices

    The first sphere obstacle is the only wake source. One vortex is shed
    per period, alternating sides to give a Karman-like street.
    """

    def __init__(self):
        self.vortices = []
        self.last_spawn_t = 0.0
        self.last_t = None
        self.flip = 1
        self.spawned_total = 0

    def _infer_dt(self, t):
        if self.last_t is None:
            dt = config.DEFAULT_DT
        else:
            dt = max(config.VORTEX_DT_MIN, min(config.VORTEX_DT_MAX, t - self.last_t))
        self.last_t = t
        return dt

    def update(self, params, obstacles, sim_time):
        """
        Age, prune and (maybe) spawn vortices

        Parameters:
        -----------
        params : SimulationParams
            Uses wind_speed
        obstacles : list
            Current obstacles; the first Sphere sheds the wake
        sim_time : float
            Current simulation time, used to infer dt and the spawn cadence
        """
        dt = self._infer_dt(sim_time)

        for vortex in self.vortices:
            vortex.age += dt
        self.vortices = [v for v in self.vortices if v.alive]

        source = first_sphere(obstacles)
        if source is None:
            return

        wind = params.wind_speed
        r = max(config.VORTEX_MIN_RADIUS_SOURCE, source.radius)

        # spawn cadence, faster with more wind
        period = max(config.VORTEX_PERIOD_MIN,
                     config.VORTEX_PERIOD_BASE - wind * config.VORTEX_PERIOD_PER_WIND)
        if sim_time - self.last_spawn_t < period:
            return
        self.last_spawn_t = sim_time

        # alternate side each spawn
        self.flip = -self.flip

        ox, oy, oz = source.position
        self.vortices.append(Vortex(
            pos=(ox + r * config.VORTEX_OFFSET_X, oy + r * config.VORTEX_OFFSET_Y * self.flip, oz),
            strength=max(config.VORTEX_MIN_STRENGTH, wind * config.VORTEX_STRENGTH_PER_WIND),
            radius=r * config.VORTEX_RADIUS_FACTOR,
            life=config.VORTEX_LIFE,
            sign=self.flip,
        ))
        self.spawned_total += 1

    def packed(self):
        """Live vortices as a (K, 8) float array for the advection kernel"""
        out = np.empty((len(self.vortices), VORTEX_COLUMNS), dtype=np.float64)
        for k, v in enumerate(self.vortices):
            out[k, VX:VZ + 1] = v.pos
            out[k, STRENGTH] = v.strength
            out[k, RADIUS] = v.radius
            out[k, AGE] = v.age
            out[k, LIFE] = v.life
            out[k, SIGN] = v.sign
        return out

    def sample_velocity(self, p):
        """Vortex-induced velocity at point p as a length-3 array"""
        if not self.vortices:
            return np.zeros(3)
        vx, vy, vz = vortex_velocity(float(p[0]), float(p[1]), self.packed())
        return np.array([vx, vy, vz])

    def __len__(self):
        return len(self.vortices)
