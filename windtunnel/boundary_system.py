"""
boundary_system.py: Tunnel boundary conditions

- Inlet velocity profiles (uniform, parabolic)
- Particle recycling at the outlet, the inlet and through the walls
- Wall enforcement (clamp + inelastic bounce)

Flow travels +x; the inlet sits at x_min, the outlet at x_max and the
y/z cross-section is bounded by walls.
"""

import numpy as np
from numba import njit

from . import config
from .config import TunnelBounds

MIN_HALF_SIZE = config.MIN_HALF_SIZE


@njit(cache=True)
def inlet_scale(y, z, y_min, y_max, z_min, z_max, parabolic):
    """
    Axial inlet speed factor at (y, z)

    1 everywhere for the uniform profile. For the parabolic profile
    1 - r^2, where r is the distance from the cross-section center
    normalized by the half-extents, floored at 0 outside the walls.
    """
    if not parabolic:
        return 1.0

    half_y = max(MIN_HALF_SIZE, (y_max - y_min) * 0.5)
    half_z = max(MIN_HALF_SIZE, (z_max - z_min) * 0.5)

    ny = (y - (y_min + y_max) * 0.5) / half_y
    nz = (z - (z_min + z_max) * 0.5) / half_z

    return max(0.0, 1.0 - (ny * ny + nz * nz))


@njit(cache=True)
def inlet_scales(ys, zs, y_min, y_max, z_min, z_max, parabolic):
    """inlet_scale() over arrays of cross-section coordinates"""
    out = np.empty(ys.shape[0])
    for i in range(ys.shape[0]):
        out[i] = inlet_scale(ys[i], zs[i], y_min, y_max, z_min, z_max, parabolic)
    return out


class BoundarySystem:
    """Tunnel geometry, inlet profile, recycling and wall enforcement"""

    def __init__(self, bounds):
        self._bounds = TunnelBounds.from_value(bounds)
        self.recycled_total = 0

    @property
    def bounds(self):
        return self._bounds

    def set_bounds(self, bounds):
        self._bounds = TunnelBounds.from_value(bounds)

    def prepare_step(self, params, time):
        """Per-step hook for dynamic boundaries (pulsing inlet, moving walls). Currently a no-op."""
        return None

    # Inlet velocity

    def inlet_velocity(self, y, z, params):
        """
        Inlet velocity at (y, z) in the tunnel cross-section

        Parameters:
        -----------
        y, z : float
            Cross-section coordinates
        params : SimulationParams
            Uses wind_speed and inlet_profile

        Returns:
        --------
        velocity : array (3,)
            (wind_speed * scale, 0, 0)
        """
        y_min, y_max = self._bounds.y
        z_min, z_max = self._bounds.z
        scale = inlet_scale(float(y), float(z), y_min, y_max, z_min, z_max,
                            params.inlet_profile == "parabolic")
        return np.array([params.wind_speed * scale, 0.0, 0.0])

    # Particle recycling

    def exit_mask(self, particles):
        """
        Boolean mask of particles that left the tunnel

        Three independent conditions: escaped the y/z cross-section,
        overshot the outlet, or drifted back behind the inlet.
        """
        n = particles.count
        x = particles.x[:n]
        y = particles.y[:n]
        z = particles.z[:n]

        x_min, x_max = self._bounds.x
        y_min, y_max = self._bounds.y
        z_min, z_max = self._bounds.z

        out_of_cross_section = (y < y_min) | (y > y_max) | (z < z_min) | (z > z_max)
        past_outlet = x > x_max + config.OUTLET_MARGIN
        behind_inlet = x < x_min - config.INLET_BACKFLOW_MARGIN

        return out_of_cross_section | past_outlet | behind_inlet

    def recycle(self, particles, params, time):
        """
        Respawn every particle that left the tunnel at the inlet

        The respawned particle gets the inlet-profile velocity at its new
        (y, z). Returns the indices that were recycled.
        """
        indices = np.flatnonzero(self.exit_mask(particles))
        for i in indices:
            self._recycle_particle(particles, i, params)
        self.recycled_total += len(indices)
        return indices

    def _recycle_particle(self, particles, i, params):
        particles.respawn(i, self._bounds, params)

        velocity = self.inlet_velocity(particles.y[i], particles.z[i], params)
        particles.vx[i] = velocity[0]
        particles.vy[i] = velocity[1]
        particles.vz[i] = velocity[2]

    # Wall enforcement

    def enforce(self, particles):
        """
        Clamp y/z into the tunnel and bounce the matching velocity component

        On a clamp the velocity component flips sign and is scaled by
        WALL_BOUNCE_FACTOR (inelastic).
        """
        n = particles.count
        bounce = config.WALL_BOUNCE_FACTOR

        for pos, vel, (lo, hi) in ((particles.y, particles.vy, self._bounds.y),
                                   (particles.z, particles.vz, self._bounds.z)):
            p = pos[:n]
            v = vel[:n]

            below = p < lo
            above = p > hi
            hit = below | above

            p[below] = lo
            p[above] = hi
            v[hit] *= -bounce

    def __repr__(self):
        return f"BoundarySystem({self._bounds!r})"
