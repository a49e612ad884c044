"""
particle_system.py: Particle state (structure of arrays) and per-step advection

Each step composes a target velocity from the inlet flow, curl-noise
turbulence, the vortex wake and obstacle deflection, blends the particle
velocity toward it and integrates positions with explicit Euler. Trail
history is delegated to TrailBuffer.
"""

import math

import numpy as np
from numba import njit

from . import config
from .boundary_system import inlet_scale, inlet_scales
from .config import TunnelBounds
from .curl_noise import curl_sample
from .obstacles import pack_spheres
from .snapshot import SimSnapshot
from .trail_buffer import TrailBuffer
from .vortex_system import VORTEX_COLUMNS, vortex_velocity

TURBULENCE_SCALE = config.TURBULENCE_SCALE
TURBULENCE_CLAMP_FACTOR = config.TURBULENCE_CLAMP_FACTOR
TURBULENCE_CLAMP_MIN = config.TURBULENCE_CLAMP_MIN
VORTEX_SCALE = config.VORTEX_SCALE
INFLUENCE_RADII = config.OBSTACLE_INFLUENCE_RADII
SHELL_FACTOR = config.OBSTACLE_SHELL_FACTOR
PUSH_STRENGTH = config.OBSTACLE_PUSH_STRENGTH
FLOW_REDUCTION = config.OBSTACLE_FLOW_REDUCTION
DEFLECTION_STRENGTH = config.OBSTACLE_DEFLECTION_STRENGTH
HEAT_SHELL_FACTOR = config.HEAT_SHELL_FACTOR
HEAT_INFLUENCE_RADII = config.HEAT_INFLUENCE_RADII
NORMALIZE_EPS = config.NORMALIZE_EPS
BOUNDARY_PADDING = config.BOUNDARY_PADDING


@njit(cache=True)
def clamp(value, lo, hi):
    return max(lo, min(hi, value))


@njit(cache=True)
def obstacle_velocity(px, py, pz, spheres, base_flow_x):
    """
    Deflection velocity around sphere obstacles

    Inside the shell a particle is pushed radially outward, proportional
    to the penetration depth. Within the influence radius the axial flow
    is reduced and a lateral deflection is added along
    cross(flow_axis, normal), both scaled by a squared falloff that goes
    from 1 at the shell to 0 at the influence boundary.

    Parameters:
    -----------
    px, py, pz : float
        Particle position
    spheres : array (M, 4)
        [x, y, z, radius] per sphere
    base_flow_x : float
        Unjittered axial inlet speed at the particle

    Returns:
    --------
    (ax, ay, az) : tuple of float
    """
    ax = 0.0
    ay = 0.0
    az = 0.0

    for k in range(spheres.shape[0]):
        radius = spheres[k, 3]
        dx = px - spheres[k, 0]
        dy = py - spheres[k, 1]
        dz = pz - spheres[k, 2]
        dist = math.sqrt(dx * dx + dy * dy + dz * dz)

        influence = INFLUENCE_RADII * radius
        if dist > influence:
            continue

        if dist > NORMALIZE_EPS:
            nx = dx / dist
            ny = dy / dist
            nz = dz / dist
        else:
            # dead center: push downstream
            nx = 1.0
            ny = 0.0
            nz = 0.0

        shell = SHELL_FACTOR * radius
        if dist < shell:
            strength = PUSH_STRENGTH * (shell - dist) / shell * base_flow_x
            ax += nx * strength
            ay += ny * strength
            az += nz * strength

        falloff = clamp(1.0 - (dist - shell) / (influence - shell), 0.0, 1.0)
        falloff2 = falloff * falloff

        ax -= base_flow_x * FLOW_REDUCTION * falloff2

        # flow axis is +x, so cross((1, 0, 0), n) = (0, -nz, ny)
        deflection = base_flow_x * DEFLECTION_STRENGTH * falloff2
        ay += -nz * deflection
        az += ny * deflection

    return ax, ay, az


@njit(cache=True)
def obstacle_heat(px, py, pz, spheres):
    """
    Proximity heat in [0, 1]: 1 inside the heat shell, a linear ramp to 0
    at the heat influence radius, max over all spheres
    """
    max_heat = 0.0

    for k in range(spheres.shape[0]):
        radius = spheres[k, 3]
        dx = px - spheres[k, 0]
        dy = py - spheres[k, 1]
        dz = pz - spheres[k, 2]
        dist = math.sqrt(dx * dx + dy * dy + dz * dz)

        shell = HEAT_SHELL_FACTOR * radius
        influence = HEAT_INFLUENCE_RADII * radius
        if dist > influence:
            continue

        if dist <= shell:
            heat = 1.0
        else:
            heat = clamp(1.0 - (dist - shell) / (influence - shell), 0.0, 1.0)

        max_heat = max(max_heat, heat)

    return max_heat


@njit(cache=True)
def advect_kernel(x, y, z, vx, vy, vz, speed, vort, heat, jitter,
                  dt, wind, turbulence, blend, heat_decay, parabolic,
                  inlet_bounds, clamp_bounds, spheres, vortices, seed, sim_time):
    """
    Force composition, heat, velocity blend, Euler step and diagnostics for
    every particle, in place

    Parameters:
    -----------
    x, y, z, vx, vy, vz, speed, vort, heat : array (N,)
        Particle state, updated in place
    jitter : array (N, 3)
        Uniform [0, 1) factors applied per axis to the inlet term
    inlet_bounds : array (4,)
        [y_min, y_max, z_min, z_max] used by the inlet profile
    clamp_bounds : array (4,)
        [y_min, y_max, z_min, z_max] used to clamp integrated positions
    spheres : array (M, 4)
        Packed sphere obstacles
    vortices : array (K, 8)
        Packed vortices
    seed : int
        Curl noise seed
    """
    max_noise = max(TURBULENCE_CLAMP_MIN, TURBULENCE_CLAMP_FACTOR * wind)
    noise_scale = turbulence * TURBULENCE_SCALE
    decay = math.exp(-dt * heat_decay)
    retain = 1.0 - blend

    y_lo = clamp_bounds[0] - BOUNDARY_PADDING
    y_hi = clamp_bounds[1] + BOUNDARY_PADDING
    z_lo = clamp_bounds[2] - BOUNDARY_PADDING
    z_hi = clamp_bounds[3] + BOUNDARY_PADDING

    for i in range(x.shape[0]):
        px = x[i]
        py = y[i]
        pz = z[i]

        # A) inlet flow, each axis scaled by its own random factor
        base = wind * inlet_scale(py, pz, inlet_bounds[0], inlet_bounds[1],
                                  inlet_bounds[2], inlet_bounds[3], parabolic)
        inlet_y = 0.0
        inlet_z = 0.0
        tx = base * jitter[i, 0]
        ty = inlet_y * jitter[i, 1]
        tz = inlet_z * jitter[i, 2]

        # B) curl noise turbulence
        cx, cy, cz = curl_sample(px, py, pz, sim_time, seed)
        tx += clamp(cx * noise_scale, -max_noise, max_noise)
        ty += clamp(cy * noise_scale, -max_noise, max_noise)
        tz += clamp(cz * noise_scale, -max_noise, max_noise)

        # C) vortex wake
        wx, wy, wz = vortex_velocity(px, py, vortices)
        tx += wx * VORTEX_SCALE
        ty += wy * VORTEX_SCALE
        tz += wz * VORTEX_SCALE

        # D) obstacle deflection
        ox, oy, oz = obstacle_velocity(px, py, pz, spheres, base)
        tx += ox
        ty += oy
        tz += oz

        # heat only drops by decay, proximity can only raise it
        h = heat[i] * decay
        heat[i] = max(h, obstacle_heat(px, py, pz, spheres))

        vx[i] = vx[i] * retain + tx * blend
        vy[i] = vy[i] * retain + ty * blend
        vz[i] = vz[i] * retain + tz * blend

        # x stays open so the next recycle pass sees outlet overshoot
        x[i] = px + vx[i] * dt
        y[i] = clamp(py + vy[i] * dt, y_lo, y_hi)
        z[i] = clamp(pz + vz[i] * dt, z_lo, z_hi)

        speed[i] = math.sqrt(vx[i] * vx[i] + vy[i] * vy[i] + vz[i] * vz[i])
        vort[i] = math.sqrt(cx * cx + cy * cy + cz * cz) * turbulence


def clamp_dt(dt, max_dt=config.MAX_DT, default_dt=config.DEFAULT_DT):
    """dt inside (0, max_dt] passes through, anything else (NaN included) becomes default_dt"""
    if not (0.0 < dt <= max_dt):
        return default_dt
    return dt


def blend_factor(viscosity):
    """
    Velocity blend weight from viscosity

    [0, 1] maps linearly onto [BLEND_MIN, BLEND_MAX]: higher viscosity
    converges to the target velocity faster.
    """
    v = min(1.0, max(0.0, viscosity))
    return config.BLEND_MIN + v * (config.BLEND_MAX - config.BLEND_MIN)


def _bounds_array(bounds):
    return np.array([bounds.y[0], bounds.y[1], bounds.z[0], bounds.z[1]], dtype=np.float64)


class ParticleSystem:
    """
    Tracer particles stored as parallel arrays indexed by particle id

    The particle count and trail length are fixed for the lifetime of the
    instance; a configuration change builds a new ParticleSystem.
    """

    def __init__(self, count, trail_len, rng=None):
        self.count = max(0, int(count))
        self.trail_len = max(1, int(trail_len))
        self.rng = np.random.default_rng(rng)

        # Position
        self.x = np.zeros(self.count)
        self.y = np.zeros(self.count)
        self.z = np.zeros(self.count)

        # Velocity
        self.vx = np.zeros(self.count)
        self.vy = np.zeros(self.count)
        self.vz = np.zeros(self.count)

        # Diagnostics
        self.speed = np.zeros(self.count)
        self.vort = np.zeros(self.count)
        self.respawns = np.zeros(self.count, dtype=np.int64)

        # Per-particle state
        self.phase = self.rng.random(self.count) * 2.0 * np.pi
        self.heat = np.zeros(self.count)

        self.trails = TrailBuffer(self.count, self.trail_len)

    def advect(self, dt, params, obstacles, boundary, vortices, curl_noise, sim_time):
        """
        Advance every particle by one step

        Order matters: recycle first, so a recycled particle's target
        velocity reflects its inlet position; trails record the
        post-integration positions before the wall bounce is applied.

        Parameters:
        -----------
        dt : float
            Time step, clamped to (0, MAX_DT] or replaced by DEFAULT_DT
        params : SimulationParams
        obstacles : list
            Sphere and Box obstacles; only spheres act on particles
        boundary : BoundarySystem
        vortices : VortexSystem or None
        curl_noise : CurlNoiseField
        sim_time : float
        """
        dt = clamp_dt(dt)

        boundary.recycle(self, params, sim_time)

        if vortices is not None:
            packed_vortices = vortices.packed()
        else:
            packed_vortices = np.empty((0, VORTEX_COLUMNS))

        jitter = self.rng.random((self.count, 3))

        advect_kernel(
            self.x, self.y, self.z, self.vx, self.vy, self.vz,
            self.speed, self.vort, self.heat, jitter,
            float(dt), float(params.wind_speed), float(params.turbulence),
            blend_factor(params.viscosity), float(params.trail_heat_decay),
            params.inlet_profile == "parabolic",
            _bounds_array(boundary.bounds), _bounds_array(params.tunnel_bounds),
            pack_spheres(obstacles), packed_vortices,
            curl_noise.seed, float(sim_time),
        )

        self.trails.push_all(self.x, self.y, self.z, self.heat, self.count)

        boundary.enforce(self)

    def respawn(self, i, bounds, params=None):
        """
        Reset particle i near the inlet

        Uniform random y/z, a small random x offset from x_min, zero
        velocity. Heat and trail heat are cleared when
        reset_trail_heat_on_respawn is set (default), and the trail
        history always restarts at the new position.
        """
        bounds = TunnelBounds.from_value(bounds)
        x_min, x_max = bounds.x
        y_min, y_max = bounds.y
        z_min, z_max = bounds.z

        u = self.rng.random(3)
        self.x[i] = x_min + (x_max - x_min) * config.RESPAWN_X_FRACTION * u[0]
        self.y[i] = y_min + (y_max - y_min) * u[1]
        self.z[i] = z_min + (z_max - z_min) * u[2]

        self.vx[i] = 0.0
        self.vy[i] = 0.0
        self.vz[i] = 0.0

        reset_heat = True if params is None else params.reset_trail_heat_on_respawn
        if reset_heat:
            self.heat[i] = 0.0
            self.trails.clear_heat(i)

        self.trails.init(i, self.x[i], self.y[i], self.z[i])
        self.respawns[i] += 1

    def seed_fill(self, bounds, params):
        """
        Fill the whole tunnel volume with uniformly random particles

        Velocities follow the inlet profile at each particle's (y, z).
        Only used at construction/reseed time.
        """
        bounds = TunnelBounds.from_value(bounds)
        (x0, x1), (y0, y1), (z0, z1) = bounds.x, bounds.y, bounds.z
        n = self.count

        self.x[:] = x0 + self.rng.random(n) * (x1 - x0)
        self.y[:] = y0 + self.rng.random(n) * (y1 - y0)
        self.z[:] = z0 + self.rng.random(n) * (z1 - z0)

        scale = inlet_scales(self.y, self.z, y0, y1, z0, z1, params.inlet_profile == "parabolic")
        self.vx[:] = params.wind_speed * scale
        self.vy[:] = 0.0
        self.vz[:] = 0.0

        self.trails.init_all(self.x, self.y, self.z)

    def compute_obstacle_velocity(self, pos, obstacles, base_flow_x):
        """Obstacle deflection velocity at pos as a length-3 array"""
        ax, ay, az = obstacle_velocity(float(pos[0]), float(pos[1]), float(pos[2]),
                                       pack_spheres(obstacles), float(base_flow_x))
        return np.array([ax, ay, az])

    def compute_obstacle_heat(self, pos, obstacles):
        return obstacle_heat(float(pos[0]), float(pos[1]), float(pos[2]), pack_spheres(obstacles))

    def build_snapshot(self):
        """Deep-copied float32 view of the current state"""
        n = self.count
        positions = np.empty((n, 3), dtype=np.float32)
        positions[:, 0] = self.x
        positions[:, 1] = self.y
        positions[:, 2] = self.z

        velocities = np.empty((n, 3), dtype=np.float32)
        velocities[:, 0] = self.vx
        velocities[:, 1] = self.vy
        velocities[:, 2] = self.vz

        trail_data = self.trails.get_data()

        return SimSnapshot(
            particle_count=n,
            positions=positions.ravel(),
            speeds=self.speed.astype(np.float32),
            vorticity=self.vort.astype(np.float32),
            heat=self.heat.astype(np.float32),
            velocities=velocities.ravel(),
            trails=trail_data['positions'].astype(np.float32).ravel(),
            trail_len=self.trail_len,
            trail_heat=trail_data['heat'].astype(np.float32).ravel(),
        )

    def __len__(self):
        return self.count

    def __repr__(self):
        return f"ParticleSystem(count={self.count}, trail_len={self.trail_len})"
