"""
simulation.py: Headless wind tunnel simulation

Owns the parameters, obstacles, simulation clock and every subsystem.
Rendering is handled elsewhere; each update(dt) returns a SimSnapshot.
"""

import numpy as np

from . import config
from .boundary_system import BoundarySystem
from .config import resolve_simulation_params, resolve_visualization_params, normalize_keys
from .curl_noise import CurlNoiseField
from .noise_field import NoiseField
from .obstacles import obstacles_from_list
from .particle_system import ParticleSystem, clamp_dt
from .vortex_system import VortexSystem


class WindTunnelSimulation:
    """
    Wind tunnel façade

    Each frame runs, strictly in order: vortex update, boundary prepare,
    particle advection (recycle, forces/integration, trail append, wall
    enforcement), then builds a snapshot.

    Configuration changes replace subsystems wholesale between frames:
    - particle_count change: new ParticleSystem, NOT reseeded
    - tunnel_bounds change (new bounds object): new BoundarySystem
    - trail_length change: new ParticleSystem, reseeded
    """

    def __init__(self, params=None, obstacles=None, vis=None,
                 noise_rng=None, rng=None, verbose=False):
        # Resolved copies of the caller input
        self._params = resolve_simulation_params(params)
        self._vis = resolve_visualization_params(vis)
        self._obstacles = list(obstacles_from_list(obstacles))
        self.verbose = verbose

        self.rng = np.random.default_rng(rng)
        noise_rng = np.random.default_rng(noise_rng)
        self.noise_seed = config.NOISE_SEED + int(noise_rng.integers(0, 100))

        self.sim_time = 0.0
        self.step_count = 0
        self._paused = False
        self._disposed = False

        # Subsystems
        self.boundary = BoundarySystem(self._params.tunnel_bounds)
        self.noise = NoiseField(self.noise_seed)
        self.curl = CurlNoiseField(self.noise)
        self.vortices = VortexSystem()

        self.particles = self._create_particle_system()
        self.particles.seed_fill(self._params.tunnel_bounds, self._params)

        self._log(f"Wind tunnel initialized with {self.particles.count} particles "
                  f"(trail length {self.particles.trail_len}, noise seed {self.noise_seed})")

    # Public API

    @property
    def params(self):
        return self._params

    @property
    def visualization(self):
        return self._vis

    @property
    def obstacles(self):
        return list(self._obstacles)

    @property
    def paused(self):
        return self._paused

    @property
    def disposed(self):
        return self._disposed

    def set_paused(self, paused):
        self._paused = bool(paused)

    def dispose(self):
        """Release references. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._obstacles = []
        self._log("Wind tunnel disposed")

    def set_params(self, patch):
        """
        Shallow-merge a parameter patch

        Parameters:
        -----------
        patch : dict
            Partial SimulationParams fields (snake_case or camelCase)
        """
        if not patch:
            return

        keys = normalize_keys(patch)
        prev_count = self._params.particle_count
        prev_bounds = self._params.tunnel_bounds

        self._params = resolve_simulation_params(keys, base=self._params)

        if 'particle_count' in keys and self._params.particle_count != prev_count:
            self._rebuild_particles(reseed=False)

        if 'tunnel_bounds' in keys and self._params.tunnel_bounds is not prev_bounds:
            self.boundary = BoundarySystem(self._params.tunnel_bounds)
            self._log(f"Boundary rebuilt: {self._params.tunnel_bounds}")

    def set_visualization(self, patch):
        """Shallow-merge a visualization patch; a trail_length change rebuilds and reseeds the particles"""
        if not patch:
            return

        prev_trail_len = self._vis.trail_length
        self._vis = resolve_visualization_params(patch, base=self._vis)

        if self._vis.trail_length != prev_trail_len:
            self._rebuild_particles(reseed=True)

    def set_obstacles(self, obstacles):
        """Replace the obstacle list wholesale"""
        self._obstacles = list(obstacles_from_list(obstacles))

    def rebuild_for_vis(self, trail_len, vis_patch=None):
        """Explicit rebuild for a new trail length. Does not reseed; prefer set_visualization()."""
        if vis_patch:
            self._vis = resolve_visualization_params(vis_patch, base=self._vis)
        self._vis = self._vis.replace(trail_length=max(1, int(trail_len)))
        self._rebuild_particles(reseed=False)

    def update(self, dt):
        """
        Advance the simulation by dt and return a snapshot

        While paused or after dispose() the clock does not advance and the
        current state is returned unchanged.
        """
        if self._paused or self._disposed:
            return self.particles.build_snapshot()

        dt = clamp_dt(dt, max_dt=config.SIM_MAX_DT)
        self.sim_time += dt

        self.vortices.update(self._params, self._obstacles, self.sim_time)
        self.boundary.prepare_step(self._params, self.sim_time)

        self.particles.advect(
            dt,
            self._params,
            self._obstacles,
            self.boundary,
            self.vortices,
            self.curl,
            self.sim_time,
        )
        self.step_count += 1

        return self.particles.build_snapshot()

    def snapshot(self):
        """Snapshot of the current state without stepping"""
        return self.particles.build_snapshot()

    @property
    def recycled_total(self):
        return self.boundary.recycled_total

    # Private helpers

    def _create_particle_system(self):
        count = max(0, int(self._params.particle_count))
        trail_len = max(1, int(self._vis.trail_length))
        return ParticleSystem(count, trail_len, rng=self.rng)

    def _rebuild_particles(self, reseed=False):
        # Without a reseed every particle starts at (0, 0, 0), inside the
        # tunnel, so none is recycled; a sphere at the origin starts them
        # all inside its push-out shell.
        self.particles = self._create_particle_system()
        if reseed:
            self.particles.seed_fill(self._params.tunnel_bounds, self._params)
        self._log(f"Particle system rebuilt: {self.particles.count} particles, "
                  f"trail length {self.particles.trail_len}, reseeded={reseed}")

    def _log(self, message):
        if self.verbose:
            print(message)

    def __repr__(self):
        return (f"WindTunnelSimulation(particles={self.particles.count}, "
                f"obstacles={len(self._obstacles)}, t={self.sim_time:.3f})")
