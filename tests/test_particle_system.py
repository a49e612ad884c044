import math
import unittest
import numpy as np

from windtunnel import config
from windtunnel.boundary_system import BoundarySystem
from windtunnel.config import TunnelBounds, resolve_simulation_params
from windtunnel.curl_noise import CurlNoiseField
from windtunnel.noise_field import NoiseField
from windtunnel.obstacles import Box, Sphere
from windtunnel.particle_system import ParticleSystem, blend_factor, clamp_dt
from windtunnel.vortex_system import VortexSystem


class TestHelpers(unittest.TestCase):
    def test_clamp_dt(self):
        self.assertEqual(clamp_dt(0.02), 0.02)
        self.assertEqual(clamp_dt(config.MAX_DT), config.MAX_DT)
        self.assertEqual(clamp_dt(0.2), config.DEFAULT_DT)
        self.assertEqual(clamp_dt(0.0), config.DEFAULT_DT)
        self.assertEqual(clamp_dt(-1.0), config.DEFAULT_DT)
        self.assertEqual(clamp_dt(float('nan')), config.DEFAULT_DT)
        self.assertEqual(clamp_dt(0.08, max_dt=0.1), 0.08)

    def test_blend_factor(self):
        """Higher viscosity means a larger blend weight"""
        self.assertAlmostEqual(blend_factor(0.0), config.BLEND_MIN)
        self.assertAlmostEqual(blend_factor(1.0), config.BLEND_MAX)
        self.assertAlmostEqual(blend_factor(0.5), 0.525)
        self.assertAlmostEqual(blend_factor(-3.0), config.BLEND_MIN)
        self.assertAlmostEqual(blend_factor(7.0), config.BLEND_MAX)


class TestParticleSetup(unittest.TestCase):
    def setUp(self):
        self.bounds = TunnelBounds((-8, 8), (-2, 2), (-3, 3))
        self.params = resolve_simulation_params({'wind_speed': 3.0, 'tunnel_bounds': self.bounds})
        self.particles = ParticleSystem(200, 6, rng=1)

    def test_floors(self):
        particles = ParticleSystem(-5, 0)
        self.assertEqual(len(particles), 0)
        self.assertEqual(particles.trail_len, 1)
        snapshot = particles.build_snapshot()
        self.assertEqual(snapshot.particle_count, 0)
        self.assertEqual(len(snapshot.positions), 0)

    def test_phase_range(self):
        self.assertTrue(np.all(self.particles.phase >= 0.0))
        self.assertTrue(np.all(self.particles.phase < 2.0 * np.pi))

    def test_seed_fill_whole_volume(self):
        self.particles.seed_fill(self.bounds, self.params)
        p = self.particles
        self.assertTrue(np.all((p.x >= -8) & (p.x <= 8)))
        self.assertTrue(np.all((p.y >= -2) & (p.y <= 2)))
        self.assertTrue(np.all((p.z >= -3) & (p.z <= 3)))
        # spread over the tunnel, not just the inlet
        self.assertGreater(p.x.max(), 0.0)
        np.testing.assert_array_equal(p.vx, np.full(200, 3.0))
        np.testing.assert_array_equal(p.vy, np.zeros(200))
        np.testing.assert_array_equal(p.trails.positions[:, -1, 0], p.x)
        np.testing.assert_array_equal(p.trails.positions[:, 0, 2], p.z)

    def test_seed_fill_parabolic_velocity(self):
        params = self.params.replace(inlet_profile='parabolic')
        self.particles.seed_fill(self.bounds, params)
        p = self.particles
        r2 = (p.y / 2.0) ** 2 + (p.z / 3.0) ** 2
        np.testing.assert_allclose(p.vx, 3.0 * np.maximum(0.0, 1.0 - r2))

    def test_respawn_resets_heat_and_trail(self):
        p = self.particles
        p.seed_fill(self.bounds, self.params)
        p.heat[5] = 0.8
        p.trails.heat[5, :] = 0.8
        p.vx[5] = 2.0

        p.respawn(5, self.bounds, self.params)

        self.assertEqual(p.heat[5], 0.0)
        np.testing.assert_array_equal(p.trails.heat[5], np.zeros(6))
        np.testing.assert_array_equal(p.trails.positions[5], np.tile([p.x[5], p.y[5], p.z[5]], (6, 1)))
        self.assertEqual(p.vx[5], 0.0)
        self.assertTrue(-8.0 <= p.x[5] <= -8.0 + 16.0 * config.RESPAWN_X_FRACTION)
        self.assertEqual(p.respawns[5], 1)

    def test_respawn_keeps_heat_when_disabled(self):
        p = self.particles
        p.heat[5] = 0.8
        p.respawn(5, self.bounds, self.params.replace(reset_trail_heat_on_respawn=False))
        self.assertEqual(p.heat[5], 0.8)
        np.testing.assert_array_equal(p.trails.positions[5, 0], [p.x[5], p.y[5], p.z[5]])


class TestObstacleInteraction(unittest.TestCase):
    def setUp(self):
        self.particles = ParticleSystem(1, 2, rng=0)
        self.obstacles = [Sphere((0.0, 0.0, 0.0), 1.0)]

    def test_push_out_at_center(self):
        """A particle at the sphere center is pushed away with nonzero magnitude"""
        velocity = self.particles.compute_obstacle_velocity((0.0, 0.0, 0.0), self.obstacles, 3.0)
        self.assertGreater(velocity[0], 0.0)
        self.assertGreater(np.linalg.norm(velocity), 0.0)

    def test_push_out_radial(self):
        """Inside the shell the radial component points outward"""
        for direction in ([0, 1, 0], [0, 0, -1], [1, 1, 0], [-1, 0, 0]):
            n = np.array(direction, dtype=float) / np.linalg.norm(direction)
            velocity = self.particles.compute_obstacle_velocity(n * 0.9, self.obstacles, 3.0)
            self.assertGreater(np.dot(velocity, n), 0.0)

    def test_outside_influence(self):
        velocity = self.particles.compute_obstacle_velocity((3.5, 0.0, 0.0), self.obstacles, 3.0)
        np.testing.assert_array_equal(velocity, np.zeros(3))

    def test_axial_reduction_and_deflection(self):
        """Between shell and influence the flow slows and turns around the sphere"""
        velocity = self.particles.compute_obstacle_velocity((0.0, 1.5, 0.0), self.obstacles, 3.0)
        falloff = 1.0 - (1.5 - 1.05) / (3.0 - 1.05)
        self.assertAlmostEqual(velocity[0], -3.0 * 0.35 * falloff ** 2)
        self.assertAlmostEqual(velocity[1], 0.0)
        self.assertAlmostEqual(velocity[2], 3.0 * 0.85 * falloff ** 2)

    def test_box_inert(self):
        box = [Box((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))]
        np.testing.assert_array_equal(self.particles.compute_obstacle_velocity((0.2, 0, 0), box, 3.0), np.zeros(3))
        self.assertEqual(self.particles.compute_obstacle_heat((0.2, 0, 0), box), 0.0)

    def test_heat(self):
        self.assertEqual(self.particles.compute_obstacle_heat((0.0, 0.0, 0.0), self.obstacles), 1.0)
        self.assertEqual(self.particles.compute_obstacle_heat((1.1, 0.0, 0.0), self.obstacles), 1.0)
        mid = 0.5 * (1.15 + 2.5)
        self.assertAlmostEqual(self.particles.compute_obstacle_heat((mid, 0.0, 0.0), self.obstacles), 0.5)
        self.assertEqual(self.particles.compute_obstacle_heat((2.6, 0.0, 0.0), self.obstacles), 0.0)

    def test_heat_max_over_spheres(self):
        obstacles = self.obstacles + [Sphere((2.0, 0.0, 0.0), 1.0)]
        self.assertEqual(self.particles.compute_obstacle_heat((2.0, 0.0, 0.0), obstacles), 1.0)

    def test_degenerate_radius(self):
        velocity = self.particles.compute_obstacle_velocity((0.0, 0.0, 0.0), [Sphere((0, 0, 0), 0.0)], 3.0)
        self.assertTrue(np.all(np.isfinite(velocity)))


class TestAdvect(unittest.TestCase):
    def setUp(self):
        self.bounds = TunnelBounds((-8, 8), (-2, 2), (-2, 2))
        self.params = resolve_simulation_params({
            'wind_speed': 3.0,
            'viscosity': 0.1,
            'turbulence': 0.0,
            'tunnel_bounds': self.bounds,
        })
        self.boundary = BoundarySystem(self.bounds)
        self.curl = CurlNoiseField(NoiseField(1337))

    def test_every_particle_recycled_and_bounded(self):
        """Steady flow carries every particle through the outlet at least once"""
        particles = ParticleSystem(100, 5, rng=12)
        particles.seed_fill(self.bounds, self.params)
        padding = config.BOUNDARY_PADDING

        sim_time = 0.0
        for _ in range(1000):
            sim_time += 0.016
            particles.advect(0.016, self.params, [], self.boundary, None, self.curl, sim_time)
            self.assertTrue(np.all(particles.y >= -2.0 - padding))
            self.assertTrue(np.all(particles.y <= 2.0 + padding))
            self.assertTrue(np.all(particles.z >= -2.0 - padding))
            self.assertTrue(np.all(particles.z <= 2.0 + padding))
            trails = particles.trails.positions
            self.assertTrue(np.all(np.abs(trails[:, :, 1]) <= 2.0 + padding))

        self.assertTrue(np.all(particles.respawns >= 1))
        self.assertEqual(self.boundary.recycled_total, int(particles.respawns.sum()))

    def test_zero_turbulence_no_vorticity(self):
        particles = ParticleSystem(20, 3, rng=2)
        particles.seed_fill(self.bounds, self.params)
        particles.advect(0.016, self.params, [], self.boundary, None, self.curl, 0.016)
        np.testing.assert_array_equal(particles.vort, np.zeros(20))
        np.testing.assert_allclose(particles.speed,
                                   np.sqrt(particles.vx ** 2 + particles.vy ** 2 + particles.vz ** 2))

    def test_vorticity_proxy(self):
        params = self.params.replace(turbulence=0.5)
        particles = ParticleSystem(10, 3, rng=2)
        particles.seed_fill(self.bounds, params)
        start = np.stack([particles.x, particles.y, particles.z], axis=1)
        particles.advect(0.016, params, [], self.boundary, None, self.curl, 0.5)
        expected = [np.linalg.norm(self.curl.sample(px, py, pz, 0.5)) * 0.5 for px, py, pz in start]
        np.testing.assert_allclose(particles.vort, expected, rtol=1e-10)

    def test_velocity_blend(self):
        """Velocity moves toward the jittered inlet target by the blend weight"""
        particles = ParticleSystem(50, 2, rng=3)
        particles.seed_fill(self.bounds, self.params)
        particles.advect(0.016, self.params, [], self.boundary, None, self.curl, 0.016)
        blend = blend_factor(0.1)
        # target vx = wind * jitter in [0, wind)
        self.assertTrue(np.all(particles.vx >= 3.0 * (1.0 - blend) - 1e-12))
        self.assertTrue(np.all(particles.vx < 3.0 + 1e-12))
        np.testing.assert_allclose(particles.vy, 0.0)

    def test_heat_decay_and_proximity(self):
        particles = ParticleSystem(2, 3, rng=4)
        particles.x[:] = [0.0, 6.0]
        particles.heat[:] = [0.0, 1.0]
        particles.advect(0.016, self.params, [Sphere((0, 0, 0), 1.0)], self.boundary, None, self.curl, 0.016)
        self.assertEqual(particles.heat[0], 1.0)
        self.assertAlmostEqual(particles.heat[1], math.exp(-0.016 * 2.5))
        self.assertEqual(particles.trails.heat[0, -1], 1.0)

    def test_recycle_before_forces(self):
        """A particle past the outlet is respawned first, so its target comes from the inlet"""
        particles = ParticleSystem(1, 4, rng=8)
        particles.x[0] = 20.0
        particles.vx[0] = -50.0
        particles.advect(0.016, self.params, [], self.boundary, None, self.curl, 0.016)

        inlet_limit = -8.0 + 16.0 * config.RESPAWN_X_FRACTION
        oldest = particles.trails.positions[0, 0]
        self.assertTrue(-8.0 <= oldest[0] <= inlet_limit)
        np.testing.assert_array_equal(particles.trails.positions[0, 1], oldest)
        self.assertEqual(particles.respawns[0], 1)

        # inlet velocity 3.0 blended toward a jittered target in [0, 3)
        self.assertGreaterEqual(particles.vx[0], 0.0)
        self.assertGreaterEqual(particles.x[0], oldest[0])
        self.assertLessEqual(particles.x[0], inlet_limit + 3.0 * 0.016)

    def test_trails_record_pre_bounce(self):
        """Trail tail holds the integrated position before the wall clamp"""
        particles = ParticleSystem(1, 3, rng=5)
        particles.x[0] = 0.0
        particles.y[0] = 1.99
        particles.vy[0] = 40.0
        particles.advect(0.016, self.params, [], self.boundary, None, self.curl, 0.016)
        self.assertGreater(particles.trails.positions[0, -1, 1], 2.0)
        self.assertEqual(particles.y[0], 2.0)
        self.assertLess(particles.vy[0], 0.0)

    def test_vortices_used(self):
        vortices = VortexSystem()
        sim_time = 0.0
        for _ in range(40):
            sim_time += 0.016
            vortices.update(self.params, [Sphere((0, 0, 0), 1.0)], sim_time)
        self.assertGreater(len(vortices), 0)

        a = ParticleSystem(5, 2, rng=6)
        b = ParticleSystem(5, 2, rng=6)
        for p in (a, b):
            p.x[:] = 1.0
            p.y[:] = np.linspace(-1.0, 1.0, 5)
        a.advect(0.016, self.params, [], self.boundary, vortices, self.curl, sim_time)
        b.advect(0.016, self.params, [], self.boundary, None, self.curl, sim_time)
        self.assertFalse(np.allclose(np.stack([a.vx, a.vy]), np.stack([b.vx, b.vy])))

    def test_snapshot_is_copy(self):
        particles = ParticleSystem(10, 4, rng=7)
        particles.seed_fill(self.bounds, self.params)
        snapshot = particles.build_snapshot()
        before = snapshot.positions.copy()

        particles.advect(0.016, self.params, [], self.boundary, None, self.curl, 0.016)

        np.testing.assert_array_equal(snapshot.positions, before)
        self.assertEqual(snapshot.positions.dtype, np.float32)
        self.assertEqual(len(snapshot.positions), 30)
        self.assertEqual(len(snapshot.velocities), 30)
        self.assertEqual(len(snapshot.trails), 10 * 4 * 3)
        self.assertEqual(len(snapshot.trail_heat), 40)
        self.assertEqual(snapshot.trails_xyz().shape, (10, 4, 3))
        np.testing.assert_allclose(snapshot.positions_xyz()[:, 0], particles.trails.positions[:, 0, 0], rtol=1e-6)


if __name__ == '__main__':
    unittest.main()
