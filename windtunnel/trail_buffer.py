"""
trail_buffer.py: Fixed-capacity per-particle position/heat history
"""

import numpy as np


class TrailBuffer:
    """
    Trail history for every particle, oldest sample first

    positions has shape (particle_count, trail_len, 3) and heat has shape
    (particle_count, trail_len). Updates are batched: push_all() shifts
    the whole history one slot in a single array copy.
    """

    def __init__(self, particle_count, trail_len):
        self.particle_count = max(0, int(particle_count))
        self.trail_len = max(1, int(trail_len))

        self.positions = np.zeros((self.particle_count, self.trail_len, 3), dtype=np.float64)
        self.heat = np.zeros((self.particle_count, self.trail_len), dtype=np.float64)

    def init(self, i, x, y, z):
        """Fill every slot of particle i with the same position and zero heat"""
        self.positions[i, :, 0] = x
        self.positions[i, :, 1] = y
        self.positions[i, :, 2] = z
        self.heat[i, :] = 0.0

    def init_all(self, xs, ys, zs):
        n = self.particle_count
        self.positions[:, :, 0] = np.asarray(xs[:n])[:, None]
        self.positions[:, :, 1] = np.asarray(ys[:n])[:, None]
        self.positions[:, :, 2] = np.asarray(zs[:n])[:, None]
        self.heat[:] = 0.0

    def push_all(self, xs, ys, zs, heats, count):
        """
        Append the newest sample for the first `count` particles

        Parameters:
        -----------
        xs, ys, zs : array
            Positions, length >= count
        heats : array
            Heat values, length >= count
        count : int
            Number of particles to update
        """
        n = min(int(count), self.particle_count)
        if n <= 0:
            return

        if self.trail_len > 1:
            # numpy buffers overlapping slices, so this is a safe in-place shift
            self.positions[:n, :-1] = self.positions[:n, 1:]
            self.heat[:n, :-1] = self.heat[:n, 1:]

        self.positions[:n, -1, 0] = xs[:n]
        self.positions[:n, -1, 1] = ys[:n]
        self.positions[:n, -1, 2] = zs[:n]
        self.heat[:n, -1] = heats[:n]

    def clear_heat(self, i):
        self.heat[i, :] = 0.0

    def get_data(self):
        """Borrowed views of the trail arrays, valid until the next push_all()"""
        return {
            'positions': self.positions,
            'heat': self.heat,
        }
