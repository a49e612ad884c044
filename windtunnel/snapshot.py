"""
snapshot.py: Read-only per-frame view handed to the rendering layer
"""

import numpy as np


class SimSnapshot:
    """
    Simulation state for one frame

    Every array is a float32 copy owned by the snapshot, so it stays valid
    after later steps.

    Attributes:
    -----------
    particle_count : int
    positions : array (N*3,)
        Interleaved xyz
    speeds : array (N,)
    vorticity : array (N,)
    heat : array (N,)
    velocities : array (N*3,)
        Interleaved xyz
    trails : array (N*trail_len*3,) or None
        Per particle, oldest sample first
    trail_len : int or None
    trail_heat : array (N*trail_len,) or None
    """

    def __init__(self, particle_count, positions, speeds, vorticity, heat=None,
                 velocities=None, trails=None, trail_len=None, trail_heat=None):
        self.particle_count = int(particle_count)
        self.positions = positions
        self.speeds = speeds
        self.vorticity = vorticity
        self.heat = heat
        self.velocities = velocities
        self.trails = trails
        self.trail_len = trail_len
        self.trail_heat = trail_heat

    def positions_xyz(self):
        """Positions as an (N, 3) view"""
        return self.positions.reshape(self.particle_count, 3)

    def trails_xyz(self):
        """Trails as an (N, trail_len, 3) view, or None"""
        if self.trails is None:
            return None
        return self.trails.reshape(self.particle_count, self.trail_len, 3)

    def __repr__(self):
        return f"SimSnapshot(particle_count={self.particle_count}, trail_len={self.trail_len})"
