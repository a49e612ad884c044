"""
visualization.py: Matplotlib preview of wind tunnel snapshots

Side (x-y) projection of particles and trails for debugging the core
without the 3D renderer.
"""

import time

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.collections import LineCollection
from matplotlib.patches import Circle, Rectangle

from .obstacles import Box, Sphere

COLOR_FIELDS = ('speed', 'vorticity', 'heat')


def snapshot_values(snapshot, color_by):
    """Per-particle scalar used for coloring"""
    if color_by == 'speed':
        return snapshot.speeds
    elif color_by == 'vorticity':
        return snapshot.vorticity
    elif color_by == 'heat':
        return snapshot.heat
    raise ValueError(f"Unknown color field: {color_by!r} (expected one of {COLOR_FIELDS})")


def plot_obstacles(ax, obstacles):
    """Draw sphere outlines as circles and boxes as rectangles (x-y plane)"""
    patches = []
    for obstacle in obstacles:
        if isinstance(obstacle, Sphere):
            patch = Circle((obstacle.position[0], obstacle.position[1]), obstacle.radius,
                           facecolor='lightgray', edgecolor='black', linewidth=1.5, alpha=0.8)
        elif isinstance(obstacle, Box):
            hx, hy = obstacle.half_extents[0], obstacle.half_extents[1]
            patch = Rectangle((obstacle.position[0] - hx, obstacle.position[1] - hy), 2 * hx, 2 * hy,
                              facecolor='lightgray', edgecolor='black', linewidth=1.5, alpha=0.8)
        else:
            continue
        ax.add_patch(patch)
        patches.append(patch)
    return patches


def plot_snapshot(ax, snapshot, bounds, obstacles=(), color_by='speed',
                  show_trails=True, cmap='viridis'):
    """
    Plot one snapshot

    Parameters:
    -----------
    ax : matplotlib axis
        Axis to plot on (cleared first)
    snapshot : SimSnapshot
        Frame to draw
    bounds : TunnelBounds
        Tunnel extents, used for axis limits
    obstacles : list
        Sphere/Box obstacles to outline
    color_by : str
        'speed', 'vorticity' or 'heat'
    show_trails : bool
        Whether to draw trail polylines

    Returns:
    --------
    scatter : PathCollection
        Particle scatter artist
    """
    ax.clear()

    values = snapshot_values(snapshot, color_by)
    positions = snapshot.positions_xyz()

    if show_trails and snapshot.trails is not None and snapshot.trail_len > 1:
        trails = snapshot.trails_xyz()
        segments = trails[:, :, :2]
        lc = LineCollection(segments, cmap=cmap, linewidths=0.6, alpha=0.5, zorder=1)
        lc.set_array(np.asarray(values, dtype=np.float64))
        ax.add_collection(lc)

    scatter = ax.scatter(positions[:, 0], positions[:, 1], c=values, s=4,
                         cmap=cmap, zorder=2)

    plot_obstacles(ax, obstacles)

    ax.set_xlim(bounds.x)
    ax.set_ylim(bounds.y)
    ax.set_aspect('equal')
    ax.grid(True, alpha=0.3)

    return scatter


class SimulationPreview:
    """Real-time matplotlib preview with keyboard controls"""

    def __init__(self, sim, color_by='speed', dt=0.016, show_trails=True):
        self.sim = sim
        self.color_by = color_by
        self.dt = dt
        self.show_trails = show_trails
        self.speed_multiplier = 1.0
        self.running = True
        self.frame_times = []

        self.fig, self.ax = plt.subplots(1, 1, figsize=(12, 5))
        self.fig.canvas.mpl_connect('key_press_event', self.on_key_press)
        self.snapshot = sim.snapshot()

    def on_key_press(self, event):
        """Handle keyboard input"""
        if event.key == ' ':
            self.sim.set_paused(not self.sim.paused)
            status = "PAUSED" if self.sim.paused else "RESUMED"
            print(f"Simulation {status}")
        elif event.key == 'up':
            self.speed_multiplier = min(5.0, self.speed_multiplier * 1.5)
            print(f"Speed: {self.speed_multiplier:.1f}x")
        elif event.key == 'down':
            self.speed_multiplier = max(0.1, self.speed_multiplier / 1.5)
            print(f"Speed: {self.speed_multiplier:.1f}x")
        elif event.key == 'q':
            self.running = False
            plt.close(self.fig)
            print("Simulation terminated by user")

    def step_frame(self, frame):
        """Advance the simulation one frame and redraw"""
        start = time.perf_counter()
        self.snapshot = self.sim.update(self.dt * self.speed_multiplier)
        self.frame_times.append(time.perf_counter() - start)

        scatter = plot_snapshot(self.ax, self.snapshot, self.sim.params.tunnel_bounds,
                                self.sim.obstacles, color_by=self.color_by,
                                show_trails=self.show_trails)
        self.ax.set_title(f"Wind tunnel (t={self.sim.sim_time:.2f}s, "
                          f"{self.snapshot.particle_count} particles, "
                          f"{len(self.sim.vortices)} vortices)")
        return scatter,

    def run(self, frames=None, interval=16):
        """Run the interactive animation until the window is closed"""
        print("Controls:")
        print("  SPACE: Pause/Resume")
        print("  UP/DOWN: Increase/Decrease speed")
        print("  Q: Quit")

        anim = FuncAnimation(self.fig, self.step_frame, frames=frames,
                             interval=interval, blit=False, cache_frame_data=False)
        plt.show()

        if self.frame_times:
            avg = np.mean(self.frame_times)
            print(f"Average step time: {avg * 1000:.2f} ms ({len(self.frame_times)} frames)")
        return anim


def main():
    """Single sphere in a parabolic-inlet tunnel"""
    from .simulation import WindTunnelSimulation

    sim = WindTunnelSimulation(
        params={
            'wind_speed': 3.0,
            'turbulence': 0.15,
            'viscosity': 0.08,
            'particle_count': 3000,
            'inlet_profile': 'parabolic',
            'tunnel_bounds': {'x': (-10, 10), 'y': (-4, 4), 'z': (-6, 6)},
        },
        obstacles=[{'bounding_type': 'sphere', 'position': (0, 0, 0), 'bounding_size': (1.4, 1.4, 1.4)}],
        vis={'trail_length': 20},
        verbose=True,
    )
    SimulationPreview(sim).run()


if __name__ == "__main__":
    main()
