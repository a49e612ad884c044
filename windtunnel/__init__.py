"""
windtunnel: Headless particle core of a real-time 3D wind tunnel
"""

from .boundary_system import BoundarySystem
from .config import (
    SimulationParams,
    TunnelBounds,
    VisualizationParams,
    resolve_simulation_params,
    resolve_visualization_params,
)
from .curl_noise import CurlNoiseField
from .noise_field import NoiseField
from .obstacles import Box, Sphere, obstacle_from_dict
from .particle_system import ParticleSystem
from .simulation import WindTunnelSimulation
from .snapshot import SimSnapshot
from .trail_buffer import TrailBuffer
from .vortex_system import Vortex, VortexSystem

__version__ = "0.1.0"
