"""
config.py: Tuning constants and parameter structures for the wind tunnel core
"""

# Time step limits
DEFAULT_DT = 0.016  # ~60fps fallback
MAX_DT = 0.05  # particle step ceiling
SIM_MAX_DT = 0.1  # façade ceiling, larger frames fall back to DEFAULT_DT

# Velocity blending (viscosity mapping)
BLEND_MIN = 0.15
BLEND_MAX = 0.90

# Turbulence
TURBULENCE_SCALE = 0.25
TURBULENCE_CLAMP_FACTOR = 1.25  # max noise = factor * wind speed
TURBULENCE_CLAMP_MIN = 0.5

# Curl noise
CURL_SPATIAL_SCALE = 0.35  # smaller => larger swirls
CURL_TIME_SCALE = 0.6
CURL_EPSILON = 0.02
CURL_CHANNEL_OFFSETS = (11.1, 37.7, 91.3)
NOISE_SEED = 1337

# Vortex shedding
VORTEX_SCALE = 0.6
VORTEX_MIN_RADIUS_SOURCE = 0.25
VORTEX_PERIOD_BASE = 0.55
VORTEX_PERIOD_PER_WIND = 0.03
VORTEX_PERIOD_MIN = 0.15
VORTEX_OFFSET_X = 1.4  # downstream offset, in obstacle radii
VORTEX_OFFSET_Y = 0.7  # lateral offset, in obstacle radii
VORTEX_STRENGTH_PER_WIND = 0.8
VORTEX_MIN_STRENGTH = 0.6
VORTEX_RADIUS_FACTOR = 1.2
VORTEX_LIFE = 3.0
VORTEX_DT_MIN = 0.001
VORTEX_DT_MAX = 0.05
VORTEX_CORE_EPS = 1e-4

# Obstacle interaction
OBSTACLE_MIN_RADIUS = 1e-4
OBSTACLE_INFLUENCE_RADII = 3.0
OBSTACLE_SHELL_FACTOR = 1.05
OBSTACLE_PUSH_STRENGTH = 10.0
OBSTACLE_FLOW_REDUCTION = 0.35
OBSTACLE_DEFLECTION_STRENGTH = 0.85
NORMALIZE_EPS = 1e-6

# Obstacle heat (collision highlighting)
HEAT_SHELL_FACTOR = 1.15
HEAT_INFLUENCE_RADII = 2.5

# Tunnel boundaries
BOUNDARY_PADDING = 0.5
OUTLET_MARGIN = 0.05
INLET_BACKFLOW_MARGIN = 0.5
WALL_BOUNCE_FACTOR = 0.35
MIN_HALF_SIZE = 1e-6
RESPAWN_X_FRACTION = 0.01  # respawn within this fraction of the tunnel length

INLET_PROFILES = ("uniform", "parabolic")

# Default simulation parameters
DEFAULT_WIND_SPEED = 3.0
DEFAULT_PARTICLE_COUNT = 2500
DEFAULT_TURBULENCE = 0.2
DEFAULT_VISCOSITY = 0.1
DEFAULT_TUNNEL_BOUNDS = ((-8.0, 8.0), (-2.0, 2.0), (-3.0, 3.0))
DEFAULT_INLET_PROFILE = "uniform"
DEFAULT_TRAIL_HEAT_DECAY = 2.5
DEFAULT_RESET_TRAIL_HEAT_ON_RESPAWN = True

# Default visualization parameters
DEFAULT_COLOR_MODE = "velocity"
DEFAULT_COLOR_SCALE = "rainbow"
DEFAULT_DISPLAY_MODE = "trails"
DEFAULT_PARTICLE_SIZE = 0.04
DEFAULT_TRAIL_LENGTH = 40
DEFAULT_TRAIL_WIDTH = 0.015
DEFAULT_OPACITY = 0.85


class TunnelBounds:
    """Closed x/y/z intervals of the tunnel. Flow travels +x."""

    def __init__(self, x, y, z):
        self.x = (float(x[0]), float(x[1]))
        self.y = (float(y[0]), float(y[1]))
        self.z = (float(z[0]), float(z[1]))

    @classmethod
    def from_value(cls, value):
        """Accept a TunnelBounds, a dict with x/y/z keys or an (x, y, z) sequence"""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(value['x'], value['y'], value['z'])
        x, y, z = value
        return cls(x, y, z)

    def center(self):
        return (0.5 * (self.x[0] + self.x[1]),
                0.5 * (self.y[0] + self.y[1]),
                0.5 * (self.z[0] + self.z[1]))

    def half_extents(self):
        return (0.5 * (self.x[1] - self.x[0]),
                0.5 * (self.y[1] - self.y[0]),
                0.5 * (self.z[1] - self.z[0]))

    def __eq__(self, other):
        if not isinstance(other, TunnelBounds):
            return NotImplemented
        return self.x == other.x and self.y == other.y and self.z == other.z

    def __hash__(self):
        return hash((self.x, self.y, self.z))

    def __repr__(self):
        return f"TunnelBounds(x={self.x}, y={self.y}, z={self.z})"


class SimulationParams:
    """
    Fully resolved simulation parameters

    Every field is mandatory. Partial input from the host application goes
    through resolve_simulation_params() first.
    """

    FIELDS = ('wind_speed', 'particle_count', 'turbulence', 'viscosity',
              'tunnel_bounds', 'inlet_profile', 'trail_heat_decay',
              'reset_trail_heat_on_respawn')

    def __init__(self, wind_speed, particle_count, turbulence, viscosity,
                 tunnel_bounds, inlet_profile, trail_heat_decay,
                 reset_trail_heat_on_respawn):
        self.wind_speed = wind_speed
        self.particle_count = particle_count
        self.turbulence = turbulence
        self.viscosity = viscosity
        self.tunnel_bounds = tunnel_bounds
        self.inlet_profile = inlet_profile
        self.trail_heat_decay = trail_heat_decay
        self.reset_trail_heat_on_respawn = reset_trail_heat_on_respawn

    def replace(self, **patch):
        """Shallow merge: returns a copy with the given fields replaced"""
        values = self.as_dict()
        for key, value in patch.items():
            if key not in values:
                raise TypeError(f"Unknown simulation parameter: {key}")
            values[key] = value
        return SimulationParams(**values)

    def as_dict(self):
        return {name: getattr(self, name) for name in self.FIELDS}

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"SimulationParams({fields})"


class VisualizationParams:
    """
    Fully resolved visualization parameters

    Only trail_length matters to the core; the rest is carried for the
    rendering layer.
    """

    FIELDS = ('color_mode', 'color_scale', 'display_mode', 'particle_size',
              'trail_length', 'trail_width', 'opacity')

    def __init__(self, color_mode, color_scale, display_mode, particle_size,
                 trail_length, trail_width, opacity):
        self.color_mode = color_mode
        self.color_scale = color_scale
        self.display_mode = display_mode
        self.particle_size = particle_size
        self.trail_length = trail_length
        self.trail_width = trail_width
        self.opacity = opacity

    def replace(self, **patch):
        values = self.as_dict()
        for key, value in patch.items():
            if key not in values:
                raise TypeError(f"Unknown visualization parameter: {key}")
            values[key] = value
        return VisualizationParams(**values)

    def as_dict(self):
        return {name: getattr(self, name) for name in self.FIELDS}

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"VisualizationParams({fields})"


def _snake_case(key):
    out = []
    for ch in key:
        if ch.isupper():
            out.append('_')
            out.append(ch.lower())
        else:
            out.append(ch)
    return ''.join(out)


def normalize_keys(raw):
    """Convert camelCase keys coming from the host application to snake_case"""
    if raw is None:
        return {}
    return {_snake_case(key): value for key, value in raw.items()}


def resolve_simulation_params(raw=None, base=None):
    """
    Resolve a partial parameter dict into a SimulationParams

    Parameters:
    -----------
    raw : dict or SimulationParams
        Partial parameters, snake_case or camelCase keys. Missing fields
        take the value from base, or the module default.
    base : SimulationParams
        Optional parameters to fall back on before the defaults

    Returns:
    --------
    params : SimulationParams
    """
    if isinstance(raw, SimulationParams):
        return raw.replace()

    values = normalize_keys(raw)
    unknown = set(values) - set(SimulationParams.FIELDS)
    if unknown:
        raise ValueError(f"Unknown simulation parameters: {sorted(unknown)}")

    if base is not None:
        resolved = base.as_dict()
    else:
        resolved = {
            'wind_speed': DEFAULT_WIND_SPEED,
            'particle_count': DEFAULT_PARTICLE_COUNT,
            'turbulence': DEFAULT_TURBULENCE,
            'viscosity': DEFAULT_VISCOSITY,
            'tunnel_bounds': TunnelBounds(*DEFAULT_TUNNEL_BOUNDS),
            'inlet_profile': DEFAULT_INLET_PROFILE,
            'trail_heat_decay': DEFAULT_TRAIL_HEAT_DECAY,
            'reset_trail_heat_on_respawn': DEFAULT_RESET_TRAIL_HEAT_ON_RESPAWN,
        }

    for key, value in values.items():
        if value is not None:
            resolved[key] = value

    resolved['tunnel_bounds'] = TunnelBounds.from_value(resolved['tunnel_bounds'])
    if resolved['inlet_profile'] not in INLET_PROFILES:
        raise ValueError(f"Unknown inlet profile: {resolved['inlet_profile']!r}")

    return SimulationParams(**resolved)


def resolve_visualization_params(raw=None, base=None):
    """Resolve a partial visualization dict into a VisualizationParams"""
    if isinstance(raw, VisualizationParams):
        return raw.replace()

    values = normalize_keys(raw)
    unknown = set(values) - set(VisualizationParams.FIELDS)
    if unknown:
        raise ValueError(f"Unknown visualization parameters: {sorted(unknown)}")

    if base is not None:
        resolved = base.as_dict()
    else:
        resolved = {
            'color_mode': DEFAULT_COLOR_MODE,
            'color_scale': DEFAULT_COLOR_SCALE,
            'display_mode': DEFAULT_DISPLAY_MODE,
            'particle_size': DEFAULT_PARTICLE_SIZE,
            'trail_length': DEFAULT_TRAIL_LENGTH,
            'trail_width': DEFAULT_TRAIL_WIDTH,
            'opacity': DEFAULT_OPACITY,
        }

    for key, value in values.items():
        if value is not None:
            resolved[key] = value

    return VisualizationParams(**resolved)
