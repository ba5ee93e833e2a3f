# ── Central defaults (tune here, not scattered across files) ──

# World
WORLD_WIDTH = 800.0
WORLD_HEIGHT = 600.0
TOROIDAL = True
G = 0.001
DENSITY = 1.0
MAX_MASS = 10000.0

# Explosions
FRAGMENT_RANGE = (10, 20)
FRAGMENT_WEIGHT_RANGE = (0.01, 0.99)
EXPLOSION_MASS_LOSS = 1.0
FRAGMENT_OFFSET_RADII = 3.0

# Presets cycled by the interactive controls
G_VALUES = (0.001, 0.01, 0.1, 1.0)
MAX_MASS_VALUES = (5000.0, 10000.0, 20000.0, 40000.0)
DENSITY_VALUES = (0.01, 0.1, 1.0, 10.0, 100.0)

# Rendering
FPS = 60
BG_COLOR = (0, 0, 0)
MIN_PIXEL_RADIUS = 1
SPAWN_MASS_FRACTION = 0.1

# Simulation
N_STEPS = 2000
SEED = 42
