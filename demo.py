"""
Interactive demo: click to create bodies, watch them fall together.
Run: venv/bin/python demo.py
Left click: new body | Right click: run/pause | Space: step | Esc: clear
Press Q or close window to exit.
"""
from gravsim.engine import SimulationWorld, WorldConfig
from gravsim.renderer import InteractiveApp
from gravsim.logging_config import setup_logging
import gravsim as P

setup_logging(level="INFO")

# Start from the centralized defaults with a few bodies already placed
world = SimulationWorld(WorldConfig(seed=P.SEED))
world.populate_random(12)
print(f"Bodies: {world.body_count}, total mass: {world.total_mass():.0f}")

InteractiveApp(world).run()
