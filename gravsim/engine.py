"""
2D gravity engine: bodies attract, merge on contact, explode when too heavy.

- N bodies in a toroidal (wrap-around) or bounded plane
- Inverse-square gravity, synchronous Euler update, one tick = unit time
- Perfectly inelastic merges (mass and momentum conserved)
- Bodies above max_mass explode into fragments
- State per body: (x, y, vx, vy, radius, mass)
"""

import copy
import itertools
import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

import gravsim as P
from gravsim.fragmentation import fragment_body
from gravsim.geometry import calculate_radius, displacement, wrap_coordinate, wrapped_delta
from gravsim.metrics import compute_energy, compute_momentum, compute_total_mass

logger = logging.getLogger(__name__)

PARAMETERS = ('G', 'density', 'max_mass', 'width', 'height')
RESIZE_POLICIES = ('rescale', 'reset')


class InvalidSpawn(ValueError):
    """Body creation refused: non-positive mass or position out of bounds."""


@dataclass
class Body:
    """Physics-only state container. `radius` caches f(mass, density) times the length scale."""
    x: float
    y: float
    vx: float
    vy: float
    mass: float
    radius: float
    body_id: int = 0

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y])

    @property
    def velocity(self) -> np.ndarray:
        return np.array([self.vx, self.vy])

    @velocity.setter
    def velocity(self, v: np.ndarray):
        self.vx, self.vy = float(v[0]), float(v[1])

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    @property
    def momentum(self) -> np.ndarray:
        return self.mass * self.velocity

    @property
    def full_state(self) -> np.ndarray:
        return np.array([self.x, self.y, self.vx, self.vy, self.radius, self.mass])


@dataclass
class WorldConfig:
    width: float = P.WORLD_WIDTH
    height: float = P.WORLD_HEIGHT
    G: float = P.G
    density: float = P.DENSITY
    max_mass: float = P.MAX_MASS
    toroidal: bool = P.TOROIDAL
    # None resolves to 'rescale' for toroidal worlds and 'reset' for bounded ones
    resize_policy: Optional[str] = None
    fragment_range: Tuple[int, int] = P.FRAGMENT_RANGE
    explosion_mass_loss: float = P.EXPLOSION_MASS_LOSS
    # world units per physics unit of length; grows and shrinks with rescaling
    length_scale: float = 1.0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.resize_policy is None:
            self.resize_policy = 'rescale' if self.toroidal else 'reset'
        if self.resize_policy not in RESIZE_POLICIES:
            raise ValueError(f"Unknown resize policy: {self.resize_policy}")
        for name in ('width', 'height', 'density', 'max_mass', 'length_scale'):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be positive and finite, got {value!r}")
        if not math.isfinite(self.G):
            raise ValueError(f"G must be finite, got {self.G!r}")
        lo, hi = self.fragment_range
        if lo < 1 or hi < lo:
            raise ValueError(f"Invalid fragment range: {self.fragment_range}")
        if self.explosion_mass_loss < 0:
            raise ValueError("explosion_mass_loss must be non-negative")


class StepReport(NamedTuple):
    merges: int
    explosions: int
    body_count: int


class SimulationWorld:
    """
    Gravitational N-body world.

    Step: gravity → positions → merges → explosions

    The world owns its bodies. Readers get copies (`bodies`, `query_body_at`,
    `get_full_state`) and change state only through the public operations,
    all of which hold the world lock.
    """

    def __init__(self, config: Optional[WorldConfig] = None):
        self.config = copy.copy(config) if config is not None else WorldConfig()
        self.rng = np.random.RandomState(self.config.seed)
        self.running = False
        self.tick_count = 0
        self._bodies: List[Body] = []
        self._ids = itertools.count()
        self._lock = threading.RLock()

    # Body creation

    def spawn_body(self, mass: float, x: float, y: float,
                   vx: float = 0.0, vy: float = 0.0) -> Optional[int]:
        """Add a body; returns its id, or None if the request was rejected."""
        with self._lock:
            try:
                body = self._make_body(mass, x, y, vx, vy)
            except InvalidSpawn as exc:
                logger.warning("Rejected spawn: %s", exc)
                return None
            self._bodies.append(body)
            return body.body_id

    def _make_body(self, mass: float, x: float, y: float,
                   vx: float, vy: float) -> Body:
        try:
            mass, x, y, vx, vy = (float(v) for v in (mass, x, y, vx, vy))
        except (TypeError, ValueError) as exc:
            raise InvalidSpawn(f"non-numeric body state: {exc}") from exc
        if not math.isfinite(mass) or mass <= 0:
            raise InvalidSpawn(f"mass must be positive, got {mass!r}")
        if not all(math.isfinite(v) for v in (x, y, vx, vy)):
            raise InvalidSpawn(f"non-finite state ({x}, {y}, {vx}, {vy})")

        cfg = self.config
        if cfg.toroidal:
            x = wrap_coordinate(x, cfg.width)
            y = wrap_coordinate(y, cfg.height)
        elif not (0 <= x < cfg.width and 0 <= y < cfg.height):
            raise InvalidSpawn(f"position ({x:g}, {y:g}) outside "
                               f"{cfg.width:g}x{cfg.height:g}")

        return Body(x=x, y=y, vx=vx, vy=vy, mass=mass,
                    radius=self._radius(mass),
                    body_id=next(self._ids))

    def random_spawn_mass(self) -> float:
        """Mass for an interactively placed body: up to a tenth of max_mass."""
        return max(1.0, self.rng.uniform() * self.config.max_mass * P.SPAWN_MASS_FRACTION)

    def populate_random(self, n_bodies: int) -> List[int]:
        """Spawn `n_bodies` at rest at uniformly random positions."""
        ids = []
        with self._lock:
            for _ in range(n_bodies):
                mass = self.random_spawn_mass()
                x = self.rng.uniform(0, self.config.width)
                y = self.rng.uniform(0, self.config.height)
                body_id = self.spawn_body(mass, x, y)
                if body_id is not None:
                    ids.append(body_id)
        return ids

    # Tick

    def step(self) -> StepReport:
        """One full tick, whether or not the world is running."""
        with self._lock:
            self.apply_gravity()
            self.integrate_positions()
            merges = self.resolve_merges()
            explosions = self.resolve_explosions()
            self.tick_count += 1
            return StepReport(merges, explosions, len(self._bodies))

    def apply_gravity(self):
        """Add this tick's acceleration to every velocity.

        All accelerations come from the pre-step state before any velocity
        changes, so the result does not depend on body order.
        """
        with self._lock:
            cfg = self.config
            if len(self._bodies) < 2 or cfg.G == 0:
                return

            state = np.array([b.full_state for b in self._bodies])
            pos, mass = state[:, :2], state[:, 5]
            diff = pos[None, :, :] - pos[:, None, :]   # diff[i, j] = p_j - p_i
            if cfg.toroidal:
                diff[..., 0] = wrapped_delta(diff[..., 0], cfg.width)
                diff[..., 1] = wrapped_delta(diff[..., 1], cfg.height)
            dist = np.sqrt((diff ** 2).sum(axis=-1))

            with np.errstate(divide='ignore', invalid='ignore'):
                coeff = np.where(dist > 0, cfg.G * mass[None, :] / dist ** 3, 0.0)
            acc = (coeff[..., None] * diff).sum(axis=1)

            for body, (ax, ay) in zip(self._bodies, acc):
                body.vx += float(ax)
                body.vy += float(ay)

    def integrate_positions(self):
        with self._lock:
            cfg = self.config
            for body in self._bodies:
                body.x += body.vx
                body.y += body.vy
                if cfg.toroidal:
                    body.x = wrap_coordinate(body.x, cfg.width)
                    body.y = wrap_coordinate(body.y, cfg.height)

    def resolve_merges(self) -> int:
        """Merge overlapping bodies until no pair overlaps; returns merge count.

        Pairs are scanned as (i, j), i < j, in ascending order and the first
        overlap wins. Both bodies are removed, the merged body is appended and
        the scan restarts.
        """
        merges = 0
        with self._lock:
            while True:
                pair = self._find_overlap()
                if pair is None:
                    return merges
                i, j = pair
                merged = self._merge(self._bodies[i], self._bodies[j])
                logger.debug("Merged bodies %d and %d into %d (mass %.3f)",
                             self._bodies[i].body_id, self._bodies[j].body_id,
                             merged.body_id, merged.mass)
                del self._bodies[j]
                del self._bodies[i]
                self._bodies.append(merged)
                merges += 1

    def _find_overlap(self) -> Optional[Tuple[int, int]]:
        bodies = self._bodies
        for i in range(len(bodies)):
            bi = bodies[i]
            for j in range(i + 1, len(bodies)):
                bj = bodies[j]
                dx, dy = self._displacement(bi.x, bi.y, bj.x, bj.y)
                if math.hypot(dx, dy) < bi.radius + bj.radius:
                    return i, j
        return None

    def _merge(self, b1: Body, b2: Body) -> Body:
        cfg = self.config
        total = b1.mass + b2.mass
        dx, dy = self._displacement(b1.x, b1.y, b2.x, b2.y)
        x = b1.x + dx * (b2.mass / total)
        y = b1.y + dy * (b2.mass / total)
        if cfg.toroidal:
            x = wrap_coordinate(x, cfg.width)
            y = wrap_coordinate(y, cfg.height)
        return Body(
            x=x, y=y,
            vx=(b1.vx * b1.mass + b2.vx * b2.mass) / total,
            vy=(b1.vy * b1.mass + b2.vy * b2.mass) / total,
            mass=total,
            radius=self._radius(total),
            body_id=next(self._ids),
        )

    def resolve_explosions(self) -> int:
        """Replace every body above max_mass with fragments; returns the count.

        Fragments are not checked again this tick. One that is still too heavy
        explodes on a later tick.
        """
        with self._lock:
            cfg = self.config
            exploding = [b for b in reversed(self._bodies) if b.mass > cfg.max_mass]
            if not exploding:
                return 0
            self._bodies = [b for b in self._bodies if b.mass <= cfg.max_mass]

            for body in exploding:
                fragments = fragment_body(
                    body.mass, body.x, body.y, body.vx, body.vy, body.radius,
                    cfg.max_mass, self.rng,
                    fragment_range=cfg.fragment_range,
                    mass_loss=cfg.explosion_mass_loss,
                )
                logger.info("Body %d (mass %.1f) exploded into %d fragments",
                            body.body_id, body.mass, len(fragments))
                for frag in fragments:
                    if frag.mass > cfg.max_mass:
                        logger.info("Fragment of mass %.1f is above max_mass %.1f; "
                                    "it will explode on a later tick",
                                    frag.mass, cfg.max_mass)
                    try:
                        self._bodies.append(self._make_body(*frag))
                    except InvalidSpawn as exc:
                        logger.warning("Dropped fragment: %s", exc)
            return len(exploding)

    # Run control

    def tick(self) -> Optional[StepReport]:
        """Frame callback: advance only while running."""
        with self._lock:
            if not self.running:
                return None
            return self.step()

    def step_once(self) -> StepReport:
        with self._lock:
            self.running = False
            return self.step()

    def play(self):
        with self._lock:
            self.running = True

    def pause(self):
        with self._lock:
            self.running = False

    def toggle_running(self) -> bool:
        with self._lock:
            self.running = not self.running
            return self.running

    def clear(self):
        with self._lock:
            self._bodies = []
            self.running = False

    # Parameters

    def set_parameter(self, name: str, value: float) -> bool:
        """Change G, density, max_mass, width or height. Invalid input is ignored."""
        with self._lock:
            if name not in PARAMETERS:
                logger.warning("Unknown parameter %r", name)
                return False
            value = self._checked_value(name, value)
            if value is None:
                return False

            if name == 'width':
                self._resize(value, self.config.height)
            elif name == 'height':
                self._resize(self.config.width, value)
            else:
                setattr(self.config, name, value)
                if name == 'density':
                    self._refresh_radii()
            logger.debug("Set %s = %g", name, value)
            return True

    def set_dimensions(self, width: float, height: float) -> bool:
        with self._lock:
            width = self._checked_value('width', width)
            height = self._checked_value('height', height)
            if width is None or height is None:
                return False
            self._resize(width, height)
            return True

    @staticmethod
    def _checked_value(name: str, value) -> Optional[float]:
        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s=%r", name, value)
            return None
        if not math.isfinite(value) or (name != 'G' and value <= 0):
            logger.warning("Ignoring invalid %s=%r", name, value)
            return None
        return value

    def _radius(self, mass: float) -> float:
        return calculate_radius(mass, self.config.density) * self.config.length_scale

    def _refresh_radii(self):
        for body in self._bodies:
            body.radius = self._radius(body.mass)

    def _resize(self, width: float, height: float):
        cfg = self.config
        if cfg.resize_policy == 'reset':
            if self._bodies:
                logger.info("World resized to %gx%g; clearing %d bodies",
                            width, height, len(self._bodies))
            self._bodies = []
        else:
            sx, sy = width / cfg.width, height / cfg.height
            cfg.length_scale *= sy
            for body in self._bodies:
                body.x *= sx
                body.y *= sy
                if cfg.toroidal:
                    body.x = wrap_coordinate(body.x, width)
                    body.y = wrap_coordinate(body.y, height)
            self._refresh_radii()
        cfg.width, cfg.height = width, height

    # Queries

    def _displacement(self, x1: float, y1: float, x2: float, y2: float):
        cfg = self.config
        return displacement(x1, y1, x2, y2, cfg.width, cfg.height, cfg.toroidal)

    def query_body_at(self, x: float, y: float) -> Optional[Body]:
        """First body (iteration order) whose disc contains (x, y), as a copy."""
        with self._lock:
            cfg = self.config
            if cfg.toroidal:
                x = wrap_coordinate(x, cfg.width)
                y = wrap_coordinate(y, cfg.height)
            for body in self._bodies:
                dx, dy = self._displacement(x, y, body.x, body.y)
                if math.hypot(dx, dy) <= body.radius:
                    return replace(body)
            return None

    @property
    def bodies(self) -> Tuple[Body, ...]:
        with self._lock:
            return tuple(replace(b) for b in self._bodies)

    @property
    def body_count(self) -> int:
        with self._lock:
            return len(self._bodies)

    def get_full_state(self) -> np.ndarray:
        """(n_bodies, 6) → [x, y, vx, vy, radius, mass]"""
        with self._lock:
            if not self._bodies:
                return np.zeros((0, 6))
            return np.array([b.full_state for b in self._bodies])

    # Conserved quantities

    def total_mass(self) -> float:
        return compute_total_mass(self.get_full_state())

    def total_momentum(self) -> np.ndarray:
        return compute_momentum(self.get_full_state())

    def total_kinetic_energy(self) -> float:
        return compute_energy(self.get_full_state())

    def center_of_mass(self) -> np.ndarray:
        """Mass-weighted mean position in plain coordinates (not wrap-aware)."""
        state = self.get_full_state()
        total = compute_total_mass(state)
        if total == 0:
            return np.array([self.config.width / 2, self.config.height / 2])
        return (state[:, 5, None] * state[:, :2]).sum(axis=0) / total

    def invariants(self) -> Dict[str, np.ndarray]:
        return {
            'mass': self.total_mass(),
            'momentum': self.total_momentum(),
            'energy': self.total_kinetic_energy(),
            'center_of_mass': self.center_of_mass(),
        }


def generate_trajectory(config: WorldConfig,
                        bodies: Optional[Iterable[Tuple[float, ...]]] = None,
                        n_steps: int = P.N_STEPS,
                        n_bodies: int = 30) -> Dict:
    """Run a world and record per-step totals.

    `bodies` holds (mass, x, y, vx, vy) tuples; without it `n_bodies` random
    bodies are spawned from the world's seeded generator.
    """
    world = SimulationWorld(config)
    if bodies is None:
        world.populate_random(n_bodies)
    else:
        for spec in bodies:
            world.spawn_body(*spec)

    mass = [world.total_mass()]
    momentum = [world.total_momentum()]
    energy = [world.total_kinetic_energy()]
    counts = [world.body_count]
    merges, explosions = [0], [0]

    for _ in range(n_steps):
        report = world.step()
        mass.append(world.total_mass())
        momentum.append(world.total_momentum())
        energy.append(world.total_kinetic_energy())
        counts.append(report.body_count)
        merges.append(report.merges)
        explosions.append(report.explosions)

    return {
        'config': world.config,
        'mass': np.array(mass),
        'momentum': np.array(momentum),
        'energy': np.array(energy),
        'body_count': np.array(counts),
        'merges': np.array(merges),
        'explosions': np.array(explosions),
        'final_state': world.get_full_state(),
    }
