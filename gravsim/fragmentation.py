"""
Explosion fragmentation.

A body over the mass threshold is split into N fragments by cutting the circle
into N random sectors. Each fragment gets a share of the mass proportional to
its sector angle and flies out along the sector bisector.

Model: energy split with inherited velocity.
  - `mass_loss` units of mass are converted into explosion energy
    E = mass_loss * max_mass, shared equally between fragments.
  - fragment speed = sqrt(2 * (E / N) / m_k), plus the parent's velocity.
"""

import logging
from typing import List, NamedTuple, Tuple

import numpy as np

import gravsim as P

logger = logging.getLogger(__name__)


class Fragment(NamedTuple):
    mass: float
    x: float
    y: float
    vx: float
    vy: float


def partition_sectors(rng: np.random.RandomState, n: int,
                      weight_range: Tuple[float, float] = P.FRAGMENT_WEIGHT_RANGE
                      ) -> np.ndarray:
    """Split 2*pi into `n` random sector angles, each weight kept off zero."""
    # uniform() includes its low bound; step just past it so weights stay strictly inside
    low = np.nextafter(weight_range[0], weight_range[1])
    weights = rng.uniform(low, weight_range[1], size=n)
    return weights / weights.sum() * (2 * np.pi)


def distributed_mass(mass: float, mass_loss: float) -> float:
    """Mass left for the fragments once `mass_loss` has become energy."""
    remaining = mass - mass_loss
    return remaining if remaining > 0 else mass


def fragment_body(mass: float, x: float, y: float, vx: float, vy: float,
                  radius: float, max_mass: float, rng: np.random.RandomState,
                  fragment_range: Tuple[int, int] = P.FRAGMENT_RANGE,
                  mass_loss: float = P.EXPLOSION_MASS_LOSS) -> List[Fragment]:
    """Fragments for one exploding body. Positions are not wrapped here."""
    n = int(rng.randint(fragment_range[0], fragment_range[1] + 1))
    sectors = partition_sectors(rng, n)
    frag_total = distributed_mass(mass, mass_loss)
    energy_per_fragment = mass_loss * max_mass / n

    fragments = []
    angle = 0.0
    for theta in sectors:
        bisector = angle + theta / 2
        angle += theta
        frag_mass = theta / (2 * np.pi) * frag_total
        if not np.isfinite(frag_mass) or frag_mass <= 0:
            logger.warning("Skipping degenerate fragment (mass=%r, sector=%r)",
                           frag_mass, theta)
            continue

        speed = np.sqrt(2 * energy_per_fragment / frag_mass)
        ux, uy = np.cos(bisector), np.sin(bisector)
        offset = P.FRAGMENT_OFFSET_RADII * radius + speed
        fragments.append(Fragment(
            mass=float(frag_mass),
            x=float(x + offset * ux),
            y=float(y + offset * uy),
            vx=float(vx + speed * ux),
            vy=float(vy + speed * uy),
        ))
    return fragments
