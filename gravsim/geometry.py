"""
Geometry helpers shared by the engine and the renderer.

Every function accepts python floats or numpy arrays. Scalars come back as
floats so callers can store them directly on a Body.
"""

import numpy as np


def _as_output(arr: np.ndarray):
    return float(arr) if arr.ndim == 0 else arr


def calculate_radius(mass, density: float):
    """Disc radius for a given mass: (mass / (pi * density)) ** (1/3)."""
    mass = np.asarray(mass, dtype=float)
    return _as_output(np.cbrt(mass / (np.pi * density)))


def wrapped_delta(delta, dim: float):
    """Signed, minimal-magnitude difference on an axis of length `dim`."""
    delta = np.asarray(delta, dtype=float)
    out = np.where(np.abs(delta) > dim / 2, delta - np.sign(delta) * dim, delta)
    return _as_output(out)


def wrap_coordinate(x, dim: float):
    """Map a coordinate into [0, dim), including overshoots larger than dim."""
    x = np.asarray(x, dtype=float)
    # np.mod takes the sign of the divisor, so negatives land in [0, dim]
    out = np.mod(x, dim)
    # -tiny % dim rounds up to dim itself
    out = np.where(out >= dim, 0.0, out)
    return _as_output(out)


def displacement(x1: float, y1: float, x2: float, y2: float,
                 width: float, height: float, toroidal: bool):
    """Vector from point 1 to point 2, shortest path when the space wraps."""
    dx = x2 - x1
    dy = y2 - y1
    if toroidal:
        dx = wrapped_delta(dx, width)
        dy = wrapped_delta(dy, height)
    return float(dx), float(dy)
