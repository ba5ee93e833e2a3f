import numpy as np

# Full-state column layout: [x, y, vx, vy, radius, mass]
VEL = slice(2, 4)
MASS = 5


def compute_total_mass(full_state: np.ndarray) -> float:
    if len(full_state) == 0:
        return 0.0
    return float(full_state[:, MASS].sum())


def compute_momentum(full_state: np.ndarray) -> np.ndarray:
    if len(full_state) == 0:
        return np.zeros(2)
    return (full_state[:, MASS, None] * full_state[:, VEL]).sum(axis=0)


def compute_energy(full_state: np.ndarray) -> float:
    if len(full_state) == 0:
        return 0.0
    vel = full_state[:, VEL]
    return float((0.5 * full_state[:, MASS, None] * vel ** 2).sum())


def relative_drift(series: np.ndarray) -> np.ndarray:
    """|q(t) - q(0)| / |q(0)| per step; vector series use the norm of the change."""
    series = np.asarray(series, dtype=float)
    if series.ndim == 1:
        diff = np.abs(series - series[0])
        ref = abs(series[0])
    else:
        diff = np.linalg.norm(series - series[0], axis=1)
        ref = np.linalg.norm(series[0])
    if ref == 0:
        return diff
    return diff / ref
