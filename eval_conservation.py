"""
Conservation check: how well do merges and explosions keep the books?

Runs seeded random populations and tracks, per tick:
  - total mass (exact under merges, loses EXPLOSION_MASS_LOSS per explosion)
  - total momentum (exact under merges; explosions add radial momentum)
  - body count
"""
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import os
import gravsim as P
from gravsim.engine import generate_trajectory, WorldConfig
from gravsim.metrics import relative_drift
from gravsim.logging_config import setup_logging


def evaluate(n_steps=P.N_STEPS, n_bodies=40, seed=P.SEED):
    config = WorldConfig(G=0.1, seed=seed)
    print(f"Running {n_bodies} bodies for {n_steps} ticks (seed={seed})")
    traj = generate_trajectory(config, n_steps=n_steps, n_bodies=n_bodies)

    n_explosions = int(traj['explosions'].sum())
    expected_loss = n_explosions * config.explosion_mass_loss
    mass_error = abs(traj['mass'][0] - traj['mass'][-1] - expected_loss)

    print(f"Merges:      {int(traj['merges'].sum())}")
    print(f"Explosions:  {n_explosions}")
    print(f"Bodies:      {traj['body_count'][0]} -> {traj['body_count'][-1]}")
    print(f"Mass error (after explosion losses): {mass_error:.3e}")

    quiet = traj['explosions'] == 0
    if quiet.all():
        drift = relative_drift(traj['momentum'])
        print(f"Max momentum drift: {drift.max():.3e}")

    os.makedirs('results/plots', exist_ok=True)

    fig, axes = plt.subplots(3, 1, figsize=(10, 9), sharex=True)
    axes[0].plot(traj['mass'], color='black')
    axes[0].set_ylabel('Total mass')
    axes[1].plot(np.linalg.norm(traj['momentum'], axis=1), color='tab:blue')
    axes[1].set_ylabel('|Momentum|')
    axes[2].plot(traj['body_count'], color='tab:red')
    axes[2].set_ylabel('Bodies')
    axes[2].set_xlabel('Tick')
    for t in np.nonzero(traj['explosions'])[0]:
        for ax in axes:
            ax.axvline(t, color='orange', alpha=0.3)
    fig.suptitle('Conservation under merges and explosions')
    fig.savefig('results/plots/conservation.png')
    plt.close(fig)

    print("Plots saved to results/plots/")
    return traj


if __name__ == "__main__":
    setup_logging(level="WARNING")
    evaluate()
