"""
Null hypothesis simulation.

Each entity is compared against synthetic return paths drawn from a normal
distribution with the entity's own sample mean and standard deviation.
"""

from typing import List, Optional, Union

import numpy as np

from .config import NULL_DECIMALS


def simulate_null(
    returns: np.ndarray,
    simulations: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Simulate a T x S matrix of returns under the normal null.

    Args:
        returns: Observed returns of one entity (length T)
        simulations: Number of simulated paths (S)
        rng: Random generator owned by this entity

    Returns:
        Simulated returns rounded to 4 decimals
    """
    returns = np.asarray(returns, dtype=float)
    mu = returns.mean()
    sigma = returns.std(ddof=1)

    draws = rng.normal(mu, sigma, size=(returns.shape[0], simulations))
    return np.round(draws, NULL_DECIMALS)


def entity_generators(
    random_state: Optional[Union[int, np.random.SeedSequence]],
    n: int,
) -> List[np.random.Generator]:
    """
    Spawn one independent generator per entity.

    Seeding through a SeedSequence keeps each entity's draws independent of
    how many entities run before it or in parallel with it.
    None draws fresh entropy from the OS.
    """
    if isinstance(random_state, np.random.SeedSequence):
        seq = random_state
    else:
        seq = np.random.SeedSequence(random_state)
    return [np.random.default_rng(child) for child in seq.spawn(n)]
