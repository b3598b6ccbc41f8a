"""Shared test fixtures."""

import numpy as np
import pandas as pd
import pytest

from misreporting import Dataset, ScreenParameters
from misreporting.simulation import simulate_null


FACTOR_NAMES = ["Market", "Size", "Value", "Momentum"]


def make_dataset(seed: int, t: int = 252, n: int = 3, noise: float = 0.005, groups=None) -> Dataset:
    """Entities whose returns are factor combinations plus small Gaussian noise."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2000-01-01", periods=t, freq="MS")

    factors = pd.DataFrame(
        rng.normal(0.005, 0.03, size=(t, len(FACTOR_NAMES))),
        index=dates,
        columns=FACTOR_NAMES,
    )
    betas = rng.uniform(0.5, 1.0, size=(len(FACTOR_NAMES), n))
    returns = pd.DataFrame(
        factors.to_numpy() @ betas + rng.normal(0, noise, size=(t, n)),
        index=dates,
        columns=[f"Fund {chr(ord('A') + j)}" for j in range(n)],
    )
    return Dataset(dates=dates, returns=returns, style_factors=factors, groups=groups)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def params() -> ScreenParameters:
    """Default significance with the smallest allowed simulation count."""
    return ScreenParameters(a=0.10, simulations=1000)


@pytest.fixture
def dates() -> pd.DatetimeIndex:
    """21 years of monthly dates."""
    return pd.date_range("2000-01-01", periods=252, freq="MS")


@pytest.fixture
def dataset() -> Dataset:
    return make_dataset(seed=7)


def simulate(returns: np.ndarray, simulations: int = 1000, seed: int = 0) -> np.ndarray:
    """Null matrix for a series, as the battery would build it."""
    return simulate_null(returns, simulations, np.random.default_rng(seed))
