"""
Configuration and constants for misreported returns detection.
"""

from dataclasses import dataclass, replace
from numbers import Integral, Real

# === Test Labels ===
TEST_NAMES = [
    "Low Correlation",
    "Serial Correlation",
    "Bias Ratio",
    "December Spike",
    "Discontinuity At Zero",
    "Digits Conformity",
    "Data Quality",
]

SUMMARY_ROWS = TEST_NAMES + ["Total"]

# === Parameter Ranges ===
A_RANGE = (0.01, 0.10)                 # significance threshold
SIMULATIONS_MIN = 1000                 # Monte Carlo draws per entity
STYLE_FACTORS_RANGE = (1, 3)           # factors per regression
DECIMALS_RANGE = (2, 6)                # digit truncation

# === Defaults ===
DEFAULT_A = 0.10
DEFAULT_SIMULATIONS = 10000
DEFAULT_STYLE_FACTORS_MAX = 3
DEFAULT_R2_SWITCH = False
DEFAULT_DECIMALS = 4

# === Null Simulation ===
NULL_DECIMALS = 4                      # rounding of simulated returns
NULL_SUBSAMPLE = 100                   # null columns used by the Max R2 search
CHANGE_POINT_TRIM = 0.10               # change points searched in [10%, 90%] of the sample


# === Thresholds ===
class Thresholds:
    # Bias ratio
    BIAS_RATIO_MIN = 2.5                  # ratio needed before the p-value matters
    BIAS_RATIO_TOLERANCE = 1e-8           # null ratios within tolerance count as ties

    # Discontinuity at zero
    KINK_BIN_WIDTH = 0.005
    KINK_CONTINUITY_VARIANCE = 25.0       # below this, apply continuity correction

    # Data quality
    DATA_QUALITY_DECIMALS = 2

    # Aggregation
    TOTAL_FAILURE = 3.5                   # out of 7


# === Random State ===
RANDOM_STATE = 42


@dataclass(frozen=True)
class ScreenParameters:
    """
    Parameters shared by every test of a run.

    Args:
        a: Significance threshold (0.01-0.10)
        simulations: Number of Monte Carlo simulations (>= 1000)
        style_factors_max: Style factors per regression (1-3)
        r2_switch: Search for a change point in the Max R2 regressions
        decimals: Decimal places kept by the digit tests (2-6)
    """
    a: float = DEFAULT_A
    simulations: int = DEFAULT_SIMULATIONS
    style_factors_max: int = DEFAULT_STYLE_FACTORS_MAX
    r2_switch: bool = DEFAULT_R2_SWITCH
    decimals: int = DEFAULT_DECIMALS

    def __post_init__(self):
        if isinstance(self.a, bool) or not isinstance(self.a, Real):
            raise ValueError(f"a must be a real number, got {self.a!r}")
        if not A_RANGE[0] <= float(self.a) <= A_RANGE[1]:
            raise ValueError(f"a must be in [{A_RANGE[0]}, {A_RANGE[1]}], got {self.a}")

        _check_integer("simulations", self.simulations, SIMULATIONS_MIN, None)
        _check_integer("style_factors_max", self.style_factors_max, *STYLE_FACTORS_RANGE)
        _check_integer("decimals", self.decimals, *DECIMALS_RANGE)

        if not isinstance(self.r2_switch, bool):
            raise ValueError(f"r2_switch must be a boolean, got {self.r2_switch!r}")

    def clamp_to(self, n_factors: int) -> "ScreenParameters":
        """Return parameters whose style_factors_max fits the available factors."""
        if n_factors < 1:
            raise ValueError("At least one style factor is required")
        if self.style_factors_max <= n_factors:
            return self
        return replace(self, style_factors_max=int(n_factors))


def _check_integer(name, value, low, high):
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        bounds = f"[{low}, {high}]" if high is not None else f">= {low}"
        raise ValueError(f"{name} must be {bounds}, got {value}")
