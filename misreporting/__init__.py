"""
Detection of misreported returns.

Runs a battery of seven Monte Carlo backed hypothesis tests on the return
series of each entity (fund) in a dataset and aggregates the failures into
an anomaly score.

Usage:
    from misreporting import Dataset, execute_tests

    data = Dataset(dates=dates, returns=returns, style_factors=factors, groups=groups)
    run = execute_tests(data, a=0.05, simulations=10000)
    print(run.summary)
"""

from .battery import BatteryResult, execute_tests
from .config import ScreenParameters
from .dataset import Dataset
from .detectors import ComputationError, ScreenError, ScreenVerdict

__all__ = [
    "BatteryResult",
    "execute_tests",
    "ScreenParameters",
    "Dataset",
    "ComputationError",
    "ScreenError",
    "ScreenVerdict",
]
