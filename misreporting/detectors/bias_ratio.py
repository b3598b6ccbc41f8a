"""
Bias Ratio Test

Managers reluctant to report small losses produce too many returns just
above zero relative to just below it. The ratio of returns in [0, sigma] to
returns in [-sigma, 0) is compared to its distribution over null paths.
"""

import numpy as np

from ..config import Thresholds, ScreenParameters
from ..stats import ComputationError, clamp_pvalue
from .results import BiasRatioData, ScreenVerdict


def bias_ratios(returns: np.ndarray) -> np.ndarray:
    """
    Bias ratio of each column.

    Columns with no return in [-sigma, 0) give inf (or nan when the
    numerator is also empty).
    """
    returns = np.asarray(returns, dtype=float)
    if returns.ndim == 1:
        returns = returns[:, None]

    upper = returns.std(axis=0, ddof=1)
    lower = -upper

    above = np.sum((returns >= 0) & (returns <= upper), axis=0)
    below = np.sum((returns >= lower) & (returns < 0), axis=0)

    with np.errstate(divide="ignore", invalid="ignore"):
        return above / below


class BiasRatioDetector:
    """
    Usage:
        detector = BiasRatioDetector(params)
        verdict = detector.detect("Fund A", returns, null)
    """

    NAME = "Bias Ratio"

    def __init__(self, params: ScreenParameters):
        self.params = params

    def detect(self, entity: str, returns: np.ndarray, null: np.ndarray) -> ScreenVerdict:
        a = self.params.a

        bias_ratio = float(bias_ratios(returns)[0])
        if not np.isfinite(bias_ratio):
            raise ComputationError(f"No returns of {entity} in [-sigma, 0), bias ratio is undefined")

        h0 = bias_ratios(null)
        pval = clamp_pvalue(np.sum(h0 >= (bias_ratio - Thresholds.BIAS_RATIO_TOLERANCE)) / h0.size)

        data = BiasRatioData(
            bias_ratio=bias_ratio,
            h0=h0,
            pval=pval,
            fail=bool(bias_ratio >= Thresholds.BIAS_RATIO_MIN and pval < a),
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
