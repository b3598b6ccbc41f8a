"""
Discontinuity at Zero Test

Avoiding small losses leaves a kink in the return histogram: the bin just
below zero is thinner than its neighbours. The count of that bin is compared
to the mean of the adjacent bins with a binomial approximation.
"""

import numpy as np
from scipy import stats

from ..config import Thresholds, ScreenParameters
from ..stats import ComputationError, clamp_pvalue
from .results import DiscontinuityData, ScreenVerdict


def zero_aligned_histogram(returns: np.ndarray, width: float):
    """
    Histogram with fixed-width bins whose edges are multiples of `width`.

    Returns:
        (counts, edges, index of the zero edge)
    """
    returns = np.asarray(returns, dtype=float)
    lo = int(np.floor(returns.min() / width))
    hi = int(np.ceil(returns.max() / width))
    # Division can round across an edge; the extreme values must stay inside
    if lo * width > returns.min():
        lo -= 1
    if hi * width < returns.max():
        hi += 1
    if hi == lo:
        hi = lo + 1

    edges = np.arange(lo, hi + 1) * width
    counts, _ = np.histogram(returns, bins=edges)
    return counts, edges, -lo


class DiscontinuityDetector:
    """
    Usage:
        detector = DiscontinuityDetector(params)
        verdict = detector.detect("Fund A", returns)
    """

    NAME = "Discontinuity At Zero"

    def __init__(self, params: ScreenParameters):
        self.params = params

    def detect(self, entity: str, returns: np.ndarray) -> ScreenVerdict:
        a = self.params.a
        returns = np.asarray(returns, dtype=float)
        t = returns.shape[0]

        bins, edges, idx_z = zero_aligned_histogram(returns, Thresholds.KINK_BIN_WIDTH)
        if idx_z < 2 or idx_z >= bins.size:
            raise ComputationError("Returns do not span two bins below zero and one above")

        x1 = bins[idx_z - 2]
        x2 = float(bins[idx_z - 1])
        x3 = bins[idx_z]
        p1 = x1 / t
        p2 = x2 / t
        p3 = x3 / t

        # Continuity correction for a thin bin
        if t * p2 * (1 - p2) < Thresholds.KINK_CONTINUITY_VARIANCE:
            x2 -= 0.5
            p2 = x2 / t

        diff = x2 - (x1 + x3) / 2
        diff_var = (
            t * p2 * (1 - p2)
            + 0.25 * t * (p1 + p3) * (1 - p1 - p3)
            + t * p2 * (p1 + p3)
        )
        if diff_var <= 0:
            raise ComputationError("Variance of the bin difference is not positive")

        z = diff / np.sqrt(diff_var)
        pval = clamp_pvalue(2 * stats.norm.cdf(z))

        data = DiscontinuityData(
            bins=bins,
            edges=edges,
            idx_z=idx_z,
            diff=float(diff),
            diff_var=float(diff_var),
            z_score=float(z),
            pval=pval,
            fail=bool(diff < 0 and pval < a),
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
