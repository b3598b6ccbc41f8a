"""
Data Quality Test

Five signatures of fabricated or carelessly maintained return series, each
compared to the entity's own null paths (all rounded to 2 decimals):

1. Negative returns: too few (below the a percentile)
2. Pairs of adjacent identical returns: too many (above the 1 - a percentile)
3. Longest run of identical returns: too long (above the 1 - a percentile)
4. Distinct returns: too few (below the a percentile)
5. Zero returns: too many (above the 1 - a percentile)
"""

from typing import Optional

import numpy as np

from ..config import Thresholds, ScreenParameters
from ..stats import ecdf, percentile, run_lengths
from .results import DataQualityData, ScreenVerdict


# =============================================================================
# Column statistics
# =============================================================================

def adjacent_pairs(values: np.ndarray) -> np.ndarray:
    """Identical adjacent pairs per column: sum over runs of (length - 1)."""
    values = np.asarray(values)
    return np.sum(np.diff(values, axis=0) == 0, axis=0)


def longest_run(values: np.ndarray) -> int:
    """Adjacent identical pairs inside the longest run (0 when no value repeats)."""
    lengths = run_lengths(values)
    return int(lengths.max() - 1) if lengths.size else 0


def distinct_counts(values: np.ndarray) -> np.ndarray:
    """Number of distinct values per column."""
    ordered = np.sort(np.asarray(values), axis=0)
    return 1 + np.sum(np.diff(ordered, axis=0) != 0, axis=0)


def _support_cdf(h0: np.ndarray, survival: bool = False):
    """Empirical CDF of a null count sample with its first point lowered by one."""
    f, x = ecdf(h0)
    if survival:
        f = 1 - f
    x[0] = max(0.0, x[0] - 1)
    return f, x


def _lookup(f: np.ndarray, x: np.ndarray, value: float) -> Optional[float]:
    """CDF value at a support point, None when `value` is not in the support."""
    hits = np.flatnonzero(x == value)
    return float(f[hits[-1]]) if hits.size else None


def _position(x: np.ndarray, value: float) -> Optional[int]:
    hits = np.flatnonzero(x == value)
    return int(hits[-1]) if hits.size else None


class DataQualityDetector:
    """
    Usage:
        detector = DataQualityDetector(params)
        verdict = detector.detect("Fund A", returns, null)
    """

    NAME = "Data Quality"

    def __init__(self, params: ScreenParameters):
        self.params = params

    def detect(self, entity: str, returns: np.ndarray, null: np.ndarray) -> ScreenVerdict:
        a = self.params.a
        r = np.round(np.asarray(returns, dtype=float), Thresholds.DATA_QUALITY_DECIMALS)
        h0 = np.round(np.asarray(null, dtype=float), Thresholds.DATA_QUALITY_DECIMALS)

        # 1. Negative returns
        neg_val = int(np.sum(r < 0))
        neg_h0 = np.sum(h0 < 0, axis=0)
        neg_test = percentile(neg_h0, a * 100)
        neg_prob_f, neg_prob_x = _support_cdf(neg_h0)

        # 2. Adjacent identical pairs
        pai_val = int(adjacent_pairs(r))
        pai_h0 = adjacent_pairs(h0)
        pai_test = percentile(pai_h0, (1 - a) * 100)

        # 3. Longest run
        str_val = longest_run(r)
        str_h0 = np.array([longest_run(h0[:, i]) for i in range(h0.shape[1])])
        str_test = percentile(str_h0, (1 - a) * 100)

        # 4. Distinct values
        uni_val = int(np.unique(r).size)
        uni_h0 = distinct_counts(h0)
        uni_test = percentile(uni_h0, a * 100)

        # 5. Zero returns
        zer_val = int(np.sum(r == 0))
        zer_h0 = np.sum(h0 == 0, axis=0)
        zer_test = percentile(zer_h0, (1 - a) * 100)
        zer_prob_f, zer_prob_x = _support_cdf(zer_h0, survival=True)

        data = DataQualityData(
            neg_fail=bool(neg_val < neg_test),
            neg_val=neg_val,
            neg_h0=neg_h0,
            neg_test=neg_test,
            neg_prob_f=neg_prob_f,
            neg_prob_x=neg_prob_x,
            neg_cv=_lookup(neg_prob_f, neg_prob_x, neg_test),
            neg_vi=_position(neg_prob_x, neg_val),
            pai_fail=bool(pai_val > pai_test),
            pai_val=pai_val,
            pai_h0=pai_h0,
            pai_test=pai_test,
            str_fail=bool(str_val > str_test),
            str_val=str_val,
            str_h0=str_h0,
            str_test=str_test,
            uni_fail=bool(uni_val < uni_test),
            uni_val=uni_val,
            uni_h0=uni_h0,
            uni_test=uni_test,
            zer_fail=bool(zer_val > zer_test),
            zer_val=zer_val,
            zer_h0=zer_h0,
            zer_test=zer_test,
            zer_prob_f=zer_prob_f,
            zer_prob_x=zer_prob_x,
            zer_cv=_lookup(zer_prob_f, zer_prob_x, zer_test),
            zer_vi=_position(zer_prob_x, zer_val),
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
