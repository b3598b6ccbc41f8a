"""
Low Correlation Test

Misreported returns tend to be implausibly unrelated to the returns of
comparable funds and to common style factors. Two sub-checks:

1. Index R2: regress the fund on the equal-weighted index of its peer group.
   Fails if the slope is not significant.
2. Max R2: find the combination of style factors with the highest adjusted
   R2 and compare it to the same statistic computed on null return paths.
   Fails if the fund's best fit is worse than the (1 - a) null percentile.

With the switching option the Max R2 search allows one change of factor
combination at a change point located by a Quandt-style F statistic.
"""

from itertools import combinations
from typing import List, Tuple

import numpy as np
import pandas as pd

from ..config import CHANGE_POINT_TRIM, NULL_SUBSAMPLE, ScreenParameters
from ..stats import ComputationError, adjusted_r2, batch_r2, clamp_pvalue, fit_ols, percentile
from .results import LowCorrelationData, ScreenVerdict


class LowCorrelationDetector:
    """
    Index R2 and Max R2 screens for one entity at a time.

    Usage:
        detector = LowCorrelationDetector(params, style_factors, dates)
        verdict, fitted = detector.detect("Fund A", returns, null, peers, rng)
    """

    NAME = "Low Correlation"

    def __init__(
        self,
        params: ScreenParameters,
        style_factors: pd.DataFrame,
        dates: pd.DatetimeIndex,
    ):
        """
        Args:
            params: Run parameters
            style_factors: T x K style factor returns
            dates: Observation dates (length T)
        """
        self.params = params.clamp_to(style_factors.shape[1])
        self.factors = style_factors.to_numpy(dtype=float)
        self.factor_names = [str(c) for c in style_factors.columns]
        self.dates = pd.DatetimeIndex(dates)
        self.combinations = list(combinations(range(self.factors.shape[1]), self.params.style_factors_max))

    def detect(
        self,
        entity: str,
        returns: np.ndarray,
        null: np.ndarray,
        peers: pd.DataFrame,
        rng: np.random.Generator,
    ) -> Tuple[ScreenVerdict, np.ndarray]:
        """
        Run both sub-checks.

        Args:
            entity: Entity name
            returns: Observed returns (length T)
            null: T x S simulated returns
            peers: T x P returns of the entity's peer group
            rng: Generator used to subsample the null paths

        Returns:
            (verdict, fitted values of the winning Max R2 model)
        """
        a = self.params.a
        returns = np.asarray(returns, dtype=float)
        n = returns.shape[0]
        k = self.params.style_factors_max

        if null.shape[1] < NULL_SUBSAMPLE:
            raise ComputationError(f"{NULL_SUBSAMPLE} null paths required, got {null.shape[1]}")
        null_sample = null[:, rng.choice(null.shape[1], NULL_SUBSAMPLE, replace=False)]

        # Index R2
        if peers.shape[1] == 0:
            raise ComputationError(f"No peers in the group of {entity}")
        idx_ewi = peers.mean(axis=1)
        idx_model = fit_ols(returns, idx_ewi.to_numpy(dtype=float))
        idx_pval = clamp_pvalue(idx_model.pvalues[1])

        # Max R2
        if self.params.r2_switch:
            split = self._change_point(returns)
            candidates = self._switching_candidates(split)
            max_cp = self.dates[split]
        else:
            candidates = self._fixed_candidates()
            max_cp = None

        r2s = np.array([adjusted_r2(batch_r2(X, returns)[0], n, k) for _, X in candidates])
        best = int(np.argmax(r2s))
        max_val = float(r2s[best])
        max_comb, max_X = candidates[best]
        max_model = fit_ols(returns, max_X)

        max_h0 = np.full(NULL_SUBSAMPLE, -np.inf)
        for _, X in candidates:
            max_h0 = np.maximum(max_h0, adjusted_r2(batch_r2(X, null_sample), n, k))
        max_test = percentile(max_h0, (1 - a) * 100)

        idx_fail = bool(idx_pval >= a)
        max_fail = bool(max_val < max_test)

        data = LowCorrelationData(
            idx_fail=idx_fail,
            idx_ewi=idx_ewi,
            idx_model=idx_model,
            idx_pval=idx_pval,
            max_fail=max_fail,
            max_comb=max_comb,
            max_cp=max_cp,
            max_h0=max_h0,
            max_model=max_model,
            max_test=max_test,
            max_val=max_val,
        )
        verdict = ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)

        return verdict, np.asarray(max_model.fittedvalues, dtype=float)

    def _label(self, combo) -> str:
        return " + ".join(self.factor_names[i] for i in combo)

    def _fixed_candidates(self) -> List[Tuple[str, np.ndarray]]:
        return [(self._label(c), self.factors[:, list(c)]) for c in self.combinations]

    def _switching_candidates(self, split: int) -> List[Tuple[str, np.ndarray]]:
        """Spliced regressors: combination i before the change point, j from it onward."""
        if len(self.combinations) < 2:
            raise ComputationError("Switching requires at least two factor combinations")

        candidates = []
        for i, before in enumerate(self.combinations):
            for j, after in enumerate(self.combinations):
                if i == j:
                    continue
                X = np.vstack([self.factors[:split, list(before)], self.factors[split:, list(after)]])
                candidates.append((f"{self._label(before)} > {self._label(after)}", X))
        return candidates

    def _change_point(self, returns: np.ndarray) -> int:
        """
        Number of observations in the first regime.

        Only splits between the 10th and 90th percentile of the sample are
        searched; the one maximizing the F statistic of a two-segment mean
        model against a single mean wins (first one on ties).
        """
        n = returns.shape[0]
        trim = int(np.floor(CHANGE_POINT_TRIM * n))
        if trim < 1:
            raise ComputationError(f"{n} observations are too few to search a change point")

        ess = np.sum((returns - returns.mean()) ** 2)
        splits = np.arange(trim, n - trim + 1)
        f = np.empty(splits.size)

        with np.errstate(divide="ignore", invalid="ignore"):
            for i, split in enumerate(splits):
                before = returns[:split]
                after = returns[split:]
                uss = np.sum((before - before.mean()) ** 2) + np.sum((after - after.mean()) ** 2)
                f[i] = (ess - uss) / (uss / (n - 2))

        if np.all(np.isnan(f)):
            raise ComputationError("Change point statistic is undefined")
        return int(splits[np.nanargmax(f)])
