"""
December Spike Test

Year-end is the usual window for marking up positions. The spread between
the mean December return and the mean return of the other months is
compared to the (1 - a) percentile of the same spread over null paths.
"""

import numpy as np
import pandas as pd

from ..config import ScreenParameters
from ..stats import ComputationError, percentile
from .results import DecemberSpikeData, ScreenVerdict


class DecemberSpikeDetector:
    """
    Usage:
        detector = DecemberSpikeDetector(params, dates)
        verdict = detector.detect("Fund A", returns, null)
    """

    NAME = "December Spike"

    def __init__(self, params: ScreenParameters, dates: pd.DatetimeIndex):
        self.params = params
        self.december = np.asarray(pd.DatetimeIndex(dates).month == 12)

    def detect(self, entity: str, returns: np.ndarray, null: np.ndarray) -> ScreenVerdict:
        a = self.params.a
        december = self.december
        n_december = int(december.sum())

        if n_december == 0 or n_december == december.size:
            raise ComputationError("December spike needs both December and other observations")

        returns = np.asarray(returns, dtype=float)
        avg_december = float(returns[december].mean())
        avg_other = float(returns[~december].mean())
        spread = avg_december - avg_other

        h0_spreads = null[december, :].mean(axis=0) - null[~december, :].mean(axis=0)
        h0_threshold = percentile(h0_spreads, (1 - a) * 100)

        data = DecemberSpikeData(
            dec=n_december,
            dec_prc=n_december / december.size,
            frm_avg_dec=avg_december,
            frm_avg_oth=avg_other,
            frm_spr=spread,
            h0_prc=h0_threshold,
            h0_spr=h0_spreads,
            fail=bool(spread > h0_threshold),
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
