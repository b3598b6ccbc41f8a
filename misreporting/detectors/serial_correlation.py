"""
Serial Correlation Test

Smoothed (stale or managed) returns show positive autocorrelation. The
conditional model isolates smoothing that only happens when the fund's
factor-explained performance is below average, i.e. when losses would
otherwise be reported.
"""

import numpy as np

from ..config import ScreenParameters
from ..stats import clamp_pvalue, fit_ols
from .results import ScreenVerdict, SerialCorrelationData


class SerialCorrelationDetector:
    """
    Unconditional and conditional lag-one regressions.

    Usage:
        detector = SerialCorrelationDetector(params)
        verdict = detector.detect("Fund A", returns, fitted)
    """

    NAME = "Serial Correlation"

    def __init__(self, params: ScreenParameters):
        self.params = params

    def detect(self, entity: str, returns: np.ndarray, fitted: np.ndarray) -> ScreenVerdict:
        """
        Args:
            entity: Entity name
            returns: Observed returns (length T)
            fitted: Fitted returns of the Low Correlation Max R2 model (length T)
        """
        a = self.params.a
        returns = np.asarray(returns, dtype=float)
        fitted = np.asarray(fitted, dtype=float)

        y = returns[1:]
        x1 = returns[:-1]
        # Lagged return, kept only where the lagged fitted return is not above its mean
        x2 = (1 - (fitted[:-1] > fitted.mean())) * x1

        conditional_model = fit_ols(y, np.column_stack([x1, x2]))
        b_conditional = conditional_model.params[2]
        pval_conditional = clamp_pvalue(conditional_model.pvalues[2])

        unconditional_model = fit_ols(y, x1)
        b_unconditional = unconditional_model.params[1]
        pval_unconditional = clamp_pvalue(unconditional_model.pvalues[1])

        data = SerialCorrelationData(
            conditional_failure=bool(b_conditional > 0 and pval_conditional < a),
            conditional_model=conditional_model,
            conditional_pval=pval_conditional,
            unconditional_failure=bool(b_unconditional > 0 and pval_unconditional < a),
            unconditional_model=unconditional_model,
            unconditional_pval=pval_unconditional,
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
