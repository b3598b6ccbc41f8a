"""
Result types of the test battery.

Every test produces a ScreenVerdict: a common envelope (test name, number of
sub-checks, parameters, entity) around a test-specific payload. The payload
lists its sub-check outcomes in `failures`; the verdict's failure flag and
failure coefficient are derived from them.

A test that cannot be computed for an entity yields a ScreenError instead,
which carries no failure flag at all.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import ScreenParameters
from ..stats import ComputationError


@dataclass
class ScreenVerdict:
    """Outcome of one test for one entity."""
    name: str
    params: ScreenParameters
    entity: str
    data: Any

    @property
    def flags(self) -> int:
        """Number of independent sub-checks."""
        return len(self.data.failures)

    @property
    def failure(self) -> bool:
        return any(self.data.failures)

    @property
    def failure_coefficient(self) -> float:
        """Fraction of sub-checks that failed."""
        return sum(self.data.failures) / self.flags


@dataclass
class ScreenError:
    """A test that could not be computed for one entity."""
    name: str
    entity: str
    message: str


# =============================================================================
# Payloads
# =============================================================================

@dataclass
class LowCorrelationData:
    idx_fail: bool
    idx_ewi: pd.Series                 # equal-weighted peer index
    idx_model: Any
    idx_pval: float
    max_fail: bool
    max_comb: str                      # winning factor combination
    max_cp: Optional[pd.Timestamp]     # first date of the second regime
    max_h0: np.ndarray                 # null max adjusted R2 sample
    max_model: Any
    max_test: float                    # (1 - a) percentile of max_h0
    max_val: float                     # observed max adjusted R2

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.idx_fail, self.max_fail)


@dataclass
class SerialCorrelationData:
    conditional_failure: bool
    conditional_model: Any
    conditional_pval: float
    unconditional_failure: bool
    unconditional_model: Any
    unconditional_pval: float

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.unconditional_failure, self.conditional_failure)


@dataclass
class BiasRatioData:
    bias_ratio: float
    h0: np.ndarray
    pval: float
    fail: bool

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.fail,)


@dataclass
class DecemberSpikeData:
    dec: int                   # December observations
    dec_prc: float             # share of December observations
    frm_avg_dec: float
    frm_avg_oth: float
    frm_spr: float
    h0_prc: float              # (1 - a) percentile of h0_spr
    h0_spr: np.ndarray
    fail: bool

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.fail,)


@dataclass
class DiscontinuityData:
    bins: np.ndarray
    edges: np.ndarray
    idx_z: int                 # position of the zero edge in `edges`
    diff: float
    diff_var: float
    z_score: float
    pval: float
    fail: bool

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.fail,)


@dataclass
class DigitsData:
    fst_fail: bool
    fst_chi2: float
    fst_emp_p: np.ndarray
    fst_the_p: np.ndarray
    fst_pval: float
    lst_fail: bool
    lst_chi2: float
    lst_emp_p: np.ndarray
    lst_the_p: np.ndarray
    lst_pval: float

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.fst_fail, self.lst_fail)


@dataclass
class DataQualityData:
    neg_fail: bool
    neg_val: int
    neg_h0: np.ndarray
    neg_test: float
    neg_prob_f: np.ndarray
    neg_prob_x: np.ndarray
    neg_cv: Optional[float]
    neg_vi: Optional[int]
    pai_fail: bool
    pai_val: int
    pai_h0: np.ndarray
    pai_test: float
    str_fail: bool
    str_val: int
    str_h0: np.ndarray
    str_test: float
    uni_fail: bool
    uni_val: int
    uni_h0: np.ndarray
    uni_test: float
    zer_fail: bool
    zer_val: int
    zer_h0: np.ndarray
    zer_test: float
    zer_prob_f: np.ndarray
    zer_prob_x: np.ndarray
    zer_cv: Optional[float]
    zer_vi: Optional[int]

    @property
    def failures(self) -> Tuple[bool, ...]:
        return (self.neg_fail, self.pai_fail, self.str_fail, self.uni_fail, self.zer_fail)


__all__ = [
    "ComputationError",
    "ScreenVerdict",
    "ScreenError",
    "LowCorrelationData",
    "SerialCorrelationData",
    "BiasRatioData",
    "DecemberSpikeData",
    "DiscontinuityData",
    "DigitsData",
    "DataQualityData",
]
