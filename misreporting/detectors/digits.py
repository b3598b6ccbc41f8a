"""
Digits Conformity Test

Invented numbers rarely follow the digit laws of real data:
1. First digit: Benford's Law, P(d) = log10(1 + 1/d), chi-square with 8 df
2. Last digit: uniform over 0-9, chi-square with 9 df

Returns are truncated to `decimals` places and read as integers.
"""

import numpy as np

from ..config import ScreenParameters
from ..stats import ComputationError, chi_square, chi_square_pvalue
from .results import DigitsData, ScreenVerdict


# Benford's Law expected frequencies for first digit
BENFORD_EXPECTED = np.log10(1 + 1 / np.arange(1, 10))

# Uniform expected frequencies for last digit
UNIFORM_EXPECTED = np.full(10, 0.1)


def truncate_returns(returns: np.ndarray, decimals: int) -> np.ndarray:
    """Absolute returns scaled by 10^decimals and truncated to integers."""
    return np.floor(np.abs(np.asarray(returns, dtype=float)) * (10 ** decimals)).astype(np.int64)


def first_digits(values: np.ndarray) -> np.ndarray:
    """Leading digit of each positive integer."""
    return np.array([int(str(v)[0]) for v in values], dtype=int)


def benford_test(values: np.ndarray):
    """
    Chi-square test of leading digits against Benford's Law.

    Args:
        values: Integers >= 1

    Returns:
        (empirical proportions of digits 1-9, chi-square, p-value)
    """
    n = len(values)
    if n == 0:
        raise ComputationError("No values to test against Benford's Law")

    counts = np.bincount(first_digits(values), minlength=10)[1:10]
    empirical = counts / n
    chi2 = chi_square(empirical, BENFORD_EXPECTED, n)
    return empirical, chi2, chi_square_pvalue(chi2, 8)


def last_digit_test(values: np.ndarray):
    """
    Chi-square test of last digits against the uniform distribution.

    Args:
        values: Integers >= 10

    Returns:
        (empirical proportions of digits 0-9, chi-square, p-value)
    """
    n = len(values)
    if n == 0:
        raise ComputationError("No values to test for last digit uniformity")

    counts = np.bincount(np.asarray(values) % 10, minlength=10)
    empirical = counts / n
    chi2 = chi_square(empirical, UNIFORM_EXPECTED, n)
    return empirical, chi2, chi_square_pvalue(chi2, 9)


class DigitsDetector:
    """
    Usage:
        detector = DigitsDetector(params)
        verdict = detector.detect("Fund A", returns)
    """

    NAME = "Digits Conformity"

    def __init__(self, params: ScreenParameters):
        self.params = params

    def detect(self, entity: str, returns: np.ndarray) -> ScreenVerdict:
        a = self.params.a
        values = truncate_returns(returns, self.params.decimals)

        fst_emp_p, fst_chi2, fst_pval = benford_test(values[values >= 1])
        lst_emp_p, lst_chi2, lst_pval = last_digit_test(values[values >= 10])

        data = DigitsData(
            fst_fail=bool(fst_pval < a),
            fst_chi2=fst_chi2,
            fst_emp_p=fst_emp_p,
            fst_the_p=BENFORD_EXPECTED.copy(),
            fst_pval=fst_pval,
            lst_fail=bool(lst_pval < a),
            lst_chi2=lst_chi2,
            lst_emp_p=lst_emp_p,
            lst_the_p=UNIFORM_EXPECTED.copy(),
            lst_pval=lst_pval,
        )
        return ScreenVerdict(name=self.NAME, params=self.params, entity=entity, data=data)
