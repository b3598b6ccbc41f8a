"""
Statistic primitives shared by the test battery.

- Percentiles with the midpoint (Hazen) rule
- Empirical CDF with its support points
- OLS fits with coefficient p-values (statsmodels)
- Batched R2 over many dependent series (scikit-learn)
- Chi-square goodness of fit
- Run-length decomposition of a series
"""

from typing import Tuple

import numpy as np
import statsmodels.api as sm
from scipy import stats
from sklearn.linear_model import LinearRegression
from sklearn.metrics import r2_score


class ComputationError(ValueError):
    """A statistic could not be computed for the given inputs."""


# =============================================================================
# Probabilities
# =============================================================================

def clamp_pvalue(pval: float) -> float:
    """Clamp a p-value to [0, 1]."""
    pval = float(pval)
    if np.isnan(pval):
        raise ComputationError("p-value is undefined")
    return max(0.0, min(pval, 1.0))


def percentile(values: np.ndarray, q: float) -> float:
    """
    Percentile using midpoint interpolation.

    The i-th smallest of n values sits at 100 * (i - 0.5) / n; requests
    outside the first or last position return the minimum or maximum.
    """
    return float(np.percentile(np.asarray(values, dtype=float), q, method="hazen"))


def ecdf(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Empirical CDF of a sample.

    Returns:
        (f, x) where x starts with the minimum repeated once, followed by
        every distinct value, and f starts at 0 followed by the cumulative
        proportion at each distinct value.
    """
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ComputationError("Empirical CDF of an empty sample")

    support, counts = np.unique(values, return_counts=True)
    f = np.concatenate([[0.0], np.cumsum(counts) / values.size])
    x = np.concatenate([[support[0]], support])
    return f, x


# =============================================================================
# Regression
# =============================================================================

def fit_ols(y: np.ndarray, X: np.ndarray):
    """
    Fit y on X plus an intercept.

    Returns:
        statsmodels RegressionResults (params, pvalues, fittedvalues, ...)
    """
    y = np.asarray(y, dtype=float)
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X[:, None]

    design = sm.add_constant(X, has_constant="add")
    if np.linalg.matrix_rank(design) < design.shape[1]:
        raise ComputationError("Regressors are collinear")
    if y.shape[0] <= design.shape[1]:
        raise ComputationError(f"{y.shape[0]} observations for {design.shape[1]} coefficients")

    model = sm.OLS(y, design).fit()

    if not (np.all(np.isfinite(model.params)) and np.all(np.isfinite(model.pvalues))):
        raise ComputationError("Regression produced undefined coefficients")

    return model


def adjusted_r2(r2, n: int, k: int):
    """R2 adjusted with the (n - 1) / (n - k - 1) degrees of freedom factor."""
    if n - k - 1 <= 0:
        raise ComputationError(f"{n} observations are too few for {k} regressors")
    return 1.0 - (1.0 - r2) * ((n - 1) / (n - k - 1))


def batch_r2(X: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    R2 of regressing every column of Y on X (with intercept).

    Args:
        X: T x k regressors
        Y: T x m dependent series

    Returns:
        Array of m R2 values
    """
    X = np.asarray(X, dtype=float)
    Y = np.asarray(Y, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    if Y.ndim == 1:
        Y = Y[:, None]

    model = LinearRegression().fit(X, Y)
    return np.atleast_1d(r2_score(Y, model.predict(X), multioutput="raw_values"))


# =============================================================================
# Goodness of fit
# =============================================================================

def chi_square(empirical_p: np.ndarray, theoretical_p: np.ndarray, n: int) -> float:
    """Pearson chi-square statistic from category proportions."""
    empirical_p = np.asarray(empirical_p, dtype=float)
    theoretical_p = np.asarray(theoretical_p, dtype=float)
    return float(n * np.sum((empirical_p - theoretical_p) ** 2 / theoretical_p))


def chi_square_pvalue(statistic: float, dof: int) -> float:
    """Upper tail probability of a chi-square statistic."""
    return clamp_pvalue(stats.chi2.sf(statistic, dof))


# =============================================================================
# Runs
# =============================================================================

def run_lengths(values: np.ndarray) -> np.ndarray:
    """Lengths of the runs of identical consecutive values, in order."""
    values = np.asarray(values)
    if values.size == 0:
        return np.zeros(0, dtype=int)

    breaks = np.flatnonzero(np.diff(values) != 0) + 1
    bounds = np.concatenate([[0], breaks, [values.size]])
    return np.diff(bounds)
