"""Tests for the Low Correlation and Serial Correlation screens."""

import numpy as np
import pandas as pd
import pytest

from misreporting import ScreenParameters
from misreporting.detectors import (
    ComputationError,
    LowCorrelationDetector,
    SerialCorrelationDetector,
)

from conftest import simulate


@pytest.fixture
def series(rng):
    """Fund returns with a closely related peer and two candidate factors."""
    t = 120
    dates = pd.date_range("2005-01-01", periods=t, freq="MS")
    returns = rng.normal(0.005, 0.03, t)

    factors = pd.DataFrame({
        "Linear": 2.0 * returns + 0.01 + rng.normal(0, 1e-5, t),
        "Noise": rng.normal(0.0, 0.03, t),
    }, index=dates)
    peers = pd.DataFrame({"Peer": returns + rng.normal(0, 0.005, t)}, index=dates)

    return dates, returns, factors, peers


class TestLowCorrelationFixed:
    """Fixed-mode Max R2 search."""

    def test_selects_linear_factor(self, series):
        dates, returns, factors, peers = series
        params = ScreenParameters(simulations=1000, style_factors_max=1)
        detector = LowCorrelationDetector(params, factors, dates)

        verdict, fitted = detector.detect("Fund", returns, simulate(returns), peers, np.random.default_rng(1))

        assert verdict.data.max_comb == "Linear"
        assert verdict.data.max_val > 0.999
        assert verdict.data.max_cp is None
        assert verdict.data.idx_fail is False
        assert verdict.data.max_fail is False
        assert verdict.failure is False
        assert verdict.failure_coefficient == 0.0
        np.testing.assert_allclose(fitted, returns, atol=1e-4)

    def test_null_sample_and_threshold(self, series):
        dates, returns, factors, peers = series
        params = ScreenParameters(simulations=1000, style_factors_max=1)
        detector = LowCorrelationDetector(params, factors, dates)

        verdict, _ = detector.detect("Fund", returns, simulate(returns), peers, np.random.default_rng(1))

        assert verdict.flags == 2
        assert verdict.data.max_h0.shape == (100,)
        assert verdict.data.max_test < 0.5
        assert 0.0 <= verdict.data.idx_pval <= 1.0

    def test_unrelated_fund_fails_max_check(self, series, rng):
        dates, _, factors, peers = series
        returns = rng.normal(0.005, 0.03, len(dates))
        params = ScreenParameters(a=0.10, simulations=1000, style_factors_max=1)
        detector = LowCorrelationDetector(params, factors[["Noise"]].assign(Other=rng.normal(0, 0.03, len(dates))), dates)

        verdict, _ = detector.detect("Fund", returns, simulate(returns), peers, np.random.default_rng(1))

        # An unrelated fund cannot beat null paths on factors it does not load on
        assert verdict.data.max_val < 0.2
        assert verdict.data.idx_fail == (verdict.data.idx_pval >= 0.10)
        assert verdict.failure_coefficient == (verdict.data.idx_fail + verdict.data.max_fail) / 2

    def test_combination_labels(self, dates, rng):
        factors = pd.DataFrame(rng.normal(0, 0.03, (len(dates), 3)), index=dates, columns=["A", "B", "C"])
        returns = factors.to_numpy() @ [0.2, 0.5, 0.8] + rng.normal(0, 0.001, len(dates))
        peers = pd.DataFrame({"Peer": returns + rng.normal(0, 0.01, len(dates))}, index=dates)
        params = ScreenParameters(simulations=1000, style_factors_max=3)

        verdict, _ = LowCorrelationDetector(params, factors, dates).detect(
            "Fund", returns, simulate(returns), peers, np.random.default_rng(2)
        )
        assert verdict.data.max_comb == "A + B + C"

    def test_style_factors_capped_at_available(self, series):
        dates, _, factors, _ = series
        detector = LowCorrelationDetector(ScreenParameters(style_factors_max=3), factors, dates)
        assert detector.params.style_factors_max == 2
        assert detector.combinations == [(0, 1)]

    def test_no_peers(self, series):
        dates, returns, factors, peers = series
        detector = LowCorrelationDetector(ScreenParameters(simulations=1000, style_factors_max=1), factors, dates)

        with pytest.raises(ComputationError):
            detector.detect("Fund", returns, simulate(returns), peers.iloc[:, :0], np.random.default_rng(1))


class TestLowCorrelationSwitching:
    """Switching-mode Max R2 search with a change point."""

    def test_finds_change_point_and_order(self, rng):
        t = 120
        dates = pd.date_range("2005-01-01", periods=t, freq="MS")
        factors = pd.DataFrame({
            "A": rng.normal(0.0, 0.02, t),
            "B": rng.normal(0.0, 0.02, t),
        }, index=dates)

        returns = np.concatenate([
            factors["A"].to_numpy()[:60] + 0.05,
            factors["B"].to_numpy()[60:] - 0.05,
        ])
        peers = pd.DataFrame({"Peer": returns + rng.normal(0, 0.01, t)}, index=dates)
        params = ScreenParameters(simulations=1000, style_factors_max=1, r2_switch=True)

        verdict, fitted = LowCorrelationDetector(params, factors, dates).detect(
            "Fund", returns, simulate(returns), peers, np.random.default_rng(3)
        )

        assert verdict.data.max_cp == dates[60]
        assert verdict.data.max_comb == "A > B"
        assert fitted.shape == (t,)

    def test_requires_two_combinations(self, series):
        dates, returns, factors, peers = series
        params = ScreenParameters(simulations=1000, style_factors_max=2, r2_switch=True)
        detector = LowCorrelationDetector(params, factors, dates)

        with pytest.raises(ComputationError):
            detector.detect("Fund", returns, simulate(returns), peers, np.random.default_rng(1))


class TestSerialCorrelation:
    """Unconditional and conditional smoothing regressions."""

    @staticmethod
    def ar1(rng, phi, t=240):
        e = rng.normal(0, 0.02, t)
        r = np.zeros(t)
        for i in range(1, t):
            r[i] = phi * r[i - 1] + e[i]
        return r

    def test_smoothed_returns_fail(self, params, rng):
        returns = self.ar1(rng, 0.7)
        fitted = rng.normal(0, 0.02, returns.size)

        verdict = SerialCorrelationDetector(params).detect("Fund", returns, fitted)

        assert verdict.data.unconditional_failure is True
        assert verdict.failure is True
        assert verdict.flags == 2
        assert verdict.failure_coefficient in (0.5, 1.0)

    def test_negative_autocorrelation_passes_unconditional(self, params, rng):
        returns = self.ar1(rng, -0.7)
        fitted = rng.normal(0, 0.02, returns.size)

        verdict = SerialCorrelationDetector(params).detect("Fund", returns, fitted)

        assert verdict.data.unconditional_failure is False
        assert verdict.data.unconditional_model.params[1] < 0

    def test_models_are_kept(self, params, rng):
        returns = rng.normal(0, 0.02, 100)
        verdict = SerialCorrelationDetector(params).detect("Fund", returns, rng.normal(0, 0.02, 100))

        assert len(verdict.data.unconditional_model.params) == 2
        assert len(verdict.data.conditional_model.params) == 3

    def test_pvalues_are_kept_and_bounded(self, params, rng):
        returns = self.ar1(rng, 0.7)
        verdict = SerialCorrelationDetector(params).detect("Fund", returns, rng.normal(0, 0.02, returns.size))
        data = verdict.data

        assert data.unconditional_pval == pytest.approx(float(data.unconditional_model.pvalues[1]))
        assert data.conditional_pval == pytest.approx(float(data.conditional_model.pvalues[2]))
        for pval in (data.unconditional_pval, data.conditional_pval):
            assert isinstance(pval, float)
            assert 0.0 <= pval <= 1.0
        assert data.unconditional_failure == (data.unconditional_pval < params.a)

    def test_constant_fitted_returns_are_degenerate(self, params, rng):
        returns = rng.normal(0, 0.02, 100)
        with pytest.raises(ComputationError):
            SerialCorrelationDetector(params).detect("Fund", returns, np.full(100, 0.01))
