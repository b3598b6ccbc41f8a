"""End-to-end tests of the test battery."""

import numpy as np
import pandas as pd
import pytest

from misreporting import BatteryResult, ComputationError, Dataset, ScreenError, ScreenVerdict, execute_tests
from misreporting.config import TEST_NAMES

from conftest import make_dataset


def run(dataset, **kwargs):
    options = dict(a=0.01, simulations=1000, verbose=False)
    options.update(kwargs)
    return execute_tests(dataset, **options)


@pytest.fixture(scope="module")
def honest():
    return make_dataset(seed=11, t=120)


@pytest.fixture(scope="module")
def honest_run(honest):
    return run(honest, random_state=5)


class TestBattery:

    def test_grid_layout(self, honest, honest_run):
        assert isinstance(honest_run, BatteryResult)
        assert len(honest_run.results) == len(TEST_NAMES)
        for name, row in zip(TEST_NAMES, honest_run.results):
            assert len(row) == honest.n
            for entity, cell in zip(honest.names, row):
                assert cell.name == name
                assert cell.entity == entity

    def test_honest_funds_pass_overall(self, honest_run):
        assert honest_run.errors() == []
        totals = honest_run.summary.loc["Total"].xs("Failure", level="field")
        assert not totals.any()

    def test_reproducible_with_seed(self, honest, honest_run):
        again = run(honest, random_state=5)
        pd.testing.assert_frame_equal(again.summary, honest_run.summary)

    def test_parallel_matches_sequential(self, honest, honest_run):
        parallel = run(honest, random_state=5, n_jobs=2)
        pd.testing.assert_frame_equal(parallel.summary, honest_run.summary)

    def test_without_summary(self):
        result = run(make_dataset(seed=3, t=60, n=2), with_summary=False)
        assert result.summary is None
        assert all(isinstance(c, (ScreenVerdict, ScreenError)) for row in result.results for c in row)

    def test_style_factors_clamped(self):
        data = make_dataset(seed=3, t=60, n=2)
        narrow = Dataset(
            dates=data.dates,
            returns=data.returns,
            style_factors=data.style_factors.iloc[:, :2],
        )
        result = run(narrow, style_factors_max=3, with_summary=False)
        assert result.params.style_factors_max == 2

    def test_invalid_parameters(self, honest):
        with pytest.raises(ValueError):
            run(honest, a=0.5)
        with pytest.raises(ValueError):
            run(honest, simulations=10)


class TestErrorCells:

    @pytest.fixture
    def isolated(self):
        return make_dataset(seed=4, t=60, n=3, groups=["x", "y", "y"])

    def test_singleton_group_records_errors(self, isolated):
        result = run(isolated)

        lc, sc = result.results[0][0], result.results[1][0]
        assert isinstance(lc, ScreenError)
        assert isinstance(sc, ScreenError)
        assert isinstance(result.results[0][1], ScreenVerdict)
        assert result.summary.loc["Low Correlation", ("Fund A", "Failure")] is None
        assert np.isnan(result.summary.loc["Total", ("Fund A", "Coefficient")])
        assert {e.name for e in result.errors()} == {"Low Correlation", "Serial Correlation"}

    def test_raise_errors(self, isolated):
        with pytest.raises(ComputationError):
            run(isolated, raise_errors=True)


def test_progress_output(capsys):
    execute_tests(make_dataset(seed=2, t=60, n=2), a=0.05, simulations=1000, random_state=1)
    out = capsys.readouterr().out

    assert "Processing 2 entities x 60 observations..." in out
    assert "[2/2] Fund B" in out
    assert "Test battery complete!" in out


def test_progress_output_in_parallel(capsys):
    execute_tests(make_dataset(seed=2, t=60, n=2), a=0.05, simulations=1000, random_state=1, n_jobs=2)
    out = capsys.readouterr().out

    assert "[1/2] Fund A" in out
    assert "[2/2] Fund B" in out
    assert out.index("[1/2] Fund A") < out.index("[2/2] Fund B")


# =============================================================================
# Factor-driven funds over repeated draws
# =============================================================================

SEEDS = range(8)


@pytest.fixture(scope="module")
def repeated_runs():
    """Battery runs on 3 factor-driven funds x 252 months, one per seed."""
    return [run(make_dataset(seed=seed, t=252, n=3), a=0.01) for seed in SEEDS]


def failure_counts(runs):
    counts = {name: 0 for name in TEST_NAMES}
    for result in runs:
        for name, row in zip(TEST_NAMES, result.results):
            counts[name] += sum(cell.failure for cell in row)
    return counts


class TestFactorDrivenFunds:
    """Funds that are exact factor combinations plus noise rarely fail."""

    def test_every_verdict_is_computed(self, repeated_runs):
        for result in repeated_runs:
            assert result.errors() == []
            assert len(result.results) == 7
            assert all(len(row) == 3 for row in result.results)
            assert all(isinstance(cell, ScreenVerdict) for row in result.results for cell in row)

    def test_failure_rates_are_low(self, repeated_runs):
        counts = failure_counts(repeated_runs)
        n_verdicts = 3 * len(SEEDS)

        for name in TEST_NAMES:
            if name == "Digits Conformity":
                continue
            assert counts[name] <= 0.125 * n_verdicts, f"{name}: {counts[name]}/{n_verdicts}"

    def test_digit_failures_come_from_the_first_digit(self, repeated_runs):
        # Returns spanning about one order of magnitude do not follow Benford's Law
        digits = [cell for result in repeated_runs for cell in result.results[TEST_NAMES.index("Digits Conformity")]]

        assert sum(cell.data.fst_fail for cell in digits) >= len(digits) // 4
        assert sum(cell.data.lst_fail for cell in digits) <= 0.125 * len(digits)
        assert all(cell.failure == (cell.data.fst_fail or cell.data.lst_fail) for cell in digits)

    def test_no_fund_fails_overall(self, repeated_runs):
        for result in repeated_runs:
            totals = result.summary.loc["Total"].xs("Failure", level="field")
            assert not totals.any()
