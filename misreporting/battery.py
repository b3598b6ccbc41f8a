"""
Test battery runner.

For every entity:
1. Simulate its null matrix once
2. Low Correlation (also yields the fitted returns of its best model)
3. Serial Correlation on those fitted returns
4. Bias Ratio, December Spike, Discontinuity at Zero, Digits Conformity,
   Data Quality

Entities are independent and may run in joblib worker processes. Each
entity owns a generator spawned from `random_state`, so a seed gives the
same results sequentially and in parallel.
"""

from dataclasses import dataclass
from itertools import combinations
from typing import Callable, List, Optional, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .config import (
    DEFAULT_A, DEFAULT_DECIMALS, DEFAULT_R2_SWITCH, DEFAULT_SIMULATIONS,
    DEFAULT_STYLE_FACTORS_MAX, RANDOM_STATE, TEST_NAMES, ScreenParameters,
)
from .dataset import Dataset
from .detectors import (
    BiasRatioDetector,
    DataQualityDetector,
    DecemberSpikeDetector,
    DigitsDetector,
    DiscontinuityDetector,
    EnsembleAggregator,
    LowCorrelationDetector,
    SerialCorrelationDetector,
)
from .detectors.results import ScreenError, ScreenVerdict
from .simulation import entity_generators, simulate_null
from .stats import ComputationError

Cell = Union[ScreenVerdict, ScreenError]


@dataclass
class BatteryResult:
    """
    Output of a battery run.

    Attributes:
        results: 7 x N grid, results[test][entity], in TEST_NAMES and input order
        summary: Aggregated table (None when not requested)
        params: Parameters actually used (style_factors_max clamped to K)
    """
    results: List[List[Cell]]
    summary: Optional[pd.DataFrame]
    params: ScreenParameters

    def errors(self) -> List[ScreenError]:
        """Entity/test pairs that could not be computed."""
        return [cell for row in self.results for cell in row if isinstance(cell, ScreenError)]


@dataclass
class _EntityTask:
    name: str
    returns: np.ndarray
    peers: pd.DataFrame
    rng: np.random.Generator
    params: ScreenParameters
    style_factors: pd.DataFrame
    dates: pd.DatetimeIndex
    raise_errors: bool


def _attempt(name: str, entity: str, run: Callable[[], ScreenVerdict], raise_errors: bool) -> Cell:
    try:
        return run()
    except ComputationError as e:
        if raise_errors:
            raise
        return ScreenError(name=name, entity=entity, message=str(e))


def _screen_entity(task: _EntityTask) -> List[Cell]:
    """Run the seven tests for one entity."""
    params = task.params
    entity = task.name
    r = task.returns
    null = simulate_null(r, params.simulations, task.rng)

    low_correlation = LowCorrelationDetector(params, task.style_factors, task.dates)
    try:
        lc_cell, fitted = low_correlation.detect(entity, r, null, task.peers, task.rng)
    except ComputationError as e:
        if task.raise_errors:
            raise
        lc_cell, fitted = ScreenError(name=LowCorrelationDetector.NAME, entity=entity, message=str(e)), None

    if fitted is None:
        sc_cell = ScreenError(
            name=SerialCorrelationDetector.NAME,
            entity=entity,
            message="Low Correlation produced no fitted returns",
        )
    else:
        sc = SerialCorrelationDetector(params)
        sc_cell = _attempt(sc.NAME, entity, lambda: sc.detect(entity, r, fitted), task.raise_errors)

    bias = BiasRatioDetector(params)
    december = DecemberSpikeDetector(params, task.dates)
    kink = DiscontinuityDetector(params)
    digits = DigitsDetector(params)
    quality = DataQualityDetector(params)

    return [
        lc_cell,
        sc_cell,
        _attempt(bias.NAME, entity, lambda: bias.detect(entity, r, null), task.raise_errors),
        _attempt(december.NAME, entity, lambda: december.detect(entity, r, null), task.raise_errors),
        _attempt(kink.NAME, entity, lambda: kink.detect(entity, r), task.raise_errors),
        _attempt(digits.NAME, entity, lambda: digits.detect(entity, r), task.raise_errors),
        _attempt(quality.NAME, entity, lambda: quality.detect(entity, r, null), task.raise_errors),
    ]


def _report(j: int, total: int, name: str, cells: List[Cell]) -> None:
    failed = sum(1 for c in cells if isinstance(c, ScreenVerdict) and c.failure)
    print(f"  [{j + 1}/{total}] {name}: {failed}/{len(TEST_NAMES)} tests failed")


def execute_tests(
    dataset: Dataset,
    a: float = DEFAULT_A,
    simulations: int = DEFAULT_SIMULATIONS,
    style_factors_max: int = DEFAULT_STYLE_FACTORS_MAX,
    r2_switch: bool = DEFAULT_R2_SWITCH,
    decimals: int = DEFAULT_DECIMALS,
    *,
    random_state: Optional[Union[int, np.random.SeedSequence]] = RANDOM_STATE,
    n_jobs: int = 1,
    with_summary: bool = True,
    raise_errors: bool = False,
    verbose: bool = True,
) -> BatteryResult:
    """
    Run the full test battery on a dataset.

    Args:
        dataset: Entity returns, groups, style factors and dates
        a: Significance threshold (0.01-0.10)
        simulations: Monte Carlo simulations per entity (>= 1000)
        style_factors_max: Style factors per regression (1-3, capped at K)
        r2_switch: Allow a change of style factors in the Max R2 search
        decimals: Decimal places for the digit tests (2-6)
        random_state: Seed of the per-entity generators (None = unseeded)
        n_jobs: Worker processes (1 = sequential)
        with_summary: Also build the aggregated summary table
        raise_errors: Propagate computation errors instead of recording them
        verbose: Print progress

    Returns:
        BatteryResult with the 7 x N results grid and the optional summary
    """
    params = ScreenParameters(
        a=a,
        simulations=simulations,
        style_factors_max=style_factors_max,
        r2_switch=r2_switch,
        decimals=decimals,
    ).clamp_to(dataset.k)

    n_combinations = len(list(combinations(range(dataset.k), params.style_factors_max)))
    names = dataset.names
    rngs = entity_generators(random_state, dataset.n)

    tasks = [
        _EntityTask(
            name=name,
            returns=dataset.returns.iloc[:, j].to_numpy(dtype=float),
            peers=dataset.peers(name),
            rng=rngs[j],
            params=params,
            style_factors=dataset.style_factors,
            dates=dataset.dates,
            raise_errors=raise_errors,
        )
        for j, name in enumerate(names)
    ]

    if verbose:
        print(f"Processing {dataset.n:,} entities x {dataset.t:,} observations...")
        print(f"  a={params.a}, simulations={params.simulations:,}, "
              f"style factor combinations={n_combinations}, r2_switch={params.r2_switch}")
        print("Step 1/2: Running tests...")

    if n_jobs > 1 and len(tasks) > 1:
        by_entity = Parallel(n_jobs=n_jobs, backend="loky", verbose=0)(
            delayed(_screen_entity)(task) for task in tasks
        )
        if verbose:
            for j, (task, cells) in enumerate(zip(tasks, by_entity)):
                _report(j, len(tasks), task.name, cells)
    else:
        by_entity = []
        for j, task in enumerate(tasks):
            cells = _screen_entity(task)
            by_entity.append(cells)
            if verbose:
                _report(j, len(tasks), task.name, cells)

    results = [[by_entity[j][i] for j in range(len(names))] for i in range(len(TEST_NAMES))]

    summary = None
    if with_summary:
        if verbose:
            print("Step 2/2: Aggregating...")
        aggregator = EnsembleAggregator()
        summary = aggregator.combine(results, names)
        if verbose:
            print(f"  Entities failing overall: {len(aggregator.failing_entities()):,}/{len(names):,}")

    battery = BatteryResult(results=results, summary=summary, params=params)

    if verbose:
        n_errors = len(battery.errors())
        print("\nTest battery complete!")
        if n_errors:
            print(f"  Tests not computable: {n_errors:,}")

    return battery
