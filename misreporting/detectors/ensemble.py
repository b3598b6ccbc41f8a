"""
Aggregation of the test battery.

Each entity gets eight rows: the seven tests plus a Total whose coefficient
is the sum of the seven failure coefficients (0-7). An entity fails overall
when the Total exceeds 3.5.

Tests that could not be computed stay visible as missing values
(Failure = None, Coefficient = NaN) and make the entity's Total missing too.
"""

from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..config import SUMMARY_ROWS, TEST_NAMES, Thresholds
from .results import ScreenError, ScreenVerdict

Cell = Union[ScreenVerdict, ScreenError]


class EnsembleAggregator:
    """
    Combine per-test verdicts into per-entity scores.

    Usage:
        aggregator = EnsembleAggregator()
        summary = aggregator.combine(results, names)
        print(aggregator.failing_entities())
    """

    def __init__(self, total_threshold: float = Thresholds.TOTAL_FAILURE):
        """
        Args:
            total_threshold: Total coefficient above which an entity fails
        """
        self.total_threshold = total_threshold
        self.results: Optional[pd.DataFrame] = None

    def combine(self, results: Sequence[Sequence[Cell]], names: Sequence[str]) -> pd.DataFrame:
        """
        Build the summary table.

        Args:
            results: 7 x N grid of verdicts (test-major, entity-minor)
            names: Entity names in grid order

        Returns:
            DataFrame indexed by test (plus Total) with (entity, Failure/Coefficient) columns
        """
        if len(results) != len(TEST_NAMES):
            raise ValueError(f"Expected {len(TEST_NAMES)} test rows, got {len(results)}")

        columns = {}
        for j, name in enumerate(names):
            failures: List[Optional[bool]] = []
            coefficients: List[float] = []

            for i in range(len(TEST_NAMES)):
                cell = results[i][j]
                if isinstance(cell, ScreenVerdict):
                    failures.append(cell.failure)
                    coefficients.append(cell.failure_coefficient)
                else:
                    failures.append(None)
                    coefficients.append(np.nan)

            if any(f is None for f in failures):
                total, total_failure = np.nan, None
            else:
                total = float(sum(coefficients))
                total_failure = total > self.total_threshold

            columns[(name, "Failure")] = pd.Series(failures + [total_failure], index=SUMMARY_ROWS, dtype=object)
            columns[(name, "Coefficient")] = pd.Series(coefficients + [total], index=SUMMARY_ROWS, dtype=float)

        summary = pd.DataFrame(columns, index=SUMMARY_ROWS)
        summary.columns = pd.MultiIndex.from_tuples(summary.columns, names=["entity", "field"])

        self.results = summary
        return summary

    def totals(self) -> pd.DataFrame:
        """Total row per entity."""
        if self.results is None:
            raise ValueError("Run combine() first")

        total = self.results.loc["Total"]
        return pd.DataFrame({
            "failure": total.xs("Failure", level="field"),
            "coefficient": total.xs("Coefficient", level="field").astype(float),
        })

    def failing_entities(self) -> List[str]:
        """Entities whose Total failed."""
        totals = self.totals()
        return [
            name for name, failed in totals["failure"].items()
            if isinstance(failed, (bool, np.bool_)) and failed
        ]

    def coefficient_matrix(self) -> pd.DataFrame:
        """Entities x tests matrix of failure coefficients."""
        if self.results is None:
            raise ValueError("Run combine() first")

        return self.results.xs("Coefficient", axis=1, level="field").T


def summarize(results: Sequence[Sequence[Cell]], names: Sequence[str]) -> pd.DataFrame:
    """Summary table of a results grid."""
    return EnsembleAggregator().combine(results, names)
