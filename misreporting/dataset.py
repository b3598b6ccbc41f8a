"""
In-memory dataset of entity returns and style factors.

Loading from spreadsheets happens elsewhere; this container only holds the
validated arrays the test battery consumes.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, List

import numpy as np
import pandas as pd


@dataclass
class Dataset:
    """
    Returns of N entities and K style factors over T dates.

    Args:
        dates: Observation dates (length T)
        returns: T x N logarithmic returns, one column per entity
        style_factors: T x K style factor returns, one column per factor
        groups: Optional group label per entity (length N)

    Usage:
        data = Dataset(dates=dates, returns=returns_df, style_factors=factors_df)
        peers = data.peers("Fund A")
    """
    dates: pd.DatetimeIndex
    returns: pd.DataFrame
    style_factors: pd.DataFrame
    groups: Optional[Sequence] = None

    def __post_init__(self):
        self.dates = pd.DatetimeIndex(self.dates)
        t = len(self.dates)

        if self.returns.shape[0] != t:
            raise ValueError(f"returns have {self.returns.shape[0]} rows, expected {t}")
        if self.style_factors.shape[0] != t:
            raise ValueError(f"style_factors have {self.style_factors.shape[0]} rows, expected {t}")
        if self.returns.shape[1] == 0:
            raise ValueError("At least one entity is required")
        if self.style_factors.shape[1] == 0:
            raise ValueError("At least one style factor is required")
        if not self.returns.columns.is_unique:
            raise ValueError("Entity names must be unique")
        if not np.isfinite(self.returns.to_numpy(dtype=float)).all():
            raise ValueError("returns contain missing or infinite values")
        if not np.isfinite(self.style_factors.to_numpy(dtype=float)).all():
            raise ValueError("style_factors contain missing or infinite values")

        if self.groups is not None:
            self.groups = np.asarray(self.groups)
            if len(self.groups) != self.returns.shape[1]:
                raise ValueError(f"groups have {len(self.groups)} labels, expected {self.returns.shape[1]}")

    @property
    def n(self) -> int:
        return self.returns.shape[1]

    @property
    def t(self) -> int:
        return len(self.dates)

    @property
    def k(self) -> int:
        return self.style_factors.shape[1]

    @property
    def names(self) -> List[str]:
        return [str(c) for c in self.returns.columns]

    @property
    def factor_names(self) -> List[str]:
        return [str(c) for c in self.style_factors.columns]

    def peers(self, name: str) -> pd.DataFrame:
        """Returns of the other entities in the same group as `name`."""
        position = self.names.index(str(name))
        mask = np.ones(self.n, dtype=bool)
        mask[position] = False

        if self.groups is not None:
            mask &= self.groups == self.groups[position]

        return self.returns.loc[:, mask]
