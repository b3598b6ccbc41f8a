"""
Misreported Returns Detectors.

7 screens, one verdict each per entity:
1. LowCorrelationDetector: Index R2 and Max R2 against null paths
2. SerialCorrelationDetector: Unconditional and conditional smoothing
3. BiasRatioDetector: Scarcity of small losses relative to small gains
4. DecemberSpikeDetector: Year-end outperformance
5. DiscontinuityDetector: Kink of the return histogram at zero
6. DigitsDetector: Benford first digit and uniform last digit
7. DataQualityDetector: Five fabrication signatures

EnsembleAggregator: Sums failure coefficients into a total score.
"""

# Screens
from .low_correlation import LowCorrelationDetector
from .serial_correlation import SerialCorrelationDetector
from .bias_ratio import BiasRatioDetector
from .december_spike import DecemberSpikeDetector
from .discontinuity import DiscontinuityDetector
from .digits import DigitsDetector, benford_test
from .data_quality import DataQualityDetector

# Results
from .results import ComputationError, ScreenError, ScreenVerdict

# Ensemble
from .ensemble import EnsembleAggregator, summarize

__all__ = [
    # Screens
    "LowCorrelationDetector",
    "SerialCorrelationDetector",
    "BiasRatioDetector",
    "DecemberSpikeDetector",
    "DiscontinuityDetector",
    "DigitsDetector",
    "DataQualityDetector",
    "benford_test",
    # Results
    "ComputationError",
    "ScreenError",
    "ScreenVerdict",
    # Ensemble
    "EnsembleAggregator",
    "summarize",
]
