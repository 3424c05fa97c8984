"""Data models for tributo-core.

This package provides the structures exchanged with the form and report
layers:
- Input figures and the rate table (tax.py)
- The comparison result and its roadmap/optimization items (comparison.py)
"""

from tributo_core.models.tax import (
    SIMPLES_ANNEXES,
    BusinessSector,
    TaxInput,
    TaxRates,
    fold_label,
)
from tributo_core.models.comparison import (
    ACTIONS_PER_POINT,
    LEGAL_OPTIMIZATION_COUNTS,
    MAX_DECISION_DRIVERS,
    MIN_DECISION_DRIVERS,
    ROADMAP_SIZE,
    ComparisonResult,
    ImpactLevel,
    LegalOptimization,
    Money,
    Percent,
    Recommendation,
    ResultSource,
    StrategicAction,
    StrategicPoint,
)

__all__ = [
    # Input
    "SIMPLES_ANNEXES",
    "BusinessSector",
    "TaxInput",
    "TaxRates",
    "fold_label",
    # Output
    "ACTIONS_PER_POINT",
    "LEGAL_OPTIMIZATION_COUNTS",
    "MAX_DECISION_DRIVERS",
    "MIN_DECISION_DRIVERS",
    "ROADMAP_SIZE",
    "ComparisonResult",
    "ImpactLevel",
    "LegalOptimization",
    "Money",
    "Percent",
    "Recommendation",
    "ResultSource",
    "StrategicAction",
    "StrategicPoint",
]
