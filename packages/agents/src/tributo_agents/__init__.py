"""Tributo Agents - resilient regime comparison on top of tributo-core."""

from tributo_agents.comparison_agent import (
    AttemptFailure,
    AttemptState,
    ComparisonAgent,
    compute_comparison,
    compute_comparison_async,
)
from tributo_agents.config import (
    LLMConfig,
    ResilienceConfig,
    TaxRateConfig,
    TributoConfig,
)
from tributo_agents.log_setup import configure_logging

__version__ = "0.1.0"

__all__ = [
    "AttemptFailure",
    "AttemptState",
    "ComparisonAgent",
    "compute_comparison",
    "compute_comparison_async",
    "LLMConfig",
    "ResilienceConfig",
    "TaxRateConfig",
    "TributoConfig",
    "configure_logging",
]
