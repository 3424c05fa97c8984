"""Tributo Core - Simples vs. IBS/CBS regime comparison engine."""

__version__ = "0.1.0"

from .calculator import RegimeCalculator, compute_deterministic, compute_figures
from .generation import AnthropicBackend, GenerationClient, TextGenerationBackend, create_backend
from .models import ComparisonResult, TaxInput, TaxRates
from .prompts import PromptVariant
from .sanitizer import sanitize
from .validator import validate_candidate

__all__ = [
    "RegimeCalculator",
    "compute_deterministic",
    "compute_figures",
    "AnthropicBackend",
    "GenerationClient",
    "TextGenerationBackend",
    "create_backend",
    "ComparisonResult",
    "TaxInput",
    "TaxRates",
    "PromptVariant",
    "sanitize",
    "validate_candidate",
]
