"""Last-line normalization of a candidate into a ComparisonResult.

The two totals and the text fields pass through when present and
well-formed, and are otherwise replaced by the arithmetic model's figure
or the canned content. Every other number is derived: savings, annual
savings, recommendation, both effective rates and the IBS/CBS split come
from the final totals, and credits come from the arithmetic model, so the
result's identities hold exactly.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

import structlog
from pydantic import ValidationError

from . import strategy_content
from .calculator import (
    ZERO,
    compare_totals,
    compute_figures,
    effective_rate,
    split_reform_total,
)
from .models import (
    MAX_DECISION_DRIVERS,
    MIN_DECISION_DRIVERS,
    ROADMAP_SIZE,
    ComparisonResult,
    ImpactLevel,
    LegalOptimization,
    ResultSource,
    StrategicPoint,
    TaxInput,
    TaxRates,
)
from .validator import parse_number

logger = structlog.get_logger()

GENERATED_HEALTH_SCORE = 92


def _amount(raw: Mapping[str, Any], key: str, default: Decimal) -> Decimal:
    """A finite, non-negative number from the candidate, else the default."""
    value = raw.get(key)
    if value is None:
        return default
    try:
        number = parse_number(value)
    except ValueError:
        return default
    if not number.is_finite() or number < 0:
        return default
    return number


def _text(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = raw.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _decision_drivers(value: Any, defaults: list[str]) -> list[str]:
    if isinstance(value, str):
        value = [value]
    drivers: list[str] = []
    if isinstance(value, list):
        drivers = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    drivers = drivers[:MAX_DECISION_DRIVERS]
    for default in defaults:
        if len(drivers) >= MIN_DECISION_DRIVERS:
            break
        if default not in drivers:
            drivers.append(default)
    return drivers


def _legal_optimizations(value: Any, count: int) -> list[LegalOptimization]:
    optimizations: list[LegalOptimization] = []
    if isinstance(value, list):
        for item in value:
            try:
                optimizations.append(LegalOptimization.model_validate(item))
            except ValidationError:
                continue
    optimizations = optimizations[:count]

    titles = {item.title.strip().lower() for item in optimizations}
    for canned in strategy_content.LEGAL_OPTIMIZATION_POOL:
        if len(optimizations) >= count:
            break
        if canned.title.lower() not in titles:
            optimizations.append(canned)
    return optimizations


def _strategic_roadmap(value: Any) -> Optional[list[StrategicPoint]]:
    """The candidate roadmap in priority order, or None if unusable."""
    if not isinstance(value, list) or len(value) != ROADMAP_SIZE:
        return None
    try:
        points = [StrategicPoint.model_validate(point) for point in value]
    except ValidationError:
        return None
    if {point.impact_level for point in points} != set(ImpactLevel):
        return None
    return sorted(points, key=lambda point: point.impact_level.priority)


def sanitize(
    raw: Mapping[str, Any],
    tax_input: TaxInput,
    *,
    rates: Optional[TaxRates] = None,
    legal_count: int = 3,
    health_score: int = GENERATED_HEALTH_SCORE,
    source: ResultSource = ResultSource.GENERATED,
) -> ComparisonResult:
    """
    Build a ComparisonResult from a candidate mapping, filling every gap.

    Args:
        raw: Candidate fields (camelCase keys), validated or not
        tax_input: Monthly figures of the business
        rates: Rate table override
        legal_count: Number of legal optimizations required (3 or 5)
        health_score: Constant score of the code path that produced ``raw``
        source: Code path that produced ``raw``

    Returns:
        A ComparisonResult that satisfies every structural constraint
    """
    rates = rates or TaxRates()
    figures = compute_figures(tax_input, rates)
    revenue = tax_input.monthly_revenue
    replaced: list[str] = []

    simples_total = _amount(raw, "simplesTotal", figures.simples_total)

    reform_total = figures.reform_total
    raw_reform = raw.get("reformTotal")
    if raw_reform is not None:
        try:
            number = parse_number(raw_reform)
        except ValueError:
            number = None
        if number is not None and number.is_finite():
            reform_total = max(ZERO, number)
        else:
            replaced.append("reformTotal")

    credits_taken = figures.credits
    effective_rate_simples = effective_rate(simples_total, revenue)
    effective_rate_reform = effective_rate(reform_total, revenue)
    ibs_amount, cbs_amount = split_reform_total(reform_total, rates)

    savings, annual_savings, recommendation = compare_totals(simples_total, reform_total)

    analysis = _text(
        raw,
        "analysis",
        strategy_content.build_analysis(tax_input, recommendation, simples_total, reform_total),
    )
    technical_details = _text(
        raw,
        "technicalDetails",
        strategy_content.build_technical_details(rates, credits_taken, ibs_amount, cbs_amount),
    )
    decision_drivers = _decision_drivers(
        raw.get("decisionDrivers"),
        strategy_content.build_decision_drivers(
            tax_input,
            credits_taken,
            effective_rate_simples,
            effective_rate_reform,
        ),
    )
    legal_optimizations = _legal_optimizations(raw.get("legalOptimizations"), legal_count)

    roadmap = _strategic_roadmap(raw.get("strategicRoadmap"))
    if roadmap is None:
        replaced.append("strategicRoadmap")
        roadmap = strategy_content.roadmap()

    if replaced:
        logger.info("candidate_fields_replaced", fields=replaced, source=source.value)

    return ComparisonResult(
        monthly_revenue=revenue,
        sector=tax_input.sector,
        simples_total=simples_total,
        reform_total=reform_total,
        savings=savings,
        annual_savings=annual_savings,
        recommendation=recommendation,
        effective_rate_simples=effective_rate_simples,
        effective_rate_reform=effective_rate_reform,
        ibs_amount=ibs_amount,
        cbs_amount=cbs_amount,
        credits_taken=credits_taken,
        analysis=analysis,
        technical_details=technical_details,
        decision_drivers=decision_drivers,
        legal_optimizations=legal_optimizations,
        strategic_roadmap=roadmap,
        health_score=health_score,
        source=source,
    )
