"""Deterministic comparison of the Simples and the IBS/CBS regimes.

This module provides the arithmetic model behind every result:
1. RegimeCalculator - computes both regimes' totals with an audit trail
2. compute_deterministic() - the complete fallback ComparisonResult

Model (monthly figures):
    simples_total  = revenue * declared_rate / 100
    credits        = (purchases + other_inputs) * credit_rate
    gross_reform   = revenue * credit_rate
    reform_total   = max(0, gross_reform - credits)

The model is a simplified heuristic, not a certified fiscal engine. It
never fails for a valid TaxInput and never touches the network.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import structlog

from .models import (
    ComparisonResult,
    Recommendation,
    ResultSource,
    TaxInput,
    TaxRates,
)
from . import strategy_content

logger = structlog.get_logger()

MONTHS_PER_YEAR = 12
FALLBACK_HEALTH_SCORE = 80
ZERO = Decimal("0")


@dataclass(frozen=True)
class CalculationStep:
    """One line of the calculation audit trail."""

    step: str
    input_value: str
    output_value: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class RegimeFigures:
    """Numeric outcome of the arithmetic model."""

    simples_total: Decimal
    taxable_inputs: Decimal
    credits: Decimal
    gross_reform: Decimal
    reform_total: Decimal
    savings: Decimal
    annual_savings: Decimal
    recommendation: Recommendation
    effective_rate_simples: Decimal
    effective_rate_reform: Decimal
    ibs_amount: Decimal
    cbs_amount: Decimal
    audit_log: list[CalculationStep] = field(default_factory=list)


def compare_totals(
    simples_total: Decimal,
    reform_total: Decimal,
) -> tuple[Decimal, Decimal, Recommendation]:
    """Savings, annual savings and recommendation for a pair of totals.

    Ties favour the Simples (declared-rate) regime.
    """
    savings = abs(simples_total - reform_total)
    annual_savings = savings * MONTHS_PER_YEAR
    if reform_total < simples_total:
        recommendation = Recommendation.REFORMA
    else:
        recommendation = Recommendation.SIMPLES
    return savings, annual_savings, recommendation


def effective_rate(total: Decimal, revenue: Decimal) -> Decimal:
    """Tax total as a percentage of revenue."""
    return total / revenue * 100


def split_reform_total(reform_total: Decimal, rates: TaxRates) -> tuple[Decimal, Decimal]:
    """Split the IBS/CBS amount into its (ibs, cbs) parts."""
    ibs_amount = reform_total * rates.ibs_share
    return ibs_amount, reform_total - ibs_amount


class RegimeCalculator:
    """
    Compute both regimes' monthly tax totals for a business.

    Every intermediate value is recorded in an audit trail and logged,
    so a result can always be traced back to its inputs.
    """

    def __init__(self, rates: Optional[TaxRates] = None):
        """
        Initialize calculator with a rate table.

        Args:
            rates: Rate table override (default: canonical TaxRates())
        """
        self.rates = rates or TaxRates()

    def _log_step(
        self,
        audit_log: list[CalculationStep],
        step: str,
        input_value: str,
        output_value: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        audit_log.append(
            CalculationStep(
                step=step,
                input_value=input_value,
                output_value=output_value,
                notes=notes,
            )
        )
        logger.debug(
            "calculation_step",
            step=step,
            input=input_value,
            output=output_value,
        )

    def calculate(self, tax_input: TaxInput) -> RegimeFigures:
        """
        Run the arithmetic model.

        Args:
            tax_input: Monthly figures of the business

        Returns:
            RegimeFigures with both totals, derived metrics and audit trail
        """
        audit_log: list[CalculationStep] = []
        rates = self.rates
        revenue = tax_input.monthly_revenue

        declared_rate = tax_input.declared_rate(rates)
        simples_total = revenue * declared_rate / 100
        self._log_step(
            audit_log,
            step="simples_total",
            input_value=f"revenue={revenue}, declared_rate={declared_rate}",
            output_value=str(simples_total),
            notes=None if tax_input.custom_simples_rate is not None else "default declared rate",
        )

        taxable_inputs = tax_input.creditable_inputs
        credits = taxable_inputs * rates.credit_rate
        self._log_step(
            audit_log,
            step="credits",
            input_value=f"taxable_inputs={taxable_inputs}, credit_rate={rates.credit_rate}",
            output_value=str(credits),
        )

        gross_reform = revenue * rates.credit_rate
        self._log_step(
            audit_log,
            step="gross_reform",
            input_value=f"revenue={revenue}, credit_rate={rates.credit_rate}",
            output_value=str(gross_reform),
        )

        raw_reform = gross_reform - credits
        reform_total = max(ZERO, raw_reform)
        self._log_step(
            audit_log,
            step="reform_total",
            input_value=f"gross_reform={gross_reform}, credits={credits}",
            output_value=str(reform_total),
            notes="credits exceed gross debit, floored at zero" if raw_reform < 0 else None,
        )

        savings, annual_savings, recommendation = compare_totals(simples_total, reform_total)
        self._log_step(
            audit_log,
            step="recommendation",
            input_value=f"simples_total={simples_total}, reform_total={reform_total}",
            output_value=recommendation.value,
        )

        ibs_amount, cbs_amount = split_reform_total(reform_total, rates)

        return RegimeFigures(
            simples_total=simples_total,
            taxable_inputs=taxable_inputs,
            credits=credits,
            gross_reform=gross_reform,
            reform_total=reform_total,
            savings=savings,
            annual_savings=annual_savings,
            recommendation=recommendation,
            effective_rate_simples=declared_rate,
            effective_rate_reform=effective_rate(reform_total, revenue),
            ibs_amount=ibs_amount,
            cbs_amount=cbs_amount,
            audit_log=audit_log,
        )


def compute_figures(tax_input: TaxInput, rates: Optional[TaxRates] = None) -> RegimeFigures:
    """Run the arithmetic model with the given (or canonical) rates."""
    return RegimeCalculator(rates).calculate(tax_input)


def compute_deterministic(
    tax_input: TaxInput,
    rates: Optional[TaxRates] = None,
    *,
    legal_count: int = 3,
) -> ComparisonResult:
    """
    Build a complete ComparisonResult without calling any model.

    Numbers come from the arithmetic model; roadmap, legal optimizations
    and narrative come from the canned strategy content. Calling this twice
    with the same input yields identical results.

    Args:
        tax_input: Monthly figures of the business
        rates: Rate table override
        legal_count: Number of legal optimizations (3 standard, 5 expert)

    Returns:
        ComparisonResult marked with ResultSource.FALLBACK
    """
    rates = rates or TaxRates()
    figures = compute_figures(tax_input, rates)

    return ComparisonResult(
        monthly_revenue=tax_input.monthly_revenue,
        sector=tax_input.sector,
        simples_total=figures.simples_total,
        reform_total=figures.reform_total,
        savings=figures.savings,
        annual_savings=figures.annual_savings,
        recommendation=figures.recommendation,
        effective_rate_simples=figures.effective_rate_simples,
        effective_rate_reform=figures.effective_rate_reform,
        ibs_amount=figures.ibs_amount,
        cbs_amount=figures.cbs_amount,
        credits_taken=figures.credits,
        analysis=strategy_content.build_analysis(
            tax_input,
            figures.recommendation,
            figures.simples_total,
            figures.reform_total,
        ),
        technical_details=strategy_content.build_technical_details(
            rates,
            figures.credits,
            figures.ibs_amount,
            figures.cbs_amount,
        ),
        decision_drivers=strategy_content.build_decision_drivers(
            tax_input,
            figures.credits,
            figures.effective_rate_simples,
            figures.effective_rate_reform,
        ),
        legal_optimizations=strategy_content.legal_optimizations(legal_count),
        strategic_roadmap=strategy_content.roadmap(),
        health_score=FALLBACK_HEALTH_SCORE,
        source=ResultSource.FALLBACK,
    )
