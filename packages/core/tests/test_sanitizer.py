"""Tests for candidate sanitization into ComparisonResult."""

from decimal import Decimal

import pytest

from tributo_core import strategy_content
from tributo_core.models import (
    ImpactLevel,
    Recommendation,
    ResultSource,
    TaxInput,
)
from tributo_core.sanitizer import GENERATED_HEALTH_SCORE, sanitize


class TestNumbers:
    """Test suite for total and identity handling."""

    def test_identities_are_derived(self, candidate_factory, example_input: TaxInput):
        """Savings, annual savings and recommendation ignore the model's values."""
        raw = candidate_factory(savings=1, annualSavings=2, recommendation="SIMPLES")

        result = sanitize(raw, example_input)

        assert result.savings == abs(result.simples_total - result.reform_total)
        assert result.annual_savings == result.savings * 12
        assert result.recommendation == Recommendation.REFORMA
        assert result.savings == Decimal("8439.8")

    def test_totals_pass_through(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(simplesTotal=22500, reformTotal=14100), example_input)

        assert result.simples_total == Decimal("22500")
        assert result.reform_total == Decimal("14100")
        assert result.recommendation == Recommendation.REFORMA
        assert result.ibs_amount + result.cbs_amount == result.reform_total
        assert result.ibs_amount == Decimal("9165.00")

    def test_breakdown_is_derived_from_the_totals(self, candidate_factory, example_input: TaxInput):
        """The model's split, credits and Simples rate never reach the result."""
        raw = candidate_factory(ibsAmount=1, cbsAmount=2, creditsTaken=5, effectiveRateSimples=99)

        result = sanitize(raw, example_input)

        assert result.ibs_amount + result.cbs_amount == result.reform_total
        assert result.ibs_amount == Decimal("9129.25")
        assert result.credits_taken == Decimal("41075.000")
        assert result.effective_rate_simples == pytest.approx(Decimal("10.81"), abs=Decimal("0.001"))

    def test_negative_reform_total_is_floored(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(reformTotal=-300), example_input)

        assert result.reform_total == Decimal("0")
        assert result.effective_rate_reform == Decimal("0")
        assert result.savings == result.simples_total

    def test_missing_and_non_finite_numbers_use_the_model(self, candidate_factory, example_input: TaxInput):
        raw = candidate_factory(reformTotal=float("nan"), creditsTaken="abc")
        del raw["simplesTotal"]
        del raw["ibsAmount"]

        result = sanitize(raw, example_input)

        assert result.simples_total == Decimal("22484.80")
        assert result.reform_total == Decimal("14045.000")
        assert result.credits_taken == Decimal("41075.000")
        assert result.ibs_amount == Decimal("9129.25")

    def test_effective_rate_reform_is_recomputed(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(effectiveRateReform=99), example_input)
        assert result.effective_rate_reform == pytest.approx(Decimal("6.7524"), abs=Decimal("0.001"))

    def test_tie_recommends_simples(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(simplesTotal=14045, reformTotal=14045), example_input)

        assert result.recommendation == Recommendation.SIMPLES
        assert result.savings == Decimal("0")


class TestText:
    def test_blank_analysis_replaced(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(analysis=" "), example_input)
        assert "R$ 14.045,00" in result.analysis

    def test_drivers_truncated(self, candidate_factory, example_input: TaxInput):
        raw = candidate_factory(decisionDrivers=["a", "b", "c", "d", "e", "f"])
        assert sanitize(raw, example_input).decision_drivers == ["a", "b", "c", "d"]

    def test_drivers_padded(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(decisionDrivers="único motivo"), example_input)

        assert result.decision_drivers[0] == "único motivo"
        assert len(result.decision_drivers) == 3


class TestLegalOptimizations:
    def test_padded_from_the_pool(self, candidate_factory, example_input: TaxInput):
        raw = candidate_factory()
        raw["legalOptimizations"] = raw["legalOptimizations"][:1] + [{"title": ""}]

        result = sanitize(raw, example_input)

        titles = [item.title for item in result.legal_optimizations]
        pool = [item.title for item in strategy_content.LEGAL_OPTIMIZATION_POOL]
        assert titles == ["Otimização 1", pool[0], pool[1]]

    def test_pool_titles_are_not_repeated(self, candidate_factory, example_input: TaxInput):
        pool = strategy_content.LEGAL_OPTIMIZATION_POOL
        raw = candidate_factory()
        raw["legalOptimizations"] = [pool[0].model_dump(by_alias=True)]

        result = sanitize(raw, example_input)

        assert [item.title for item in result.legal_optimizations] == [
            pool[0].title,
            pool[1].title,
            pool[2].title,
        ]

    def test_expert_count(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(legal_count=2), example_input, legal_count=5)
        assert len(result.legal_optimizations) == 5


class TestRoadmap:
    def test_valid_roadmap_kept(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(), example_input)
        assert result.strategic_roadmap[0].title == "Cadeia de créditos"

    def test_roadmap_sorted(self, candidate_factory, example_input: TaxInput):
        raw = candidate_factory()
        raw["strategicRoadmap"].reverse()

        result = sanitize(raw, example_input)

        assert [point.impact_level for point in result.strategic_roadmap] == [
            ImpactLevel.HIGH,
            ImpactLevel.MEDIUM,
            ImpactLevel.LOW,
        ]

    @pytest.mark.parametrize("mutation", ["short", "coverage", "actions"])
    def test_broken_roadmap_replaced(self, candidate_factory, example_input: TaxInput, mutation: str):
        raw = candidate_factory()
        if mutation == "short":
            raw["strategicRoadmap"].pop()
        elif mutation == "coverage":
            raw["strategicRoadmap"][1]["impactLevel"] = "LOW"
        else:
            raw["strategicRoadmap"][0]["actions"] = raw["strategicRoadmap"][0]["actions"][:3]

        result = sanitize(raw, example_input)

        assert [point.title for point in result.strategic_roadmap] == [
            point.title for point in strategy_content.ROADMAP_POOL
        ]


class TestProvenance:
    def test_generated_defaults(self, candidate_factory, example_input: TaxInput):
        result = sanitize(candidate_factory(), example_input)

        assert result.health_score == GENERATED_HEALTH_SCORE == 92
        assert result.source == ResultSource.GENERATED
        assert not result.is_fallback

    def test_empty_candidate_still_yields_a_result(self, example_input: TaxInput):
        result = sanitize({}, example_input, health_score=80, source=ResultSource.FALLBACK)

        assert result.is_fallback
        assert result.health_score == 80
        assert result.reform_total == Decimal("14045.000")
        assert len(result.decision_drivers) == 3
        assert len(result.legal_optimizations) == 3
