"""Tests for the input and result models."""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tributo_core.calculator import compute_deterministic
from tributo_core.models import (
    BusinessSector,
    ComparisonResult,
    ImpactLevel,
    LegalOptimization,
    StrategicAction,
    StrategicPoint,
    TaxInput,
    TaxRates,
    fold_label,
)


class TestTaxInput:
    """Test suite for TaxInput."""

    def test_defaults(self):
        tax_input = TaxInput(monthly_revenue=Decimal("1000"))

        assert tax_input.monthly_purchases == Decimal("0")
        assert tax_input.sector == BusinessSector.COMMERCE
        assert tax_input.simples_annex == 1
        assert tax_input.custom_simples_rate is None

    def test_revenue_must_be_positive(self):
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("0"))

    def test_negative_amounts_rejected(self):
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("1000"), payroll=Decimal("-1"))

    @pytest.mark.parametrize("annex", [0, 6])
    def test_annex_range(self, annex: int):
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("1000"), simples_annex=annex)

    def test_custom_rate_bounds(self):
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("1000"), custom_simples_rate=Decimal("0"))
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("1000"), custom_simples_rate=Decimal("100.5"))

    def test_camel_case_aliases(self):
        """The form layer sends camelCase keys."""
        tax_input = TaxInput.model_validate(
            {
                "monthlyRevenue": "208000",
                "monthlyPurchases": "140000",
                "otherInputs": "15000",
                "customSimplesRate": "10.81",
                "sector": "Comércio",
            }
        )

        assert tax_input.creditable_inputs == Decimal("155000")
        assert tax_input.declared_rate(TaxRates()) == Decimal("10.81")

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("SERVICES", BusinessSector.SERVICES),
            ("Serviços", BusinessSector.SERVICES),
            ("servicos", BusinessSector.SERVICES),
            ("Indústria", BusinessSector.INDUSTRY),
        ],
    )
    def test_sector_labels(self, label: str, expected: BusinessSector):
        tax_input = TaxInput(monthly_revenue=Decimal("1000"), sector=label)
        assert tax_input.sector == expected

    def test_unknown_sector(self):
        with pytest.raises(ValidationError):
            TaxInput(monthly_revenue=Decimal("1000"), sector="Agro")

    def test_annex_lookup(self, service_input: TaxInput):
        assert service_input.annex_label == "Anexo III: Serviços (Geral)"
        assert "TI" in service_input.annex_description


class TestTaxRates:
    def test_cbs_share_complements_ibs(self):
        rates = TaxRates(ibs_share=Decimal("0.64"))
        assert rates.cbs_share == Decimal("0.36")

    def test_credit_rate_percent(self):
        assert TaxRates().credit_rate_percent == Decimal("26.5")


class TestImpactLevel:
    """Test suite for ImpactLevel parsing and ordering."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("HIGH", ImpactLevel.HIGH),
            ("medium", ImpactLevel.MEDIUM),
            ("ALTO", ImpactLevel.HIGH),
            ("Médio", ImpactLevel.MEDIUM),
            ("medio", ImpactLevel.MEDIUM),
            ("baixo", ImpactLevel.LOW),
        ],
    )
    def test_parse(self, value: str, expected: ImpactLevel):
        assert ImpactLevel.parse(value) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            ImpactLevel.parse("URGENT")

    def test_priority_order(self):
        assert ImpactLevel.HIGH.priority < ImpactLevel.MEDIUM.priority < ImpactLevel.LOW.priority

    def test_fold_label(self):
        assert fold_label("  média  prioridade ") == "MEDIA_PRIORIDADE"


def _actions(prefix: str) -> list[StrategicAction]:
    return [
        StrategicAction(task=f"{prefix} {index}", description="d", implementation="i")
        for index in range(5)
    ]


class TestStrategicPoint:
    def test_requires_five_actions(self):
        with pytest.raises(ValidationError):
            StrategicPoint(
                title="T",
                description="D",
                impact_level=ImpactLevel.HIGH,
                actions=_actions("a")[:4],
            )

    def test_accepts_portuguese_level(self):
        point = StrategicPoint.model_validate(
            {
                "title": "T",
                "description": "D",
                "impactLevel": "BAIXO",
                "actions": [action.model_dump(by_alias=True) for action in _actions("a")],
            }
        )
        assert point.impact_level == ImpactLevel.LOW


class TestComparisonResult:
    """Test suite for ComparisonResult constraints and serialization."""

    def test_legal_optimization_count(self, example_input: TaxInput):
        result = compute_deterministic(example_input)
        data = result.model_dump()
        data["legal_optimizations"] = data["legal_optimizations"][:2]

        with pytest.raises(ValidationError):
            ComparisonResult.model_validate(data)

    def test_roadmap_must_be_in_priority_order(self, example_input: TaxInput):
        result = compute_deterministic(example_input)
        data = result.model_dump()
        data["strategic_roadmap"] = list(reversed(data["strategic_roadmap"]))

        with pytest.raises(ValidationError):
            ComparisonResult.model_validate(data)

    def test_frozen(self, example_input: TaxInput):
        result = compute_deterministic(example_input)
        with pytest.raises(ValidationError):
            result.savings = Decimal("1")

    def test_json_uses_camel_case_numbers(self, example_input: TaxInput):
        payload = json.loads(compute_deterministic(example_input).model_dump_json(by_alias=True))

        assert payload["simplesTotal"] == pytest.approx(22484.8)
        assert payload["reformTotal"] == pytest.approx(14045.0)
        assert payload["recommendation"] == "REFORMA"
        assert payload["source"] == "fallback"
        assert payload["strategicRoadmap"][0]["impactLevel"] == "HIGH"
        assert set(payload["legalOptimizations"][0]) == {"title", "howToImplement", "benefitExpected"}

    def test_projected_savings(self, example_input: TaxInput):
        result = compute_deterministic(example_input)
        projection = result.projected_savings()

        assert len(projection) == 5
        assert projection[0] == result.annual_savings
        assert projection[-1] == result.annual_savings * 5

    def test_legal_optimization_aliases(self):
        item = LegalOptimization.model_validate(
            {"title": "T", "howToImplement": "H", "benefitExpected": "B"}
        )
        assert item.how_to_implement == "H"
