"""Output-side data models: the comparison result handed to the report layer.

The field names on the wire are camelCase (``simplesTotal``,
``strategicRoadmap`` ...) through pydantic aliases; Python code uses the
snake_case attribute names. A ComparisonResult is built once per call and
is immutable afterwards.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .tax import BusinessSector, fold_label

Money = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]
"""Non-negative amount in BRL; serialized as a JSON number."""

Percent = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]
"""Non-negative percentage (10.81 means 10.81%)."""


ROADMAP_SIZE = 3
ACTIONS_PER_POINT = 5
MIN_DECISION_DRIVERS = 3
MAX_DECISION_DRIVERS = 4
LEGAL_OPTIMIZATION_COUNTS = (3, 5)


class Recommendation(str, Enum):
    """Which regime comes out cheaper.

    SIMPLES is the declared-rate regime (regime A); REFORMA is the
    credit-based IBS/CBS regime (regime B).
    """

    SIMPLES = "SIMPLES"
    REFORMA = "REFORMA"


class ImpactLevel(str, Enum):
    """Priority bucket of a roadmap point. Declaration order is priority order."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def label(self) -> str:
        """Portuguese display label."""
        return _IMPACT_LABELS[self]

    @property
    def priority(self) -> int:
        """Sort key: HIGH sorts first."""
        return list(ImpactLevel).index(self)

    @classmethod
    def parse(cls, value: Any) -> "ImpactLevel":
        """Resolve a member from HIGH/MEDIUM/LOW or ALTO/MÉDIO/BAIXO."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            folded = fold_label(value)
            for member in cls:
                if folded in (member.value, fold_label(member.label)):
                    return member
        raise ValueError(f"Unknown impact level: {value!r}")


_IMPACT_LABELS = {
    ImpactLevel.HIGH: "ALTO",
    ImpactLevel.MEDIUM: "MÉDIO",
    ImpactLevel.LOW: "BAIXO",
}


class ResultSource(str, Enum):
    """Code path that produced a result."""

    GENERATED = "generated"
    FALLBACK = "fallback"


class _WireModel(BaseModel):
    """Base for models exchanged with the report layer and the model backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class StrategicAction(_WireModel):
    """A concrete step inside a roadmap point."""

    task: str = Field(min_length=1, description="Short label of the step")
    description: str = Field(description="What the step achieves")
    implementation: str = Field(description="How to carry it out")


class StrategicPoint(_WireModel):
    """A prioritized recommendation bucket with its action steps."""

    title: str = Field(min_length=1)
    description: str
    impact_level: ImpactLevel
    actions: list[StrategicAction] = Field(
        min_length=ACTIONS_PER_POINT,
        max_length=ACTIONS_PER_POINT,
    )

    @field_validator("impact_level", mode="before")
    @classmethod
    def parse_impact_level(cls, v: Any) -> ImpactLevel:
        """Accept English and Portuguese impact labels."""
        return ImpactLevel.parse(v)


class LegalOptimization(_WireModel):
    """A lawful tax-planning measure."""

    title: str = Field(min_length=1)
    how_to_implement: str
    benefit_expected: str


class ComparisonResult(_WireModel):
    """Side-by-side comparison of the Simples and the IBS/CBS regimes.

    Identities that always hold:
        savings == abs(simples_total - reform_total)
        annual_savings == savings * 12
        recommendation == REFORMA iff reform_total < simples_total
    """

    monthly_revenue: Money
    sector: BusinessSector

    simples_total: Money
    reform_total: Money
    savings: Money
    annual_savings: Money
    recommendation: Recommendation

    effective_rate_simples: Percent
    effective_rate_reform: Percent
    ibs_amount: Money
    cbs_amount: Money
    credits_taken: Money

    analysis: str
    technical_details: str
    decision_drivers: list[str] = Field(
        min_length=MIN_DECISION_DRIVERS,
        max_length=MAX_DECISION_DRIVERS,
    )
    legal_optimizations: list[LegalOptimization]
    strategic_roadmap: list[StrategicPoint] = Field(
        min_length=ROADMAP_SIZE,
        max_length=ROADMAP_SIZE,
    )

    health_score: int = Field(ge=0, le=100)
    source: ResultSource = ResultSource.GENERATED

    @field_validator("legal_optimizations")
    @classmethod
    def validate_legal_count(cls, v: list[LegalOptimization]) -> list[LegalOptimization]:
        """Legal optimizations come in a set of 3 (standard) or 5 (expert)."""
        if len(v) not in LEGAL_OPTIMIZATION_COUNTS:
            raise ValueError(
                f"Expected {' or '.join(map(str, LEGAL_OPTIMIZATION_COUNTS))} "
                f"legal optimizations, got {len(v)}"
            )
        return v

    @model_validator(mode="after")
    def check_roadmap_levels(self) -> "ComparisonResult":
        """Each impact level appears exactly once, in priority order."""
        levels = [point.impact_level for point in self.strategic_roadmap]
        if levels != list(ImpactLevel):
            raise ValueError(f"Roadmap must cover HIGH, MEDIUM, LOW in order, got {levels}")
        return self

    @property
    def is_fallback(self) -> bool:
        """Whether the deterministic path produced this result."""
        return self.source == ResultSource.FALLBACK

    def projected_savings(self, years: int = 5) -> list[Decimal]:
        """Cumulative savings at the end of each year, for the projection chart."""
        return [self.annual_savings * year for year in range(1, years + 1)]

    def action_tasks(self) -> list[str]:
        """All roadmap action labels, in roadmap order."""
        return [action.task for point in self.strategic_roadmap for action in point.actions]
