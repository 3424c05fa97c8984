"""Input-side data models: the business figures and the tax rate table.

These models describe what the caller (the form layer) hands to the
comparison engine. All monetary amounts are monthly figures in BRL.
"""

import unicodedata
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def fold_label(value: str) -> str:
    """Normalize a label for lookups: strip accents, collapse case and spaces."""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return "_".join(stripped.upper().split())


class BusinessSector(str, Enum):
    """Economic sector of the business being analysed."""

    COMMERCE = "COMMERCE"
    SERVICES = "SERVICES"
    INDUSTRY = "INDUSTRY"

    @property
    def label(self) -> str:
        """Portuguese display label, as shown in the form."""
        return _SECTOR_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> "BusinessSector":
        """Resolve an enum member from its value or its Portuguese label."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            folded = fold_label(value)
            for member in cls:
                if folded in (member.value, fold_label(member.label)):
                    return member
        raise ValueError(f"Unknown business sector: {value!r}")


_SECTOR_LABELS = {
    BusinessSector.COMMERCE: "Comércio",
    BusinessSector.SERVICES: "Serviços",
    BusinessSector.INDUSTRY: "Indústria",
}


# Simples Nacional annexes as offered by the form: (label, description)
SIMPLES_ANNEXES: dict[int, tuple[str, str]] = {
    1: (
        "Anexo I: Comércio",
        "Venda de mercadorias em geral (Lojas, Varejo, Atacado, E-commerce).",
    ),
    2: (
        "Anexo II: Indústria",
        "Empresas que industrializam produtos ou transformam matérias-primas.",
    ),
    3: (
        "Anexo III: Serviços (Geral)",
        "Locação, TI, academias, contabilidade, clínicas e maioria dos serviços.",
    ),
    4: (
        "Anexo IV: Construção/Vigilância",
        "Limpeza, obras e advocacia (Cálculo de INSS patronal fora da guia).",
    ),
    5: (
        "Anexo V: Serviços Intelectuais",
        "Engenharia, auditoria e tecnologia (Sujeito ao Fator R).",
    ),
}


class TaxRates(BaseModel):
    """Rate table used by the arithmetic model.

    The credit-based regime applies one combined IBS/CBS rate both to the
    revenue (debit) and to the creditable purchases (credit). The combined
    amount is then split between IBS and CBS by a fixed share.
    """

    model_config = ConfigDict(frozen=True)

    credit_rate: Decimal = Field(
        default=Decimal("0.265"),
        gt=0,
        lt=1,
        description="Combined IBS/CBS rate applied to revenue and to creditable inputs",
    )
    default_declared_rate: Decimal = Field(
        default=Decimal("10.81"),
        gt=0,
        le=100,
        description="Effective Simples rate (percent) used when the user declares none",
    )
    ibs_share: Decimal = Field(
        default=Decimal("0.65"),
        ge=0,
        le=1,
        description="Share of the reform total attributed to IBS; CBS gets the rest",
    )

    @property
    def cbs_share(self) -> Decimal:
        """Share of the reform total attributed to CBS."""
        return Decimal("1") - self.ibs_share

    @property
    def credit_rate_percent(self) -> Decimal:
        """Credit rate expressed as a percentage."""
        return self.credit_rate * 100


class TaxInput(BaseModel):
    """Monthly operating figures of the business, as collected by the form.

    The caller fills every default before invoking the engine; the only
    hard requirement is a strictly positive revenue, which is used as a
    divisor for the effective rates.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "monthlyRevenue": 208000,
                    "monthlyPurchases": 140000,
                    "payroll": 29852,
                    "otherInputs": 15000,
                    "accumulatedRevenue": 2500000,
                    "sector": "COMMERCE",
                    "simplesAnnex": 1,
                    "customSimplesRate": 10.81,
                }
            ]
        },
    )

    monthly_revenue: Decimal = Field(
        gt=0,
        description="Gross monthly revenue",
    )
    monthly_purchases: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Monthly purchases of goods and inputs (full credit)",
    )
    payroll: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Monthly payroll (no credit in the value-added model)",
    )
    other_inputs: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Other creditable costs: energy, rent paid to companies, telecom",
    )
    accumulated_revenue: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Revenue accumulated over the last twelve months",
    )
    sector: BusinessSector = Field(
        default=BusinessSector.COMMERCE,
        description="Economic sector",
    )
    simples_annex: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Simples Nacional annex (bracket table) the business falls under",
    )
    custom_simples_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        le=100,
        description="User-declared effective Simples rate, in percent",
    )

    @field_validator("sector", mode="before")
    @classmethod
    def parse_sector(cls, v: Any) -> BusinessSector:
        """Accept enum values as well as the Portuguese labels."""
        return BusinessSector.parse(v)

    @property
    def creditable_inputs(self) -> Decimal:
        """Purchases plus other creditable costs."""
        return self.monthly_purchases + self.other_inputs

    @property
    def annex_label(self) -> str:
        """Display label of the Simples annex."""
        return SIMPLES_ANNEXES[self.simples_annex][0]

    @property
    def annex_description(self) -> str:
        """Activities covered by the Simples annex."""
        return SIMPLES_ANNEXES[self.simples_annex][1]

    def declared_rate(self, rates: TaxRates) -> Decimal:
        """Effective Simples rate in percent, falling back to the table default."""
        if self.custom_simples_rate is not None:
            return self.custom_simples_rate
        return rates.default_declared_rate
