"""Prompt variants and prompt construction for the generation backend.

A PromptVariant selects a PromptProfile: the output format the model must
use (schema-constrained JSON or tagged free text), whether a response
schema is sent along, and the cardinality requirements for the list
fields. A single prompt builder serves every variant.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .models import (
    ACTIONS_PER_POINT,
    MAX_DECISION_DRIVERS,
    MIN_DECISION_DRIVERS,
    ROADMAP_SIZE,
    ImpactLevel,
    TaxInput,
    TaxRates,
)


class OutputFormat(str, Enum):
    """Shape of the model's answer."""

    JSON = "json"
    TAGGED = "tagged"


class PromptVariant(str, Enum):
    """Named prompt configurations."""

    STANDARD = "standard"
    EXPERT = "expert"
    TAGGED = "tagged"
    TAGGED_EXPERT = "tagged_expert"


@dataclass(frozen=True)
class PromptProfile:
    """Requirements a prompt variant places on the model's answer."""

    variant: PromptVariant
    output_format: OutputFormat
    use_schema: bool
    legal_optimization_count: int
    tagged_counterpart: Optional[PromptVariant] = None
    min_decision_drivers: int = MIN_DECISION_DRIVERS
    max_decision_drivers: int = MAX_DECISION_DRIVERS
    roadmap_size: int = ROADMAP_SIZE
    actions_per_point: int = ACTIONS_PER_POINT

    @property
    def total_actions(self) -> int:
        """Number of action steps across the whole roadmap."""
        return self.roadmap_size * self.actions_per_point


PROMPT_PROFILES: dict[PromptVariant, PromptProfile] = {
    PromptVariant.STANDARD: PromptProfile(
        variant=PromptVariant.STANDARD,
        output_format=OutputFormat.JSON,
        use_schema=True,
        legal_optimization_count=3,
        tagged_counterpart=PromptVariant.TAGGED,
    ),
    PromptVariant.EXPERT: PromptProfile(
        variant=PromptVariant.EXPERT,
        output_format=OutputFormat.JSON,
        use_schema=True,
        legal_optimization_count=5,
        tagged_counterpart=PromptVariant.TAGGED_EXPERT,
    ),
    PromptVariant.TAGGED: PromptProfile(
        variant=PromptVariant.TAGGED,
        output_format=OutputFormat.TAGGED,
        use_schema=False,
        legal_optimization_count=3,
    ),
    PromptVariant.TAGGED_EXPERT: PromptProfile(
        variant=PromptVariant.TAGGED_EXPERT,
        output_format=OutputFormat.TAGGED,
        use_schema=False,
        legal_optimization_count=5,
    ),
}


def get_profile(variant: PromptVariant) -> PromptProfile:
    """Look up the profile of a prompt variant."""
    return PROMPT_PROFILES[PromptVariant(variant)]


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================

_TEXT = {"type": "string"}
_NUMBER = {"type": "number", "minimum": 0}


def response_schema(profile: PromptProfile) -> dict[str, Any]:
    """JSON schema of the expected answer, with the profile's cardinalities."""
    action = {
        "type": "object",
        "properties": {"task": _TEXT, "description": _TEXT, "implementation": _TEXT},
        "required": ["task", "description", "implementation"],
    }
    point = {
        "type": "object",
        "properties": {
            "title": _TEXT,
            "description": _TEXT,
            "impactLevel": {"type": "string", "enum": [level.value for level in ImpactLevel]},
            "actions": {
                "type": "array",
                "items": action,
                "minItems": profile.actions_per_point,
                "maxItems": profile.actions_per_point,
            },
        },
        "required": ["title", "description", "impactLevel", "actions"],
    }
    optimization = {
        "type": "object",
        "properties": {"title": _TEXT, "howToImplement": _TEXT, "benefitExpected": _TEXT},
        "required": ["title", "howToImplement", "benefitExpected"],
    }
    return {
        "type": "object",
        "properties": {
            "simplesTotal": _NUMBER,
            "reformTotal": _NUMBER,
            "savings": _NUMBER,
            "annualSavings": _NUMBER,
            "recommendation": {"type": "string", "enum": ["SIMPLES", "REFORMA"]},
            "effectiveRateSimples": _NUMBER,
            "effectiveRateReform": _NUMBER,
            "ibsAmount": _NUMBER,
            "cbsAmount": _NUMBER,
            "creditsTaken": _NUMBER,
            "analysis": _TEXT,
            "technicalDetails": _TEXT,
            "decisionDrivers": {
                "type": "array",
                "items": _TEXT,
                "minItems": profile.min_decision_drivers,
                "maxItems": profile.max_decision_drivers,
            },
            "legalOptimizations": {
                "type": "array",
                "items": optimization,
                "minItems": profile.legal_optimization_count,
                "maxItems": profile.legal_optimization_count,
            },
            "strategicRoadmap": {
                "type": "array",
                "items": point,
                "minItems": profile.roadmap_size,
                "maxItems": profile.roadmap_size,
            },
        },
        "required": [
            "simplesTotal",
            "reformTotal",
            "recommendation",
            "analysis",
            "technicalDetails",
            "decisionDrivers",
            "legalOptimizations",
            "strategicRoadmap",
        ],
    }


# =============================================================================
# PROMPT TEXT
# =============================================================================

_TAGGED_EXAMPLE = """<simplesTotal>0.00</simplesTotal>
<reformTotal>0.00</reformTotal>
<recommendation>SIMPLES ou REFORMA</recommendation>
<analysis>texto longo</analysis>
<technicalDetails>detalhamento técnico dos tributos</technicalDetails>
<decisionDrivers><item>fator 1</item><item>fator 2</item><item>fator 3</item></decisionDrivers>
<legalOptimizations>
  <item><title>...</title><howToImplement>...</howToImplement><benefitExpected>...</benefitExpected></item>
</legalOptimizations>
<strategicRoadmap>
  <item>
    <title>...</title><description>...</description><impactLevel>HIGH</impactLevel>
    <actions>
      <item><task>...</task><description>...</description><implementation>...</implementation></item>
    </actions>
  </item>
</strategicRoadmap>"""


def _json_skeleton(tax_input: TaxInput, declared_rate: str) -> str:
    skeleton = {
        "monthlyRevenue": float(tax_input.monthly_revenue),
        "simplesTotal": "number",
        "reformTotal": "number",
        "savings": "number",
        "annualSavings": "number",
        "recommendation": "SIMPLES | REFORMA",
        "analysis": "texto longo",
        "technicalDetails": "detalhamento técnico dos tributos",
        "ibsAmount": "number",
        "cbsAmount": "number",
        "creditsTaken": "number",
        "effectiveRateSimples": declared_rate,
        "effectiveRateReform": "number",
        "decisionDrivers": ["string"],
        "legalOptimizations": [
            {"title": "string", "howToImplement": "string", "benefitExpected": "string"}
        ],
        "strategicRoadmap": [
            {
                "title": "string",
                "description": "string",
                "impactLevel": "HIGH | MEDIUM | LOW",
                "actions": [{"task": "string", "description": "string", "implementation": "string"}],
            }
        ],
    }
    return json.dumps(skeleton, ensure_ascii=False, indent=2)


def build_prompt(tax_input: TaxInput, profile: PromptProfile, rates: Optional[TaxRates] = None) -> str:
    """Build the instruction prompt for one generation attempt."""
    rates = rates or TaxRates()
    declared_rate = str(tax_input.declared_rate(rates))
    credit_rate = f"{rates.credit_rate_percent.normalize():f}"
    ibs_share = f"{(rates.ibs_share * 100).normalize():f}"
    cbs_share = f"{(rates.cbs_share * 100).normalize():f}"

    if profile.output_format == OutputFormat.JSON:
        output_section = (
            "RETORNE APENAS UM OBJETO JSON, sem texto adicional, neste formato:\n"
            f"{_json_skeleton(tax_input, declared_rate)}"
        )
    else:
        output_section = (
            "RETORNE CADA CAMPO ENTRE TAGS DE ABERTURA E FECHAMENTO com o nome do campo. "
            "Listas usam uma tag <item> por elemento. Não use JSON. Formato:\n"
            f"{_TAGGED_EXAMPLE}"
        )

    return f"""Aja como um Auditor Fiscal e Consultor Tributário Sênior especializado na PEC 45/2019 (Reforma Tributária).
Sua missão é entregar um parecer técnico de ALTA DENSIDADE para uma empresa do setor de {tax_input.sector.label}.

DADOS OPERACIONAIS:
- Faturamento Mensal: R$ {tax_input.monthly_revenue}
- Compras/Insumos: R$ {tax_input.monthly_purchases} (Geram crédito pleno de {credit_rate}% no IBS/CBS)
- Folha de Pagamento: R$ {tax_input.payroll} (Não gera crédito direto no modelo de valor adicionado)
- Outros Custos Fixos (Energia, Aluguel PJ, Telecom): R$ {tax_input.other_inputs} (Geram crédito pleno)
- Faturamento Acumulado (12 meses): R$ {tax_input.accumulated_revenue}
- Enquadramento: {tax_input.annex_label} ({tax_input.annex_description})
- Alíquota Efetiva Atual no Simples: {declared_rate}%

FÓRMULAS OBRIGATÓRIAS (use exatamente estas):
- simplesTotal = faturamento * {declared_rate} / 100
- creditsTaken = (compras + outros custos) * {credit_rate} / 100
- reformTotal = max(0, faturamento * {credit_rate} / 100 - creditsTaken)
- savings = |simplesTotal - reformTotal|; annualSavings = savings * 12
- effectiveRateReform = reformTotal / faturamento * 100
- ibsAmount = reformTotal * {ibs_share} / 100; cbsAmount = reformTotal * {cbs_share} / 100
- recommendation = "REFORMA" se reformTotal < simplesTotal, senão "SIMPLES"

REQUISITOS DA ANÁLISE:
1. PARECER TÉCNICO ("analysis"): Explique a transição do modelo de "cumulatividade" para "não-cumulatividade plena". Compare o custo de oportunidade.
2. DETALHAMENTO ("technicalDetails"): Descreva a decomposição do imposto (IBS vs CBS) e o impacto no preço de venda.
3. FATORES DE DECISÃO ("decisionDrivers"): entre {profile.min_decision_drivers} e {profile.max_decision_drivers} frases curtas.
4. OTIMIZAÇÃO LEGAL ("legalOptimizations"): EXATAMENTE {profile.legal_optimization_count} estratégias de elisão fiscal (legal), como homologação de fornecedores que dão crédito cheio e gestão de resíduos/insumos.
5. ROTEIRO ("strategicRoadmap"): EXATAMENTE {profile.roadmap_size} itens, um para cada impactLevel (HIGH, MEDIUM, LOW), cada um com EXATAMENTE {profile.actions_per_point} ações ("actions") com {{task, description, implementation}}. Os {profile.total_actions} rótulos "task" devem ser todos diferentes entre si.

IMPORTANTE: O texto deve ser rico, profissional e encorajador, mostrando como a lei permite pagar menos se bem gerida.

{output_section}
"""
