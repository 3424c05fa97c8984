"""Shared fixtures for the tributo-core and tributo-agents test suites."""

import asyncio
import copy
import json
from decimal import Decimal
from typing import Any, Optional

import pytest

from tributo_core.models import BusinessSector, TaxInput


@pytest.fixture
def example_input() -> TaxInput:
    """A commerce business whose credits make the IBS/CBS regime cheaper."""
    return TaxInput(
        monthly_revenue=Decimal("208000"),
        monthly_purchases=Decimal("140000"),
        payroll=Decimal("29852"),
        other_inputs=Decimal("15000"),
        accumulated_revenue=Decimal("2496000"),
        sector=BusinessSector.COMMERCE,
        simples_annex=1,
        custom_simples_rate=Decimal("10.81"),
    )


@pytest.fixture
def service_input() -> TaxInput:
    """A payroll-heavy services business with almost no creditable inputs."""
    return TaxInput(
        monthly_revenue=Decimal("50000"),
        monthly_purchases=Decimal("2000"),
        payroll=Decimal("30000"),
        other_inputs=Decimal("1000"),
        sector=BusinessSector.SERVICES,
        simples_annex=3,
        custom_simples_rate=Decimal("6"),
    )


_ROADMAP = [
    ("HIGH", "Cadeia de créditos", [
        "Mapear fornecedores estratégicos",
        "Solicitar enquadramento tributário",
        "Classificar insumos por NCM",
        "Comparar custo líquido de crédito",
        "Substituir fornecedores sem crédito",
    ]),
    ("MEDIUM", "Sistemas e caixa", [
        "Atualizar o ERP",
        "Simular o split payment",
        "Revisar o fluxo de recebíveis",
        "Configurar o motor fiscal",
        "Capacitar o time financeiro",
    ]),
    ("LOW", "Preços e contratos", [
        "Recalcular markup",
        "Revisar contratos de fornecimento",
        "Atualizar tabela de preços",
        "Comunicar clientes B2B",
        "Ajustar etiquetas e vitrines",
    ]),
]


def build_candidate(legal_count: int = 3, **overrides: Any) -> dict[str, Any]:
    """A well-formed model answer for the example input, camelCase keyed."""
    candidate: dict[str, Any] = {
        "simplesTotal": 22484.80,
        "reformTotal": 14045.00,
        "savings": 8439.80,
        "annualSavings": 101277.60,
        "recommendation": "REFORMA",
        "effectiveRateSimples": 10.81,
        "effectiveRateReform": 6.75,
        "ibsAmount": 9129.25,
        "cbsAmount": 4915.75,
        "creditsTaken": 41075.00,
        "analysis": "A não-cumulatividade plena reduz a carga desta empresa.",
        "technicalDetails": "IBS e CBS somam 26,5% com crédito sobre insumos.",
        "decisionDrivers": [
            "Alto volume de compras creditáveis",
            "Folha de pagamento moderada",
            "Clientes majoritariamente empresas",
        ],
        "legalOptimizations": [
            {
                "title": f"Otimização {index}",
                "howToImplement": f"Passo a passo da otimização {index}",
                "benefitExpected": f"Benefício da otimização {index}",
            }
            for index in range(1, legal_count + 1)
        ],
        "strategicRoadmap": [
            {
                "title": title,
                "description": f"Frente de trabalho: {title.lower()}",
                "impactLevel": level,
                "actions": [
                    {
                        "task": task,
                        "description": f"Descrição de {task.lower()}",
                        "implementation": f"Como executar {task.lower()}",
                    }
                    for task in tasks
                ],
            }
            for level, title, tasks in _ROADMAP
        ],
    }
    candidate.update(overrides)
    return candidate


@pytest.fixture
def candidate_factory():
    """Factory for well-formed candidates; pass overrides as keyword args."""
    def factory(legal_count: int = 3, **overrides: Any) -> dict[str, Any]:
        return copy.deepcopy(build_candidate(legal_count, **overrides))
    return factory


class ScriptedBackend:
    """
    Generation backend that replays a script of answers.

    Each entry is returned as text (dicts are serialized to JSON), raised
    when it is an exception, or never answers when it is ``HANG``. The last
    entry repeats once the script runs out.
    """

    HANG = object()

    def __init__(self, *script: Any):
        self.script = list(script)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        prompt: str,
        *,
        response_schema: Optional[dict[str, Any]] = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "response_schema": response_schema})
        entry = self.script[min(len(self.calls), len(self.script)) - 1]
        if entry is self.HANG:
            await asyncio.Event().wait()
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, dict):
            return json.dumps(entry, ensure_ascii=False)
        return entry


@pytest.fixture
def scripted_backend():
    """Build a ScriptedBackend: ``scripted_backend(answer1, error, ...)``."""
    return ScriptedBackend
