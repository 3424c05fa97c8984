"""Tests for the retry/fallback comparison agent."""

import asyncio
import html
import time
from decimal import Decimal
from typing import Any

import pytest

from tributo_agents.comparison_agent import (
    AttemptFailure,
    AttemptState,
    ComparisonAgent,
    compute_comparison,
    compute_comparison_async,
)
from tributo_agents.config import LLMConfig, ResilienceConfig, TributoConfig
from tributo_agents.interfaces import AgentProtocol, AgentStatus
from tributo_core.exceptions import ParseError, TransportError, ValidationFailure, ValidationReason
from tributo_core.models import ResultSource, TaxInput
from tributo_core.prompts import PromptVariant


def _config(*, timeout: float = 1.0, api_key: str = "test-key", **resilience) -> TributoConfig:
    resilience.setdefault("retry_delay", 0)
    return TributoConfig(
        llm=LLMConfig(api_key=api_key, timeout=timeout),
        resilience=ResilienceConfig(**resilience),
    )



def _tagged(value: Any) -> str:
    """Render candidate fields in the tagged answer format."""
    if isinstance(value, dict):
        return "".join(f"<{key}>{_tagged(child)}</{key}>" for key, child in value.items())
    if isinstance(value, list):
        return "".join(f"<item>{_tagged(child)}</item>" for child in value)
    return html.escape(str(value))


class TestAttemptState:
    def test_budget(self):
        state = AttemptState(max_attempts=2, variant=PromptVariant.STANDARD)

        state = state.start_attempt()
        assert not state.exhausted
        state = state.start_attempt()
        assert state.exhausted

    def test_record_failure_is_a_new_value(self):
        state = AttemptState(max_attempts=3, variant=PromptVariant.STANDARD).start_attempt()
        failure = AttemptFailure.from_exception(1, PromptVariant.STANDARD, ParseError("no json"))

        updated = state.record_failure(failure, PromptVariant.TAGGED)

        assert state.failures == ()
        assert updated.failures == (failure,)
        assert updated.variant == PromptVariant.TAGGED

    def test_failure_from_validation_error(self):
        error = ValidationFailure("dup", reason=ValidationReason.DUPLICATE_ACTIONS)
        failure = AttemptFailure.from_exception(2, PromptVariant.EXPERT, error)

        assert failure.as_dict() == {
            "attempt": 2,
            "kind": "validation",
            "reason": "duplicate_actions",
            "message": "dup",
            "variant": "expert",
        }

    def test_failure_from_unexpected_error(self):
        failure = AttemptFailure.from_exception(1, PromptVariant.STANDARD, KeyError("x"))
        assert failure.kind == "unexpected"
        assert failure.reason is None


class TestComparisonAgent:
    """Test suite for ComparisonAgent."""

    def test_satisfies_agent_protocol(self, scripted_backend):
        agent = ComparisonAgent(_config(), backend=scripted_backend({}))
        assert isinstance(agent, AgentProtocol)

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend(candidate_factory())
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.status == AgentStatus.SUCCESS
        result = agent_result.data
        assert result.source == ResultSource.GENERATED
        assert result.health_score == 92
        assert result.strategic_roadmap[0].title == "Cadeia de créditos"
        assert agent_result.metadata["attempts"] == 1
        assert agent_result.metadata["failures"] == []
        assert agent_result.duration_ms is not None
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_retries_after_transport_error(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend(TransportError("overloaded", status_code=529), candidate_factory())
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.is_success
        assert agent_result.metadata["attempts"] == 2
        assert agent_result.metadata["failures"][0]["kind"] == "transport"

    @pytest.mark.asyncio
    async def test_retries_after_arithmetic_drift(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend(candidate_factory(reformTotal=30000), candidate_factory())
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.is_success
        assert agent_result.metadata["failures"][0]["reason"] == "arithmetic_drift"

    @pytest.mark.asyncio
    async def test_falls_back_after_the_last_attempt(self, example_input: TaxInput, scripted_backend, candidate_factory):
        broken = candidate_factory()
        broken["strategicRoadmap"].pop()
        backend = scripted_backend(broken)
        agent = ComparisonAgent(_config(max_attempts=3), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.status == AgentStatus.PARTIAL
        assert len(backend.calls) == 3
        assert len(agent_result.warnings) == 3
        result = agent_result.data
        assert result.is_fallback
        assert result.health_score == 80
        assert result.recommendation.value == "REFORMA"
        assert {f["reason"] for f in agent_result.metadata["failures"]} == {"roadmap_cardinality"}

    @pytest.mark.asyncio
    async def test_timeout_bounds_each_attempt(self, example_input: TaxInput, scripted_backend):
        backend = scripted_backend(scripted_backend.HANG)
        agent = ComparisonAgent(_config(timeout=0.05, max_attempts=2), backend=backend)

        start = time.perf_counter()
        agent_result = await agent.process(example_input)
        elapsed = time.perf_counter() - start

        assert agent_result.is_partial
        assert elapsed < 2
        assert [f["kind"] for f in agent_result.metadata["failures"]] == ["timeout", "timeout"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_absorbed(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend(RuntimeError("boom"), candidate_factory())
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.is_success
        assert agent_result.metadata["failures"][0]["kind"] == "unexpected"

    @pytest.mark.asyncio
    async def test_parse_error_switches_to_tagged(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend("Desculpe, não posso responder em JSON.", candidate_factory())
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.is_success
        assert agent_result.metadata["variant"] == "tagged"
        assert backend.calls[0]["response_schema"] is not None
        assert backend.calls[1]["response_schema"] is None
        assert "<strategicRoadmap>" in backend.calls[1]["prompt"]

    @pytest.mark.asyncio
    async def test_tagged_answer_end_to_end(self, example_input: TaxInput, scripted_backend, candidate_factory):
        """Brazilian-formatted numbers in a tagged answer reach the result."""
        fields = candidate_factory(
            simplesTotal="22.484,80",
            reformTotal="R$ 14.045,00",
            savings="8.439,80",
            annualSavings="101.277,60",
            effectiveRateSimples="10,81%",
            effectiveRateReform="6,75%",
            ibsAmount="9.129,25",
            cbsAmount="4.915,75",
            creditsTaken="41.075,00",
        )
        backend = scripted_backend("Segue o parecer:\n" + _tagged(fields))
        agent = ComparisonAgent(_config(prompt_variant=PromptVariant.TAGGED), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.status == AgentStatus.SUCCESS
        assert agent_result.metadata["attempts"] == 1
        result = agent_result.data
        assert result.source == ResultSource.GENERATED
        assert result.simples_total == Decimal("22484.80")
        assert result.reform_total == Decimal("14045.00")
        assert len(result.legal_optimizations) == 3
        assert result.strategic_roadmap[0].actions[0].task == "Mapear fornecedores estratégicos"
        assert backend.calls[0]["response_schema"] is None

    @pytest.mark.asyncio
    async def test_breakdown_follows_the_accepted_totals(self, example_input: TaxInput, scripted_backend, candidate_factory):
        """A split that contradicts reformTotal is replaced, not returned."""
        backend = scripted_backend(
            candidate_factory(ibsAmount=1, cbsAmount=2, creditsTaken=5, effectiveRateSimples=99)
        )
        agent = ComparisonAgent(_config(), backend=backend)

        agent_result = await agent.process(example_input)

        assert agent_result.status == AgentStatus.SUCCESS
        result = agent_result.data
        assert result.ibs_amount + result.cbs_amount == result.reform_total
        assert result.credits_taken == Decimal("41075")
        assert result.effective_rate_simples == pytest.approx(Decimal("10.81"), abs=Decimal("0.001"))

    @pytest.mark.asyncio
    async def test_switch_can_be_disabled(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend("sem json", candidate_factory())
        agent = ComparisonAgent(
            _config(switch_to_tagged_on_parse_error=False),
            backend=backend,
        )

        agent_result = await agent.process(example_input)

        assert agent_result.metadata["variant"] == "standard"
        assert backend.calls[1]["response_schema"] is not None

    @pytest.mark.asyncio
    async def test_expert_variant(self, example_input: TaxInput, scripted_backend, candidate_factory):
        backend = scripted_backend(candidate_factory(legal_count=5))
        agent = ComparisonAgent(_config(prompt_variant=PromptVariant.EXPERT), backend=backend)

        result = await agent.compute(example_input)

        assert not result.is_fallback
        assert len(result.legal_optimizations) == 5

    @pytest.mark.asyncio
    async def test_no_backend_goes_straight_to_fallback(self, example_input: TaxInput, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        agent = ComparisonAgent(_config(api_key=None, prompt_variant=PromptVariant.EXPERT))

        agent_result = await agent.process(example_input)

        assert agent.client is None
        assert agent_result.is_partial
        assert agent_result.metadata["attempts"] == 0
        assert len(agent_result.data.legal_optimizations) == 5

    @pytest.mark.asyncio
    async def test_rejects_other_input(self, scripted_backend):
        agent = ComparisonAgent(_config(), backend=scripted_backend({}))

        agent_result = await agent.process({"monthlyRevenue": 1000})

        assert agent_result.is_error
        assert agent_result.data is None
        assert "TaxInput" in agent_result.error

    @pytest.mark.asyncio
    async def test_concurrent_invocations(self, example_input: TaxInput, service_input: TaxInput, scripted_backend, candidate_factory):
        """Invocations sharing an agent do not share attempt state."""
        backend = scripted_backend(candidate_factory())
        agent = ComparisonAgent(_config(max_attempts=2), backend=backend)

        first, second = await asyncio.gather(
            agent.process(example_input),
            agent.process(service_input),
        )

        assert first.is_success
        # The service business has different totals, so every answer drifts
        assert second.is_partial
        assert second.metadata["attempts"] == 2
        assert first.metadata["attempts"] == 1


class TestComputeComparison:
    @pytest.mark.asyncio
    async def test_async_entry_point(self, example_input: TaxInput, scripted_backend, candidate_factory):
        result = await compute_comparison_async(
            example_input,
            _config(),
            backend=scripted_backend(candidate_factory()),
        )
        assert result.source == ResultSource.GENERATED

    def test_sync_entry_point(self, service_input: TaxInput, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        result = compute_comparison(service_input, _config(api_key=None))

        assert result.is_fallback
        assert result.recommendation.value == "SIMPLES"

    @pytest.mark.asyncio
    @pytest.mark.filterwarnings("ignore:coroutine .* was never awaited")
    async def test_sync_entry_point_inside_a_running_loop(self, service_input: TaxInput, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(RuntimeError):
            compute_comparison(service_input, _config(api_key=None))

    def test_revenue_beyond_the_default_precision(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        result = compute_comparison(TaxInput(monthly_revenue=Decimal("1e27")), _config(api_key=None))

        assert result.is_fallback
        assert result.simples_total == Decimal("1.081e26")
