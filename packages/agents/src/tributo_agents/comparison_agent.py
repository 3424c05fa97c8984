"""Retry/fallback orchestration of the regime comparison.

ComparisonAgent runs up to ``max_attempts`` generation attempts, validates
each answer and returns the first one that passes. Every failure kind
(transport, timeout, parse, validation, or anything unexpected) is
absorbed: after the last attempt the deterministic calculator produces the
result instead. Callers always get a ComparisonResult back.

Attempt bookkeeping lives in an AttemptState value passed through the
loop, so concurrent invocations share nothing.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from tributo_core import __version__ as core_version
from tributo_core.calculator import FALLBACK_HEALTH_SCORE, compute_deterministic, compute_figures
from tributo_core.exceptions import GenerationError, ParseError, ValidationFailure
from tributo_core.generation import GenerationClient, TextGenerationBackend, create_backend
from tributo_core.models import ComparisonResult, ResultSource, TaxInput
from tributo_core.prompts import PromptVariant, get_profile
from tributo_core.sanitizer import GENERATED_HEALTH_SCORE, sanitize
from tributo_core.validator import CandidateValidator

from tributo_agents.config import TributoConfig
from tributo_agents.interfaces import AgentResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class AttemptFailure:
    """Why one generation attempt did not produce a usable result."""

    attempt: int
    kind: str
    reason: Optional[str]
    message: str
    variant: str

    @classmethod
    def from_exception(cls, attempt: int, variant: PromptVariant, error: Exception) -> "AttemptFailure":
        if isinstance(error, GenerationError):
            kind = error.kind
        else:
            kind = "unexpected"
        reason = error.reason.value if isinstance(error, ValidationFailure) else None
        return cls(
            attempt=attempt,
            kind=kind,
            reason=reason,
            message=str(error) or type(error).__name__,
            variant=variant.value,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AttemptState:
    """Progress of one invocation through its attempt budget."""

    max_attempts: int
    variant: PromptVariant
    attempts: int = 0
    failures: tuple[AttemptFailure, ...] = ()

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def start_attempt(self) -> "AttemptState":
        return replace(self, attempts=self.attempts + 1)

    def record_failure(self, failure: AttemptFailure, next_variant: PromptVariant) -> "AttemptState":
        return replace(self, failures=self.failures + (failure,), variant=next_variant)


class ComparisonAgent:
    """
    Produce a ComparisonResult for a TaxInput, preferring a model-written
    one and falling back to the deterministic calculator.

    Satisfies AgentProtocol[TaxInput, ComparisonResult].
    """

    AGENT_NAME = "ComparisonAgent"
    AGENT_VERSION = core_version

    def __init__(
        self,
        config: Optional[TributoConfig] = None,
        *,
        backend: Optional[TextGenerationBackend] = None,
    ):
        """
        Initialize the agent.

        Args:
            config: Settings (default: loaded from the environment)
            backend: Generation backend override. When omitted, an
                Anthropic backend is built from ``config.llm``; without an
                API key the agent always takes the deterministic path.
        """
        self.config = config or TributoConfig()
        self.rates = self.config.rates.to_tax_rates()

        llm = self.config.llm
        if backend is None:
            backend = create_backend(
                llm.resolved_api_key,
                model=llm.model,
                temperature=llm.temperature,
                max_tokens=llm.max_tokens,
                timeout=llm.timeout,
            )
        self.client: Optional[GenerationClient] = None
        if backend is not None:
            self.client = GenerationClient(backend, timeout=llm.timeout, rates=self.rates)

        resilience = self.config.resilience
        self.validator = CandidateValidator(
            min_unique_actions=resilience.min_unique_actions,
            arithmetic_tolerance=resilience.arithmetic_tolerance,
        )

    def validate_input(self, input_data: TaxInput) -> bool:
        return isinstance(input_data, TaxInput)

    async def process(self, input_data: TaxInput) -> AgentResult[ComparisonResult]:
        """
        Run the comparison and wrap it in an AgentResult.

        Returns:
            SUCCESS with a generated result, PARTIAL with the fallback
            result (warnings list the failed attempts), or ERROR when the
            input is not a TaxInput.
        """
        if not self.validate_input(input_data):
            return AgentResult.failure(
                f"Expected TaxInput, got {type(input_data).__name__}",
                agent_name=self.AGENT_NAME,
                agent_version=self.AGENT_VERSION,
            )

        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        result, state = await self._run(input_data)

        metadata = {
            "attempts": state.attempts,
            "variant": state.variant.value,
            "source": result.source.value,
            "failures": [failure.as_dict() for failure in state.failures],
        }
        if result.is_fallback:
            agent_result = AgentResult.partial(
                result,
                agent_name=self.AGENT_NAME,
                agent_version=self.AGENT_VERSION,
                metadata=metadata,
                warnings=[f"attempt {f.attempt} ({f.kind}): {f.message}" for f in state.failures],
            )
        else:
            agent_result = AgentResult.success(
                result,
                agent_name=self.AGENT_NAME,
                agent_version=self.AGENT_VERSION,
                metadata=metadata,
            )

        agent_result.started_at = started_at
        agent_result.completed_at = datetime.now(timezone.utc)
        agent_result.duration_ms = (time.perf_counter() - start) * 1000
        return agent_result

    async def compute(self, tax_input: TaxInput) -> ComparisonResult:
        """Run the comparison and return just the result."""
        result, _ = await self._run(tax_input)
        return result

    async def _run(self, tax_input: TaxInput) -> tuple[ComparisonResult, AttemptState]:
        resilience = self.config.resilience
        state = AttemptState(
            max_attempts=resilience.max_attempts,
            variant=resilience.prompt_variant,
        )
        legal_count = get_profile(state.variant).legal_optimization_count

        if self.client is None:
            logger.warning("generation_backend_unavailable")
            return self._fallback(tax_input, legal_count), state

        expected = compute_figures(tax_input, self.rates)

        while not state.exhausted:
            if state.attempts > 0 and resilience.retry_delay > 0:
                await asyncio.sleep(resilience.retry_delay)
            state = state.start_attempt()
            profile = get_profile(state.variant)

            try:
                candidate = await self.client.generate(tax_input, state.variant)
                validated = self.validator.validate(candidate.data, profile, expected)
                result = sanitize(
                    validated.data,
                    tax_input,
                    rates=self.rates,
                    legal_count=legal_count,
                    health_score=GENERATED_HEALTH_SCORE,
                    source=ResultSource.GENERATED,
                )
            except GenerationError as e:
                failure = AttemptFailure.from_exception(state.attempts, state.variant, e)
            except Exception as e:
                logger.error(
                    "generation_attempt_crashed",
                    attempt=state.attempts,
                    variant=state.variant.value,
                    exc_info=True,
                )
                failure = AttemptFailure.from_exception(state.attempts, state.variant, e)
            else:
                logger.info(
                    "comparison_generated",
                    attempts=state.attempts,
                    variant=state.variant.value,
                    unique_actions=validated.unique_actions,
                )
                return result, state

            logger.warning(
                "generation_attempt_failed",
                attempt=failure.attempt,
                max_attempts=state.max_attempts,
                kind=failure.kind,
                reason=failure.reason,
                variant=failure.variant,
                error=failure.message,
            )
            state = state.record_failure(failure, self._next_variant(state.variant, failure))

        logger.warning(
            "comparison_fallback_used",
            attempts=state.attempts,
            failures=[failure.as_dict() for failure in state.failures],
        )
        return self._fallback(tax_input, legal_count), state

    def _next_variant(self, variant: PromptVariant, failure: AttemptFailure) -> PromptVariant:
        """Variant of the next attempt: the tagged counterpart after a JSON parse failure."""
        counterpart = get_profile(variant).tagged_counterpart
        if (
            failure.kind == ParseError.kind
            and counterpart is not None
            and self.config.resilience.switch_to_tagged_on_parse_error
        ):
            return counterpart
        return variant

    def _fallback(self, tax_input: TaxInput, legal_count: int) -> ComparisonResult:
        deterministic = compute_deterministic(tax_input, self.rates, legal_count=legal_count)
        return sanitize(
            deterministic.model_dump(by_alias=True),
            tax_input,
            rates=self.rates,
            legal_count=legal_count,
            health_score=FALLBACK_HEALTH_SCORE,
            source=ResultSource.FALLBACK,
        )


async def compute_comparison_async(
    tax_input: TaxInput,
    config: Optional[TributoConfig] = None,
    *,
    backend: Optional[TextGenerationBackend] = None,
) -> ComparisonResult:
    """Compare both regimes for ``tax_input``; never raises for a valid input."""
    agent = ComparisonAgent(config, backend=backend)
    return await agent.compute(tax_input)


def compute_comparison(
    tax_input: TaxInput,
    config: Optional[TributoConfig] = None,
    *,
    backend: Optional[TextGenerationBackend] = None,
) -> ComparisonResult:
    """
    Synchronous twin of compute_comparison_async for non-async callers.

    Runs its own event loop with ``asyncio.run``, so calling it from inside
    a running loop raises RuntimeError. Async code should await
    compute_comparison_async instead.
    """
    return asyncio.run(compute_comparison_async(tax_input, config, backend=backend))
