"""
Generation client for model-written comparison results.

Sends the comparison prompt to a text-generation backend under a hard
timeout and decodes the answer into candidate data, either from JSON
(schema-constrained) or from the tagged free-text format.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator, Optional, Protocol

import anthropic
import structlog

from .exceptions import GenerationTimeoutError, ParseError, TransportError
from .models import TaxInput, TaxRates
from .prompts import OutputFormat, PromptVariant, build_prompt, get_profile, response_schema
from .tagged_text import parse_tagged

logger = structlog.get_logger()

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_TIMEOUT = 12.0
DEFAULT_MAX_TOKENS = 8000
DEFAULT_TEMPERATURE = 0.2

RESULT_TOOL_NAME = "submit_comparison"

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


class TextGenerationBackend(Protocol):
    """Anything that turns a prompt into text within a bounded time."""

    async def complete(
        self,
        prompt: str,
        *,
        response_schema: Optional[dict[str, Any]] = None,
    ) -> str:
        """Return the model's answer; JSON text when a schema is given."""
        ...


class AnthropicBackend:
    """
    Text-generation backend on the Anthropic Messages API.

    With a response schema the model is forced to call a single tool whose
    input schema is the response schema, and the tool input is returned as
    JSON text. Without one the text blocks of the answer are returned.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the backend.

        Args:
            api_key: Anthropic API key.
            model: Model name.
            temperature: Sampling temperature.
            max_tokens: Answer token budget.
            timeout: HTTP request timeout in seconds; the SDK aborts the
                request when it elapses. SDK-level retries are disabled,
                retrying is the orchestrator's job.
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(
        self,
        prompt: str,
        *,
        response_schema: Optional[dict[str, Any]] = None,
    ) -> str:
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if response_schema is not None:
            request["tools"] = [
                {
                    "name": RESULT_TOOL_NAME,
                    "description": "Submit the complete tax regime comparison.",
                    "input_schema": response_schema,
                }
            ]
            request["tool_choice"] = {"type": "tool", "name": RESULT_TOOL_NAME}

        try:
            response = await self.client.messages.create(**request)
        except anthropic.APITimeoutError as e:
            raise GenerationTimeoutError(
                f"Backend request timed out after {self.timeout}s",
                timeout=self.timeout,
            ) from e
        except anthropic.APIStatusError as e:
            raise TransportError(
                f"Backend returned HTTP {e.status_code}",
                status_code=e.status_code,
            ) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(f"Could not reach backend: {e}") from e

        logger.debug(
            "generation_response_received",
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.stop_reason,
        )

        for block in response.content:
            if block.type == "tool_use" and block.name == RESULT_TOOL_NAME:
                return json.dumps(block.input, ensure_ascii=False)
        return "".join(block.text for block in response.content if block.type == "text")


def create_backend(
    api_key: Optional[str],
    *,
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout: float = DEFAULT_TIMEOUT,
) -> Optional[AnthropicBackend]:
    """
    Factory function to create an AnthropicBackend if configured.

    Returns None when no API key is available or the SDK client cannot be
    built, so callers can go straight to the deterministic path.
    """
    if not api_key:
        return None
    try:
        return AnthropicBackend(
            api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    except anthropic.AnthropicError as e:
        logger.warning("generation_backend_init_failed", error=str(e))
        return None


# =============================================================================
# RESPONSE DECODING
# =============================================================================


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the brace that closes the one at ``start``."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def iter_balanced_objects(text: str) -> Iterator[str]:
    """Yield balanced ``{...}`` substrings, leftmost first."""
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            return
        yield text[start:end]
        start = text.find("{", start + 1)


def _loads(text: str) -> Any:
    return json.loads(text, parse_float=Decimal)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Decode a JSON object from a model answer.

    Tries, in order: the whole answer, fenced code blocks, then balanced
    ``{...}`` substrings embedded in prose.

    Raises:
        ParseError: If no JSON object can be decoded.
    """
    stripped = text.strip()
    try:
        decoded = _loads(stripped)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(decoded, dict):
            return decoded
        raise ParseError(
            f"Expected a JSON object, got {type(decoded).__name__}",
            output_format=OutputFormat.JSON.value,
            excerpt=text,
        )

    for match in _FENCE_RE.finditer(text):
        try:
            decoded = _loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded

    for candidate in iter_balanced_objects(text):
        try:
            return _loads(candidate)
        except json.JSONDecodeError:
            continue

    raise ParseError(
        "No JSON object found in response",
        output_format=OutputFormat.JSON.value,
        excerpt=text,
    )


def parse_response(text: str, output_format: OutputFormat) -> dict[str, Any]:
    """
    Decode a model answer according to the expected output format.

    A tagged answer without any tags is also tried as embedded JSON, since
    models sometimes ignore the format instruction.

    Raises:
        ParseError: If no recognizable payload is found.
    """
    if not text or not text.strip():
        raise ParseError("Empty response", output_format=output_format.value)

    if output_format == OutputFormat.JSON:
        return extract_json_object(text)

    try:
        return parse_tagged(text)
    except ParseError:
        return extract_json_object(text)


# =============================================================================
# CLIENT
# =============================================================================


@dataclass(frozen=True)
class RawCandidate:
    """Decoded but not yet validated model answer."""

    data: dict[str, Any]
    raw_text: str
    variant: PromptVariant
    output_format: OutputFormat


class GenerationClient:
    """
    Run one generation attempt: build the prompt, call the backend under
    a timeout and decode the answer.
    """

    def __init__(
        self,
        backend: TextGenerationBackend,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        rates: Optional[TaxRates] = None,
    ):
        self.backend = backend
        self.timeout = timeout
        self.rates = rates or TaxRates()

    async def generate(self, tax_input: TaxInput, variant: PromptVariant) -> RawCandidate:
        """
        Generate a candidate result.

        Args:
            tax_input: Monthly figures of the business
            variant: Prompt variant selecting format and cardinalities

        Returns:
            RawCandidate with the decoded field mapping

        Raises:
            GenerationTimeoutError: The backend did not answer in time; the
                pending request is cancelled.
            TransportError: Network or HTTP failure.
            ParseError: The answer held no recognizable payload.
        """
        profile = get_profile(variant)
        prompt = build_prompt(tax_input, profile, self.rates)
        schema = response_schema(profile) if profile.use_schema else None

        logger.info(
            "generation_request",
            variant=profile.variant.value,
            output_format=profile.output_format.value,
            prompt_chars=len(prompt),
            timeout=self.timeout,
        )

        try:
            text = await asyncio.wait_for(
                self.backend.complete(prompt, response_schema=schema),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(
                f"Generation exceeded {self.timeout}s",
                timeout=self.timeout,
                variant=profile.variant.value,
            ) from e

        data = parse_response(text, profile.output_format)
        logger.debug(
            "generation_response_parsed",
            variant=profile.variant.value,
            fields=sorted(data),
        )
        return RawCandidate(
            data=data,
            raw_text=text,
            variant=profile.variant,
            output_format=profile.output_format,
        )
