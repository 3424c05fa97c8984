"""Custom exceptions for the Tributo Radar comparison engine.

This module provides a hierarchy of exception classes for consistent error
handling across the generation pipeline. All exceptions inherit from
TributoError, making it easy to catch all application-specific errors.

Every failure of the generation path (transport, timeout, parse and
validation) derives from GenerationError and is marked recoverable: the
orchestrator retries it and, once the attempt budget is spent, falls back
to the deterministic calculator. None of them ever reaches the caller of
``compute_comparison``.

Example:
    try:
        candidate = await client.generate(tax_input, PromptVariant.STANDARD)
        validated = validate_candidate(candidate.data, profile)
    except GenerationError as e:
        if e.recoverable:
            # Retry, or fall back to the deterministic calculator
            ...
        else:
            raise
"""

from enum import Enum
from typing import Any, Optional


class TributoError(Exception):
    """Base exception for all Tributo Radar errors.

    This is the root of the exception hierarchy. Catching this exception
    will catch all Tributo-specific errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise TributoError("Something went wrong", details={"code": 500})
        TributoError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize TributoError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or alternative approaches. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class GenerationError(TributoError):
    """Error raised by one attempt of the text-generation path.

    Attributes:
        kind: Short machine-readable failure kind ("transport", "timeout",
            "parse", "validation").
        variant: The prompt variant used for the failed attempt (if known).
    """

    kind = "generation"

    def __init__(
        self,
        message: str,
        *,
        variant: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize GenerationError.

        Args:
            message: Human-readable error description.
            variant: Prompt variant of the failed attempt.
            details: Optional dictionary with additional context.
            recoverable: Whether the attempt can be retried. Defaults to True
                since generation failures are treated as transient.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.variant = variant

        if variant:
            self.details["variant"] = variant


class TransportError(GenerationError):
    """Network or HTTP failure while talking to the generation backend.

    Example:
        >>> raise TransportError(
        ...     "Backend returned HTTP 529",
        ...     status_code=529,
        ... )
        TransportError: Backend returned HTTP 529
    """

    kind = "transport"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        variant: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, variant=variant, details=details, recoverable=recoverable)
        self.status_code = status_code

        if status_code is not None:
            self.details["status_code"] = status_code


class GenerationTimeoutError(GenerationError):
    """The attempt exceeded its time budget before the backend answered."""

    kind = "timeout"

    def __init__(
        self,
        message: str,
        *,
        timeout: Optional[float] = None,
        variant: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, variant=variant, details=details, recoverable=True)
        self.timeout = timeout

        if timeout is not None:
            self.details["timeout"] = timeout


class ParseError(GenerationError):
    """The backend answered but no recognizable payload could be decoded.

    Attributes:
        output_format: Format the parser expected ("json" or "tagged").
        excerpt: Leading slice of the raw response, for logs.
    """

    kind = "parse"

    def __init__(
        self,
        message: str,
        *,
        output_format: Optional[str] = None,
        excerpt: Optional[str] = None,
        variant: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, variant=variant, details=details, recoverable=True)
        self.output_format = output_format
        self.excerpt = excerpt

        if output_format:
            self.details["output_format"] = output_format
        if excerpt:
            self.details["excerpt"] = excerpt[:200]


class ValidationReason(str, Enum):
    """Reason tags attached to a ValidationFailure."""

    MISSING_FIELD = "missing_field"
    INVALID_TYPE = "invalid_type"
    NON_FINITE_NUMBER = "non_finite_number"
    ROADMAP_CARDINALITY = "roadmap_cardinality"
    IMPACT_COVERAGE = "impact_coverage"
    ACTION_CARDINALITY = "action_cardinality"
    DUPLICATE_ACTIONS = "duplicate_actions"
    LIST_CARDINALITY = "list_cardinality"
    ARITHMETIC_DRIFT = "arithmetic_drift"


class ValidationFailure(GenerationError):
    """The payload decoded but is semantically invalid.

    Raised for wrong cardinality, excessive duplication of roadmap actions,
    non-finite numbers or totals that drift from the arithmetic model.

    Attributes:
        reason: The ValidationReason tag.
        field: The field that failed validation (if applicable).

    Example:
        >>> raise ValidationFailure(
        ...     "Only 9 unique action tasks out of 15",
        ...     reason=ValidationReason.DUPLICATE_ACTIONS,
        ...     field="strategicRoadmap",
        ... )
        ValidationFailure: Only 9 unique action tasks out of 15
    """

    kind = "validation"

    def __init__(
        self,
        message: str,
        *,
        reason: ValidationReason,
        field: Optional[str] = None,
        variant: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, variant=variant, details=details, recoverable=True)
        self.reason = reason
        self.field = field

        self.details["reason"] = reason.value
        if field:
            self.details["field"] = field


__all__ = [
    "TributoError",
    "GenerationError",
    "TransportError",
    "GenerationTimeoutError",
    "ParseError",
    "ValidationReason",
    "ValidationFailure",
]
