"""Validation of decoded model answers.

A candidate is the field mapping decoded by the generation client. The
validator checks shape, cardinality, finiteness of numbers, duplication of
roadmap action labels and, optionally, drift of the totals away from the
arithmetic model. It raises ValidationFailure with a reason tag on the
first problem found; the orchestrator treats that like any other failed
attempt.

On success the candidate is returned normalized: numbers as Decimal,
impact levels as ImpactLevel and the roadmap ordered HIGH, MEDIUM, LOW.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import structlog

from .calculator import RegimeFigures
from .exceptions import ValidationFailure, ValidationReason
from .models import ImpactLevel
from .prompts import PromptProfile

logger = structlog.get_logger()

DEFAULT_MIN_UNIQUE_ACTIONS = 13
DEFAULT_ARITHMETIC_TOLERANCE = Decimal("0.05")

REQUIRED_FIELDS = (
    "simplesTotal",
    "reformTotal",
    "analysis",
    "decisionDrivers",
    "legalOptimizations",
    "strategicRoadmap",
)

NUMERIC_FIELDS = (
    "simplesTotal",
    "reformTotal",
    "savings",
    "annualSavings",
    "effectiveRateSimples",
    "effectiveRateReform",
    "ibsAmount",
    "cbsAmount",
    "creditsTaken",
)

_NUMBER_NOISE_RE = re.compile(r"(R\$|%|\s)")


def parse_number(value: Any) -> Decimal:
    """
    Convert a JSON or tagged-text number into a Decimal.

    Accepts ints, floats, Decimals and strings such as ``"22484.80"``,
    ``"22.484,80"`` or ``"R$ 14.045,00"``. The result may be non-finite
    (NaN, Infinity); callers check ``is_finite()``.

    Raises:
        ValueError: If the value is not a number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if not isinstance(value, str):
        raise ValueError(f"Not a number: {value!r}")

    text = _NUMBER_NOISE_RE.sub("", value)
    if "," in text and "." in text:
        # The separator that appears last is the decimal one
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".") if text.count(",") == 1 else text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None


@dataclass(frozen=True)
class ValidatedResult:
    """A candidate that passed validation, in normalized form."""

    data: dict[str, Any]
    profile: PromptProfile
    unique_actions: int


class CandidateValidator:
    """
    Check a decoded candidate against a prompt profile.

    Args:
        min_unique_actions: Minimum number of distinct (case-insensitive)
            action labels across the roadmap.
        arithmetic_tolerance: Largest accepted relative difference between
            the candidate totals and the arithmetic model; None disables
            the check.
    """

    def __init__(
        self,
        min_unique_actions: int = DEFAULT_MIN_UNIQUE_ACTIONS,
        arithmetic_tolerance: Optional[Decimal] = DEFAULT_ARITHMETIC_TOLERANCE,
    ):
        self.min_unique_actions = min_unique_actions
        self.arithmetic_tolerance = (
            None if arithmetic_tolerance is None else Decimal(str(arithmetic_tolerance))
        )

    def validate(
        self,
        data: Mapping[str, Any],
        profile: PromptProfile,
        expected: Optional[RegimeFigures] = None,
    ) -> ValidatedResult:
        """
        Validate and normalize a candidate.

        Args:
            data: Decoded field mapping (camelCase keys)
            profile: Profile of the prompt variant that produced it
            expected: Arithmetic-model figures for the drift check

        Returns:
            ValidatedResult with the normalized mapping

        Raises:
            ValidationFailure: On the first failed check.
        """
        normalized = dict(data)

        for name in REQUIRED_FIELDS:
            if normalized.get(name) is None:
                raise ValidationFailure(
                    f"Missing required field {name}",
                    reason=ValidationReason.MISSING_FIELD,
                    field=name,
                )

        for name in NUMERIC_FIELDS:
            if normalized.get(name) is not None:
                normalized[name] = self._check_number(normalized[name], name)

        self._require_text(normalized, "analysis", "analysis")
        normalized["decisionDrivers"] = self._check_drivers(normalized["decisionDrivers"], profile)
        self._check_legal_optimizations(normalized["legalOptimizations"], profile)
        roadmap = self._check_roadmap(normalized["strategicRoadmap"], profile)
        normalized["strategicRoadmap"] = roadmap

        unique_actions = self._check_duplication(roadmap, profile)

        if expected is not None and self.arithmetic_tolerance is not None:
            self._check_drift(normalized, expected)

        return ValidatedResult(data=normalized, profile=profile, unique_actions=unique_actions)

    def _check_number(self, value: Any, name: str) -> Decimal:
        try:
            number = parse_number(value)
        except ValueError:
            raise ValidationFailure(
                f"Field {name} is not a number: {value!r}",
                reason=ValidationReason.INVALID_TYPE,
                field=name,
            ) from None
        if not number.is_finite():
            raise ValidationFailure(
                f"Field {name} is not finite: {value!r}",
                reason=ValidationReason.NON_FINITE_NUMBER,
                field=name,
            )
        return number

    def _require_text(self, mapping: Any, key: str, path: str, *, allow_blank: bool = False) -> str:
        if not isinstance(mapping, Mapping):
            raise ValidationFailure(
                f"{path} must be an object",
                reason=ValidationReason.INVALID_TYPE,
                field=path,
            )
        value = mapping.get(key)
        if value is None:
            raise ValidationFailure(
                f"Missing field {path}",
                reason=ValidationReason.MISSING_FIELD,
                field=path,
            )
        if not isinstance(value, str):
            raise ValidationFailure(
                f"Field {path} must be text",
                reason=ValidationReason.INVALID_TYPE,
                field=path,
            )
        if not allow_blank and not value.strip():
            raise ValidationFailure(
                f"Field {path} is blank",
                reason=ValidationReason.MISSING_FIELD,
                field=path,
            )
        return value

    def _require_list(self, value: Any, path: str) -> list[Any]:
        if not isinstance(value, list):
            raise ValidationFailure(
                f"Field {path} must be a list",
                reason=ValidationReason.INVALID_TYPE,
                field=path,
            )
        return value

    def _check_drivers(self, value: Any, profile: PromptProfile) -> list[str]:
        drivers = self._require_list(value, "decisionDrivers")
        if not all(isinstance(driver, str) and driver.strip() for driver in drivers):
            raise ValidationFailure(
                "decisionDrivers must hold non-blank text",
                reason=ValidationReason.INVALID_TYPE,
                field="decisionDrivers",
            )
        if not profile.min_decision_drivers <= len(drivers) <= profile.max_decision_drivers:
            raise ValidationFailure(
                f"Expected {profile.min_decision_drivers}-{profile.max_decision_drivers} "
                f"decision drivers, got {len(drivers)}",
                reason=ValidationReason.LIST_CARDINALITY,
                field="decisionDrivers",
            )
        return drivers

    def _check_legal_optimizations(self, value: Any, profile: PromptProfile) -> None:
        optimizations = self._require_list(value, "legalOptimizations")
        if len(optimizations) != profile.legal_optimization_count:
            raise ValidationFailure(
                f"Expected {profile.legal_optimization_count} legal optimizations, "
                f"got {len(optimizations)}",
                reason=ValidationReason.LIST_CARDINALITY,
                field="legalOptimizations",
            )
        for index, item in enumerate(optimizations):
            path = f"legalOptimizations[{index}]"
            self._require_text(item, "title", f"{path}.title")
            self._require_text(item, "howToImplement", f"{path}.howToImplement", allow_blank=True)
            self._require_text(item, "benefitExpected", f"{path}.benefitExpected", allow_blank=True)

    def _check_roadmap(self, value: Any, profile: PromptProfile) -> list[dict[str, Any]]:
        points = self._require_list(value, "strategicRoadmap")
        if len(points) != profile.roadmap_size:
            raise ValidationFailure(
                f"Expected {profile.roadmap_size} roadmap points, got {len(points)}",
                reason=ValidationReason.ROADMAP_CARDINALITY,
                field="strategicRoadmap",
            )

        normalized: list[dict[str, Any]] = []
        for index, point in enumerate(points):
            path = f"strategicRoadmap[{index}]"
            self._require_text(point, "title", f"{path}.title")
            self._require_text(point, "description", f"{path}.description", allow_blank=True)
            try:
                level = ImpactLevel.parse(point.get("impactLevel"))
            except ValueError:
                raise ValidationFailure(
                    f"Invalid impact level in {path}: {point.get('impactLevel')!r}",
                    reason=ValidationReason.INVALID_TYPE,
                    field=f"{path}.impactLevel",
                ) from None

            actions = self._require_list(point.get("actions"), f"{path}.actions")
            if len(actions) != profile.actions_per_point:
                raise ValidationFailure(
                    f"Expected {profile.actions_per_point} actions in {path}, got {len(actions)}",
                    reason=ValidationReason.ACTION_CARDINALITY,
                    field=f"{path}.actions",
                )
            for action_index, action in enumerate(actions):
                action_path = f"{path}.actions[{action_index}]"
                self._require_text(action, "task", f"{action_path}.task")
                self._require_text(action, "description", f"{action_path}.description", allow_blank=True)
                self._require_text(
                    action, "implementation", f"{action_path}.implementation", allow_blank=True
                )

            normalized.append({**point, "impactLevel": level})

        levels = {point["impactLevel"] for point in normalized}
        if levels != set(ImpactLevel):
            missing = sorted(level.value for level in set(ImpactLevel) - levels)
            raise ValidationFailure(
                f"Roadmap does not cover impact levels {missing}",
                reason=ValidationReason.IMPACT_COVERAGE,
                field="strategicRoadmap",
            )

        return sorted(normalized, key=lambda point: point["impactLevel"].priority)

    def _check_duplication(self, roadmap: list[dict[str, Any]], profile: PromptProfile) -> int:
        tasks = [
            action["task"].strip().lower()
            for point in roadmap
            for action in point["actions"]
        ]
        unique = len(set(tasks))
        if unique < self.min_unique_actions:
            raise ValidationFailure(
                f"Only {unique} unique action tasks out of {profile.total_actions}",
                reason=ValidationReason.DUPLICATE_ACTIONS,
                field="strategicRoadmap",
                details={"unique_actions": unique, "minimum": self.min_unique_actions},
            )
        return unique

    def _check_drift(self, normalized: dict[str, Any], expected: RegimeFigures) -> None:
        pairs = (
            ("simplesTotal", normalized["simplesTotal"], expected.simples_total),
            ("reformTotal", max(Decimal("0"), normalized["reformTotal"]), expected.reform_total),
        )
        for name, actual, reference in pairs:
            allowed = self.arithmetic_tolerance * max(abs(reference), Decimal("1"))
            if abs(actual - reference) > allowed:
                logger.debug(
                    "candidate_arithmetic_drift",
                    field=name,
                    actual=str(actual),
                    expected=str(reference),
                )
                raise ValidationFailure(
                    f"{name} {actual} drifts from the computed {reference}",
                    reason=ValidationReason.ARITHMETIC_DRIFT,
                    field=name,
                    details={"actual": str(actual), "expected": str(reference)},
                )


def validate_candidate(
    data: Mapping[str, Any],
    profile: PromptProfile,
    *,
    expected: Optional[RegimeFigures] = None,
    min_unique_actions: int = DEFAULT_MIN_UNIQUE_ACTIONS,
    arithmetic_tolerance: Optional[Decimal] = DEFAULT_ARITHMETIC_TOLERANCE,
) -> ValidatedResult:
    """Validate a candidate with a one-off CandidateValidator."""
    validator = CandidateValidator(
        min_unique_actions=min_unique_actions,
        arithmetic_tolerance=arithmetic_tolerance,
    )
    return validator.validate(data, profile, expected)
