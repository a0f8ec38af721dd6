from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from .problems import ANSWER_CEILING

DEFAULT_TOLERANCE_PERCENT = 2.0
DEFAULT_TOLERANCE_FLOOR = 0.01

# Slack for binary rounding, e.g. 0.4 - 0.39 == 0.010000000000000009.
_FLOAT_SLACK = 1e-9


class ValidationError(StrEnum):
    EMPTY_INPUT = "empty_input"
    NOT_A_NUMBER = "not_a_number"
    NON_POSITIVE = "non_positive"
    OUT_OF_RANGE = "out_of_range"


ERROR_MESSAGES: dict[ValidationError, str | None] = {
    ValidationError.EMPTY_INPUT: None,
    ValidationError.NOT_A_NUMBER: "Enter a number",
    ValidationError.NON_POSITIVE: "Enter a positive number",
    ValidationError.OUT_OF_RANGE: f"The number is too large (< {ANSWER_CEILING:g})",
}


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    error: ValidationError | None = None
    message: str | None = None
    value: float | None = None


def _reject(error: ValidationError) -> ValidationResult:
    return ValidationResult(valid=False, error=error, message=ERROR_MESSAGES[error])


def _try_parse_float(text: str) -> float | None:
    s = text.strip().replace(",", ".")
    # float() also takes digit separators ("1_0"), which are not valid input.
    if "_" in s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def validate_input(raw: str) -> ValidationResult:
    """Parse a typed answer.

    Blank input is rejected silently (no message); every other rejection
    carries a user-facing message.
    """

    if raw is None or raw.strip() == "":
        return _reject(ValidationError.EMPTY_INPUT)

    value = _try_parse_float(raw)
    if value is None or math.isnan(value):
        return _reject(ValidationError.NOT_A_NUMBER)
    if value <= 0.0:
        return _reject(ValidationError.NON_POSITIVE)
    if value >= ANSWER_CEILING:
        return _reject(ValidationError.OUT_OF_RANGE)

    return ValidationResult(valid=True, value=value)


def answer_tolerance(
    answer: float,
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT,
    floor: float = DEFAULT_TOLERANCE_FLOOR,
) -> float:
    return max(abs(answer) * (tolerance_percent / 100.0), floor)


def check_answer(
    value: float,
    answer: float,
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT,
    floor: float = DEFAULT_TOLERANCE_FLOOR,
) -> bool:
    tolerance = answer_tolerance(answer, tolerance_percent, floor)
    return abs(value - answer) <= tolerance + _FLOAT_SLACK


def percent_error(value: float, answer: float) -> float:
    if answer == 0.0:
        return math.inf
    return abs((value - answer) / answer) * 100.0


def contextual_feedback(value: float, answer: float) -> str:
    """Advisory hint about what probably went wrong; never decides correctness."""

    err = percent_error(value, answer)
    if err > 50.0:
        return "Very far off! Check that you picked the right formula."
    if err > 20.0:
        return "Not right. Check whether you converted mL to L."
    if err > 5.0:
        return "Close! Maybe an arithmetic or rounding slip."
    return "Very close but outside the tolerance. Check your precision."
