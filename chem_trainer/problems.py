"""Problem model shared by every drill.

A ``Problem`` is an immutable value built once per question.  Its ``given``
is one of the typed parameter variants defined by the drills
(``solutions``, ``molar_mass``); each variant owns the closed-form formula
that turns its fields into the canonical answer, so the answer can always be
recomputed from ``given`` alone.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Protocol

# Answers at or above this value could never be typed in (see validation).
ANSWER_CEILING = 1000.0


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GameMode(StrEnum):
    COMPETITION = "competition"
    PRACTICE = "practice"


class ProblemType(StrEnum):
    DILUTION = "dilution"
    MOLARITY = "molarity"
    MOLARITY_FROM_MASS = "molarityFromMass"
    MASS_FROM_MOLARITY = "massFromMolarity"
    MIXING = "mixing"
    MOLAR_MASS = "molarMass"
    MOLES_FROM_MASS = "molesFromMass"


class DegenerateProblem(ValueError):
    """Raised for a parameter draw whose answer is undefined or unusable."""


class Given(Protocol):
    problem_type: ClassVar[ProblemType]
    unit: ClassVar[str]

    def check(self) -> None:
        """Raise DegenerateProblem if the fields cannot produce a sane answer."""
        ...

    def solve(self) -> float: ...

    def prompt(self) -> str: ...

    def hints(self, answer: float) -> tuple[str, str, str]: ...


@dataclass(frozen=True, slots=True)
class Problem:
    id: str
    type: ProblemType
    given: Given
    answer: float
    unit: str
    difficulty: Difficulty
    prompt: str
    hints: tuple[str, ...]


def build_problem(*, problem_id: str, given: Given, difficulty: Difficulty) -> Problem:
    """Compute the answer for ``given`` and wrap it in a ``Problem``.

    Raises DegenerateProblem when the draw has to be rejected.
    """

    given.check()
    try:
        answer = float(given.solve())
    except ZeroDivisionError as exc:
        raise DegenerateProblem(f"{given.problem_type}: division by zero") from exc

    if not math.isfinite(answer):
        raise DegenerateProblem(f"{given.problem_type}: non-finite answer {answer!r}")
    if answer <= 0.0:
        raise DegenerateProblem(f"{given.problem_type}: non-positive answer {answer!r}")
    if answer >= ANSWER_CEILING:
        raise DegenerateProblem(f"{given.problem_type}: answer {answer!r} above input ceiling")

    return Problem(
        id=problem_id,
        type=given.problem_type,
        given=given,
        answer=answer,
        unit=given.unit,
        difficulty=difficulty,
        prompt=given.prompt(),
        hints=tuple(given.hints(answer)),
    )


def fmt_num(value: float, places: int | None = None) -> str:
    """Human-friendly number: whole numbers without decimals."""

    if places is not None:
        return f"{value:.{places}f}"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
