from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .problems import DegenerateProblem, Difficulty, Given, Problem, ProblemType, build_problem
from .sampling import SeededRng

logger = logging.getLogger(__name__)

MAX_DRAWS = 100

GivenBuilder = Callable[[SeededRng, Difficulty], Given]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    problem_type: ProblemType
    difficulties: frozenset[Difficulty]
    build: GivenBuilder


@dataclass(frozen=True, slots=True)
class ProblemCatalog:
    """Ordered set of problem types a drill can deal, gated by difficulty."""

    title: str
    entries: tuple[CatalogEntry, ...]

    def __post_init__(self) -> None:
        if not self.entries:
            raise ValueError("catalog must have at least one entry")

    def types_for(self, difficulty: Difficulty) -> tuple[ProblemType, ...]:
        return tuple(e.problem_type for e in self.entries_for(difficulty))

    def entries_for(self, difficulty: Difficulty) -> tuple[CatalogEntry, ...]:
        return tuple(e for e in self.entries if difficulty in e.difficulties)


def generate_problem(difficulty: Difficulty, catalog: ProblemCatalog, rng: SeededRng) -> Problem:
    """Deal one problem for ``difficulty``.

    Degenerate draws are resampled (type and parameters) rather than emitted.
    """

    entries = catalog.entries_for(difficulty)
    if not entries:
        raise ValueError(f"{catalog.title}: no problem types allowed at {difficulty}")

    last_error: DegenerateProblem | None = None
    for _ in range(MAX_DRAWS):
        entry = rng.choice(entries)
        given = entry.build(rng, difficulty)
        try:
            return build_problem(problem_id=rng.token(), given=given, difficulty=difficulty)
        except DegenerateProblem as exc:
            logger.debug("resampling degenerate draw: %s", exc)
            last_error = exc

    assert last_error is not None
    raise last_error


class CatalogProblemGenerator:
    """Deterministic problem stream for one catalog."""

    def __init__(self, catalog: ProblemCatalog, *, seed: int) -> None:
        self._catalog = catalog
        self._rng = SeededRng(seed)

    @property
    def catalog(self) -> ProblemCatalog:
        return self._catalog

    def next_problem(self, *, difficulty: Difficulty) -> Problem:
        return generate_problem(difficulty, self._catalog, self._rng)
