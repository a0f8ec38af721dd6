from __future__ import annotations

import logging
from dataclasses import dataclass

from .problems import ProblemType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    title: str
    streak: int
    problem_type: ProblemType | None = None

    def matches(self, streak: int, problem_type: ProblemType) -> bool:
        if streak != self.streak:
            return False
        return self.problem_type is None or self.problem_type == problem_type


# Checked top-down, first match wins: specific badges before generic ones,
# longer streaks before shorter.
DEFAULT_ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("perfect_mixing", "Perfect mixing!", 3, ProblemType.MIXING),
    Achievement("dilution_expert", "Dilution expert!", 3, ProblemType.DILUTION),
    Achievement("five_in_a_row", "5 in a row!", 5),
    Achievement("three_in_a_row", "3 in a row!", 3),
)


class AchievementTracker:
    def __init__(self, rules: tuple[Achievement, ...] = DEFAULT_ACHIEVEMENTS) -> None:
        self._rules = tuple(rules)
        self._shown: list[str] = []

    @property
    def shown(self) -> tuple[str, ...]:
        return tuple(self._shown)

    def evaluate(self, streak: int, problem_type: ProblemType) -> str | None:
        rule = self._first_match(streak, problem_type)
        return None if rule is None else rule.id

    def notify(self, streak: int, problem_type: ProblemType) -> Achievement | None:
        """Notification token for a correct answer, at most once per session."""
        rule = self._first_match(streak, problem_type)
        if rule is None or rule.id in self._shown:
            return None
        self._shown.append(rule.id)
        logger.debug("achievement unlocked: %s", rule.id)
        return rule

    def reset(self) -> None:
        self._shown.clear()

    def _first_match(self, streak: int, problem_type: ProblemType) -> Achievement | None:
        for rule in self._rules:
            if rule.matches(streak, problem_type):
                return rule
        return None
