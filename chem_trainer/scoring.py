"""Point values for the drills.

Everything here is a pure lookup over an injectable ``ScoringTable``; the
session applies the resulting ``ScoreEvent.total`` to its own score.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .problems import Difficulty, GameMode


@dataclass(frozen=True, slots=True)
class ScoreEvent:
    base: int
    hint_penalty: int
    speed_bonus: int
    streak_bonus: int
    total: int


NO_SCORE = ScoreEvent(base=0, hint_penalty=0, speed_bonus=0, streak_bonus=0, total=0)


@dataclass(frozen=True, slots=True)
class ScoringTable:
    base_points: Mapping[Difficulty, int] = field(
        default_factory=lambda: {Difficulty.EASY: 10, Difficulty.MEDIUM: 15, Difficulty.HARD: 20}
    )
    problem_counts: Mapping[Difficulty, int] = field(
        default_factory=lambda: {Difficulty.EASY: 8, Difficulty.MEDIUM: 10, Difficulty.HARD: 12}
    )
    # Indexed by hint level; level 0 means no hint was opened.
    hint_penalties: tuple[int, ...] = (0, 2, 4, 7)
    # (threshold_s, bonus), checked in order; remaining time must be strictly above.
    speed_bonus_steps: tuple[tuple[float, int], ...] = ((70.0, 10), (60.0, 5))
    # Exact streak lengths only; no bonus in between or beyond.
    streak_bonuses: Mapping[int, int] = field(default_factory=lambda: {3: 5, 5: 10})
    solution_consolation: int = 5
    question_time_s: float = 90.0
    feedback_delay_s: float = 3.0

    def __post_init__(self) -> None:
        if not self.hint_penalties or self.hint_penalties[0] != 0:
            raise ValueError("hint_penalties must start at 0 for level 0")
        if self.question_time_s <= 0:
            raise ValueError("question_time_s must be > 0")
        if self.feedback_delay_s < 0:
            raise ValueError("feedback_delay_s must be >= 0")
        for difficulty in Difficulty:
            if difficulty not in self.base_points or difficulty not in self.problem_counts:
                raise ValueError(f"missing values for difficulty {difficulty}")
            if self.problem_counts[difficulty] <= 0:
                raise ValueError("problem_counts must be > 0")

    @property
    def max_hint_level(self) -> int:
        return len(self.hint_penalties) - 1

    def base(self, difficulty: Difficulty) -> int:
        return int(self.base_points[difficulty])

    def problem_count(self, difficulty: Difficulty) -> int:
        return int(self.problem_counts[difficulty])

    def hint_penalty(self, hint_level: int, game_mode: GameMode) -> int:
        if game_mode is GameMode.PRACTICE:
            return 0
        level = max(0, min(int(hint_level), self.max_hint_level))
        return int(self.hint_penalties[level])

    def speed_bonus(self, time_remaining_s: float, timer_mode: bool) -> int:
        if not timer_mode:
            return 0
        for threshold_s, bonus in self.speed_bonus_steps:
            if time_remaining_s > threshold_s:
                return int(bonus)
        return 0

    def streak_bonus(self, streak: int) -> int:
        return int(self.streak_bonuses.get(int(streak), 0))

    def solution_reward(self, game_mode: GameMode) -> int:
        return self.solution_consolation if game_mode is GameMode.COMPETITION else 0

    def max_score(self, difficulty: Difficulty) -> int:
        return self.base(difficulty) * self.problem_count(difficulty)


DEFAULT_SCORING = ScoringTable()


def score_answer(
    table: ScoringTable,
    *,
    correct: bool,
    difficulty: Difficulty,
    hint_level: int,
    game_mode: GameMode,
    time_remaining_s: float,
    timer_mode: bool,
    streak: int,
) -> ScoreEvent:
    """Point breakdown for one answer.

    ``streak`` is the streak *after* this answer.  Wrong answers never cost
    points: every component is zero.
    """

    if not correct:
        return NO_SCORE

    base = table.base(difficulty)
    hint_penalty = table.hint_penalty(hint_level, game_mode)
    speed_bonus = table.speed_bonus(time_remaining_s, timer_mode)
    streak_bonus = table.streak_bonus(streak)
    total = max(0, base - hint_penalty + speed_bonus + streak_bonus)
    return ScoreEvent(
        base=base,
        hint_penalty=hint_penalty,
        speed_bonus=speed_bonus,
        streak_bonus=streak_bonus,
        total=total,
    )


def completion_percent(score: int, difficulty: Difficulty, table: ScoringTable = DEFAULT_SCORING) -> float:
    max_score = table.max_score(difficulty)
    return 0.0 if max_score <= 0 else 100.0 * score / max_score
