from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .problems import Difficulty, GameMode, ProblemType
from .scoring import ScoreEvent


@dataclass(frozen=True, slots=True)
class AnswerEvent:
    """One answered (or timed-out) problem."""

    index: int
    problem_id: str
    problem_type: ProblemType
    prompt: str
    expected: float
    raw: str
    value: float | None
    is_correct: bool
    timed_out: bool
    hint_level: int
    score_event: ScoreEvent
    presented_at_s: float
    answered_at_s: float
    response_time_s: float


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Per-session numbers the front-end folds into its long-term progress.

    This is intentionally generic so every drill built on ChemistrySession
    reports the same shape.
    """

    game: str
    seed: int
    difficulty: Difficulty
    game_mode: GameMode
    timer_mode: bool
    total_problems: int
    problems_completed: int
    correct: int
    score: int
    max_score: int
    completion_percent: float
    best_streak: int
    accuracy: float
    mean_response_time_s: float | None
    hints_used: int
    solutions_revealed: int
    achievements: tuple[str, ...]
    events: tuple[AnswerEvent, ...]


_JSON_KEYS = {
    "total_score": "totalScore",
    "total_questions": "totalQuestions",
    "total_correct": "totalCorrect",
    "best_streak": "bestStreak",
    "games_played": "gamesPlayed",
}


@dataclass(frozen=True, slots=True)
class ProgressTotals:
    """Accumulated progress across sessions for one drill."""

    total_score: int = 0
    total_questions: int = 0
    total_correct: int = 0
    best_streak: int = 0
    games_played: int = 0

    def fold(self, summary: SessionSummary) -> ProgressTotals:
        return replace(
            self,
            total_score=self.total_score + int(summary.score),
            total_questions=self.total_questions + int(summary.problems_completed),
            total_correct=self.total_correct + int(summary.correct),
            best_streak=max(self.best_streak, int(summary.best_streak)),
            games_played=self.games_played + 1,
        )

    def to_json_dict(self) -> dict[str, int]:
        return {json_key: int(getattr(self, attr)) for attr, json_key in _JSON_KEYS.items()}

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> ProgressTotals:
        values: dict[str, int] = {}
        for attr, json_key in _JSON_KEYS.items():
            try:
                values[attr] = max(0, int(data.get(json_key, 0)))
            except (TypeError, ValueError):
                values[attr] = 0
        return cls(**values)
