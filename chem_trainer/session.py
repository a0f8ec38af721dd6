"""Session state machine shared by every chemistry drill.

One play-through runs

    IDLE -> IN_PROGRESS -> FEEDBACK -> IN_PROGRESS ... -> COMPLETE

over a fixed number of problems chosen by the difficulty.  The drill itself
is only a ``ProblemCatalog``; scoring comes from an injectable
``ScoringTable``.  Time is read from an injected ``Clock`` and the per-problem
countdown is a ``Countdown`` handle owned by the session state, so a headless
run driven by a fake clock is fully deterministic for a given seed.

Nothing ticks on its own: the front-end calls :meth:`ChemistrySession.update`
every frame, which fires the timeout edge and the automatic advance once the
feedback window has elapsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from .achievements import Achievement, AchievementTracker
from .catalog import CatalogProblemGenerator, ProblemCatalog
from .clock import Clock, Countdown
from .hints import SOLUTION_UNLOCK_ATTEMPTS, HintLadder
from .problems import Difficulty, GameMode, Problem, fmt_num
from .results import AnswerEvent, SessionSummary
from .scoring import DEFAULT_SCORING, ScoreEvent, ScoringTable, completion_percent, score_answer
from .validation import (
    DEFAULT_TOLERANCE_FLOOR,
    DEFAULT_TOLERANCE_PERCENT,
    ValidationError,
    check_answer,
    contextual_feedback,
    validate_input,
)

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    FEEDBACK = "feedback"
    COMPLETE = "complete"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT
    tolerance_floor: float = DEFAULT_TOLERANCE_FLOOR
    solution_unlock_attempts: int = SOLUTION_UNLOCK_ATTEMPTS

    def __post_init__(self) -> None:
        if self.tolerance_percent < 0:
            raise ValueError("tolerance_percent must be >= 0")
        if self.tolerance_floor < 0:
            raise ValueError("tolerance_floor must be >= 0")
        if self.solution_unlock_attempts < 0:
            raise ValueError("solution_unlock_attempts must be >= 0")


@dataclass(slots=True)
class SessionState:
    """Mutable per-playthrough record; only ChemistrySession writes to it."""

    phase: Phase = Phase.IDLE
    difficulty: Difficulty = Difficulty.EASY
    game_mode: GameMode = GameMode.COMPETITION
    timer_mode: bool = False
    current_problem: Problem | None = None
    problems_completed: int = 0
    total_problems: int = 0
    score: int = 0
    streak: int = 0
    best_streak: int = 0
    hint_level: int = 0
    incorrect_attempts: int = 0
    time_remaining_s: float | None = None
    correct_answers: int = 0
    hints_used: int = 0
    solutions_revealed: int = 0
    last_correct: bool | None = None
    last_score_event: ScoreEvent | None = None
    validation_error: ValidationError | None = None
    error_message: str | None = None
    feedback_message: str | None = None
    achievement: Achievement | None = None
    achievements: list[str] = field(default_factory=list)
    solution_shown: bool = False
    countdown: Countdown | None = None
    presented_at_s: float | None = None
    feedback_started_at_s: float | None = None


@dataclass(frozen=True, slots=True)
class SubmitOutcome:
    accepted: bool
    correct: bool | None = None
    timed_out: bool = False
    score_event: ScoreEvent | None = None
    validation_error: ValidationError | None = None
    message: str | None = None
    feedback: str | None = None
    achievement: Achievement | None = None


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    title: str
    phase: Phase
    prompt: str
    input_hint: str
    unit: str
    difficulty: Difficulty
    game_mode: GameMode
    timer_mode: bool
    time_remaining_s: float | None
    problems_completed: int
    total_problems: int
    score: int
    max_score: int
    streak: int
    best_streak: int
    hint_level: int
    hints: tuple[str, ...]
    can_hint: bool
    can_reveal_solution: bool
    solution: str | None
    last_correct: bool | None
    feedback: str | None
    error_message: str | None
    achievement: str | None


class ChemistrySession:
    """One drill play-through: problem sequencing, countdown, feedback window.

    - Deterministic: problems come from a generator seeded at construction.
    - Time is entirely via injected Clock.
    - Calls made in the wrong phase are ignored.
    """

    def __init__(
        self,
        *,
        catalog: ProblemCatalog,
        clock: Clock,
        seed: int,
        scoring: ScoringTable | None = None,
        config: SessionConfig | None = None,
        achievements: AchievementTracker | None = None,
    ) -> None:
        self._catalog = catalog
        self._clock = clock
        self._seed = int(seed)
        self._table = scoring or DEFAULT_SCORING
        self._config = config or SessionConfig()
        self._tracker = achievements or AchievementTracker()
        self._generator = CatalogProblemGenerator(catalog, seed=self._seed)

        self._state = SessionState()
        self._hints = HintLadder(
            self._table,
            GameMode.COMPETITION,
            unlock_attempts=self._config.solution_unlock_attempts,
        )
        self._events: list[AnswerEvent] = []

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def title(self) -> str:
        return self._catalog.title

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scoring(self) -> ScoringTable:
        return self._table

    def events(self) -> list[AnswerEvent]:
        return list(self._events)

    # -- Transitions --------------------------------------------------------

    def start(
        self,
        difficulty: Difficulty | str,
        game_mode: GameMode | str = GameMode.COMPETITION,
        timer_mode: bool = False,
    ) -> SessionState:
        if self._state.phase is not Phase.IDLE:
            return self._state

        difficulty = Difficulty(difficulty)
        game_mode = GameMode(game_mode)

        self._state = SessionState(
            phase=Phase.IN_PROGRESS,
            difficulty=difficulty,
            game_mode=game_mode,
            # Practice mode has no time pressure.
            timer_mode=bool(timer_mode) and game_mode is GameMode.COMPETITION,
            total_problems=self._table.problem_count(difficulty),
        )
        self._hints = HintLadder(
            self._table,
            game_mode,
            unlock_attempts=self._config.solution_unlock_attempts,
        )
        self._tracker.reset()
        self._events = []
        logger.debug(
            "session start: %s difficulty=%s mode=%s timer=%s problems=%d",
            self._catalog.title,
            difficulty,
            game_mode,
            self._state.timer_mode,
            self._state.total_problems,
        )
        self._deal_new_problem()
        return self._state

    def submit_answer(self, raw: str) -> SubmitOutcome:
        if self._state.phase is not Phase.IN_PROGRESS:
            return SubmitOutcome(accepted=False)

        # A late submission loses to the expired timer.
        if self._poll_timeout():
            return SubmitOutcome(accepted=False, timed_out=True, feedback=self._state.feedback_message)

        result = validate_input(raw)
        if not result.valid:
            if result.error is not ValidationError.EMPTY_INPUT:
                self._state.validation_error = result.error
                self._state.error_message = result.message
            return SubmitOutcome(accepted=False, validation_error=result.error, message=result.message)

        problem = self._state.current_problem
        assert problem is not None
        assert result.value is not None

        remaining = self._stop_countdown()
        correct = check_answer(
            result.value,
            problem.answer,
            self._config.tolerance_percent,
            self._config.tolerance_floor,
        )
        return self._record_answer(raw=raw, value=result.value, correct=correct, timed_out=False, remaining_s=remaining)

    def request_hint(self) -> int:
        if self._state.phase is not Phase.IN_PROGRESS:
            return self._state.hint_level
        if self._hints.level >= self._hints.cap:
            return self._hints.level
        level = self._hints.reveal()
        self._state.hint_level = level
        self._state.hints_used += 1
        return level

    def reveal_solution(self) -> bool:
        """Show the worked answer to the problem just failed."""

        if not self._on_failed_problem():
            return False
        reward = self._hints.reveal_solution(self._state.incorrect_attempts)
        if reward is None:
            return False
        self._state.solution_shown = True
        self._state.solutions_revealed += 1
        self._state.score += reward
        return True

    def advance(self) -> bool:
        """Leave FEEDBACK once the display window has fully elapsed."""

        if self._state.phase is not Phase.FEEDBACK:
            return False
        assert self._state.feedback_started_at_s is not None
        elapsed = self._clock.now() - self._state.feedback_started_at_s
        if elapsed < self._table.feedback_delay_s:
            return False

        if self._state.problems_completed >= self._state.total_problems:
            self._finish()
            return True

        self._deal_new_problem()
        return True

    def update(self) -> None:
        if self._state.phase is Phase.IN_PROGRESS:
            self._poll_timeout()
        elif self._state.phase is Phase.FEEDBACK:
            self.advance()

    def reset(self) -> SessionState:
        self._cancel_countdown()
        self._state = SessionState()
        self._hints.reset()
        self._tracker.reset()
        self._events = []
        logger.debug("session reset: %s", self._catalog.title)
        return self._state

    # -- Views --------------------------------------------------------------

    def time_remaining_s(self) -> float | None:
        countdown = self._state.countdown
        if countdown is not None and countdown.active:
            return countdown.remaining_s()
        return self._state.time_remaining_s

    def snapshot(self) -> SessionSnapshot:
        s = self._state
        problem = s.current_problem
        hints: tuple[str, ...] = ()
        solution = None
        if problem is not None:
            hints = problem.hints[: s.hint_level]
            if s.solution_shown:
                solution = f"{problem.hints[-1]}  (answer: {fmt_num(round(problem.answer, 4))} {problem.unit})"

        return SessionSnapshot(
            title=self._catalog.title,
            phase=s.phase,
            prompt=self._prompt_text(),
            input_hint="Type answer then Enter  |  H: hint  |  S: solution",
            unit="" if problem is None else problem.unit,
            difficulty=s.difficulty,
            game_mode=s.game_mode,
            timer_mode=s.timer_mode,
            time_remaining_s=self.time_remaining_s() if s.timer_mode else None,
            problems_completed=s.problems_completed,
            total_problems=s.total_problems,
            score=s.score,
            max_score=self._table.max_score(s.difficulty) if s.phase is not Phase.IDLE else 0,
            streak=s.streak,
            best_streak=s.best_streak,
            hint_level=s.hint_level,
            hints=hints,
            can_hint=s.phase is Phase.IN_PROGRESS and s.hint_level < self._hints.cap,
            can_reveal_solution=(
                self._on_failed_problem()
                and self._hints.can_reveal_solution(s.incorrect_attempts)
            ),
            solution=solution,
            last_correct=s.last_correct if s.phase is Phase.FEEDBACK else None,
            feedback=s.feedback_message if s.phase is Phase.FEEDBACK else None,
            error_message=s.error_message,
            achievement=None if s.achievement is None else s.achievement.title,
        )

    def summary(self) -> SessionSummary:
        s = self._state
        answered = len(self._events)
        rts = [e.response_time_s for e in self._events if not e.timed_out]
        return SessionSummary(
            game=self._catalog.title,
            seed=self._seed,
            difficulty=s.difficulty,
            game_mode=s.game_mode,
            timer_mode=s.timer_mode,
            total_problems=s.total_problems,
            problems_completed=s.problems_completed,
            correct=s.correct_answers,
            score=s.score,
            max_score=self._table.max_score(s.difficulty),
            completion_percent=completion_percent(s.score, s.difficulty, self._table),
            best_streak=s.best_streak,
            accuracy=0.0 if answered == 0 else s.correct_answers / answered,
            mean_response_time_s=None if not rts else sum(rts) / len(rts),
            hints_used=s.hints_used,
            solutions_revealed=s.solutions_revealed,
            achievements=tuple(s.achievements),
            events=tuple(self._events),
        )

    # -- Internals ----------------------------------------------------------

    def _record_answer(
        self,
        *,
        raw: str,
        value: float | None,
        correct: bool,
        timed_out: bool,
        remaining_s: float,
    ) -> SubmitOutcome:
        s = self._state
        problem = s.current_problem
        assert problem is not None
        assert s.presented_at_s is not None

        streak = s.streak + 1 if correct else 0
        event = score_answer(
            self._table,
            correct=correct,
            difficulty=problem.difficulty,
            hint_level=s.hint_level,
            game_mode=s.game_mode,
            time_remaining_s=remaining_s,
            timer_mode=s.timer_mode,
            streak=streak,
        )

        s.score += event.total
        s.streak = streak
        s.best_streak = max(s.best_streak, streak)
        s.problems_completed += 1
        s.last_correct = correct
        s.last_score_event = event
        s.validation_error = None
        s.error_message = None

        if correct:
            s.correct_answers += 1
            s.incorrect_attempts = 0
            s.achievement = self._tracker.notify(streak, problem.type)
            if s.achievement is not None:
                s.achievements.append(s.achievement.id)
            s.feedback_message = f"Correct! +{event.total} points"
        else:
            s.incorrect_attempts += 1
            s.achievement = None
            if timed_out:
                s.feedback_message = f"Time is up! The answer was {fmt_num(round(problem.answer, 4))} {problem.unit}"
            else:
                assert value is not None
                s.feedback_message = contextual_feedback(value, problem.answer)

        now = self._clock.now()
        self._events.append(
            AnswerEvent(
                index=len(self._events),
                problem_id=problem.id,
                problem_type=problem.type,
                prompt=problem.prompt,
                expected=problem.answer,
                raw=raw,
                value=value,
                is_correct=correct,
                timed_out=timed_out,
                hint_level=s.hint_level,
                score_event=event,
                presented_at_s=s.presented_at_s,
                answered_at_s=now,
                response_time_s=max(0.0, now - s.presented_at_s),
            )
        )

        s.phase = Phase.FEEDBACK
        s.feedback_started_at_s = now
        logger.debug(
            "answer %d/%d correct=%s timed_out=%s delta=%d score=%d",
            s.problems_completed,
            s.total_problems,
            correct,
            timed_out,
            event.total,
            s.score,
        )
        return SubmitOutcome(
            accepted=True,
            correct=correct,
            timed_out=timed_out,
            score_event=event,
            feedback=s.feedback_message,
            achievement=s.achievement,
        )

    def _on_failed_problem(self) -> bool:
        # An unanswered problem never exposes its answer.
        return self._state.phase is Phase.FEEDBACK and self._state.last_correct is False

    def _poll_timeout(self) -> bool:
        """Fire the timeout edge if the countdown ran out; True if it did."""

        countdown = self._state.countdown
        if countdown is None or not countdown.active:
            return False
        self._state.time_remaining_s = countdown.remaining_s()
        if not countdown.expired():
            return False
        self._stop_countdown()
        self._record_answer(raw="", value=None, correct=False, timed_out=True, remaining_s=0.0)
        return True

    def _deal_new_problem(self) -> None:
        s = self._state
        s.current_problem = self._generator.next_problem(difficulty=s.difficulty)
        s.phase = Phase.IN_PROGRESS
        s.presented_at_s = self._clock.now()
        s.feedback_started_at_s = None
        s.feedback_message = None
        s.last_correct = None
        s.last_score_event = None
        s.validation_error = None
        s.error_message = None
        s.achievement = None
        self._hints.reset()
        s.hint_level = 0
        s.solution_shown = False
        if s.timer_mode:
            self._start_countdown()
        else:
            s.time_remaining_s = None

    def _start_countdown(self) -> None:
        # Exactly one countdown per session: cancel before restarting.
        self._cancel_countdown()
        countdown = Countdown(clock=self._clock, duration_s=self._table.question_time_s)
        countdown.start()
        self._state.countdown = countdown
        self._state.time_remaining_s = countdown.remaining_s()

    def _stop_countdown(self) -> float:
        countdown = self._state.countdown
        if countdown is None:
            return 0.0
        countdown.cancel()
        remaining = countdown.remaining_s()
        self._state.time_remaining_s = remaining
        return remaining

    def _cancel_countdown(self) -> None:
        countdown = self._state.countdown
        if countdown is not None:
            countdown.cancel()
        self._state.countdown = None

    def _finish(self) -> None:
        s = self._state
        self._cancel_countdown()
        s.phase = Phase.COMPLETE
        s.current_problem = None
        s.presented_at_s = None
        s.feedback_started_at_s = None
        logger.debug("session complete: score=%d/%d", s.score, self._table.max_score(s.difficulty))

    def _prompt_text(self) -> str:
        s = self._state
        if s.phase is Phase.IDLE:
            return "Choose a difficulty to begin."
        if s.phase is Phase.COMPLETE:
            pct = completion_percent(s.score, s.difficulty, self._table)
            return "\n".join(
                [
                    "Results",
                    "",
                    f"Score:       {s.score} / {self._table.max_score(s.difficulty)} ({pct:.0f}%)",
                    f"Correct:     {s.correct_answers} / {s.total_problems}",
                    f"Best streak: {s.best_streak}",
                    "",
                    "Press Enter to return.",
                ]
            )
        if s.current_problem is None:
            return ""
        return s.current_problem.prompt
