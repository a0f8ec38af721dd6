from __future__ import annotations

from dataclasses import dataclass

import pytest

from chem_trainer.catalog import CatalogProblemGenerator
from chem_trainer.problems import Difficulty, GameMode, Problem
from chem_trainer.scoring import ScoringTable
from chem_trainer.session import Phase, SessionConfig
from chem_trainer.solutions import build_solutions_catalog, build_solutions_session
from chem_trainer.validation import ValidationError


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _wrong(p: Problem) -> str:
    return str(p.answer * 1.5 + 1.0)


def _started(seed: int = 7, **start: object):
    clock = FakeClock()
    session = build_solutions_session(clock=clock, seed=seed)
    session.start(
        start.get("difficulty", Difficulty.EASY),
        start.get("game_mode", GameMode.COMPETITION),
        start.get("timer_mode", False),
    )
    return clock, session


def test_start_sets_up_first_problem() -> None:
    clock = FakeClock()
    session = build_solutions_session(clock=clock, seed=7)
    assert session.phase is Phase.IDLE

    state = session.start(Difficulty.MEDIUM, GameMode.COMPETITION, True)
    assert state.phase is Phase.IN_PROGRESS
    assert state.total_problems == 10
    assert state.problems_completed == 0
    assert state.score == 0
    assert state.current_problem is not None
    assert state.countdown is not None and state.countdown.active

    # Second start is ignored while a session is running.
    problem = state.current_problem
    session.start(Difficulty.HARD)
    assert session.state.current_problem is problem
    assert session.state.difficulty is Difficulty.MEDIUM


def test_start_accepts_plain_strings() -> None:
    _, session = _started(difficulty="hard", game_mode="practice")
    assert session.state.difficulty is Difficulty.HARD
    assert session.state.game_mode is GameMode.PRACTICE
    assert session.state.total_problems == 12


def test_invalid_input_never_transitions() -> None:
    _, session = _started()

    for raw, error in (
        ("abc", ValidationError.NOT_A_NUMBER),
        ("-1", ValidationError.NON_POSITIVE),
        ("5000", ValidationError.OUT_OF_RANGE),
    ):
        outcome = session.submit_answer(raw)
        assert outcome.accepted is False
        assert outcome.validation_error is error
        assert outcome.message
        assert session.phase is Phase.IN_PROGRESS
        assert session.state.validation_error is error
        assert session.state.problems_completed == 0
        assert session.events() == []

    # Blank input is ignored without a message.
    outcome = session.submit_answer("   ")
    assert outcome.accepted is False
    assert outcome.validation_error is ValidationError.EMPTY_INPUT
    assert outcome.message is None
    assert session.phase is Phase.IN_PROGRESS


def test_correct_answer_scores_and_enters_feedback() -> None:
    _, session = _started()
    p = session.state.current_problem
    assert p is not None

    outcome = session.submit_answer(str(p.answer))
    assert outcome.accepted is True
    assert outcome.correct is True
    assert outcome.score_event is not None
    assert outcome.score_event.total == 10
    s = session.state
    assert s.phase is Phase.FEEDBACK
    assert s.score == 10
    assert s.streak == 1
    assert s.best_streak == 1
    assert s.problems_completed == 1
    assert s.correct_answers == 1
    assert s.validation_error is None
    assert session.snapshot().feedback is not None


def test_wrong_answers_keep_score_and_reset_streak() -> None:
    clock, session = _started()

    # Build a streak of two first.
    for _ in range(2):
        p = session.state.current_problem
        session.submit_answer(str(p.answer))
        clock.advance(3.0)
        assert session.advance() is True
    score_before = session.state.score
    assert session.state.streak == 2

    for expected_attempts in (1, 2):
        p = session.state.current_problem
        outcome = session.submit_answer(_wrong(p))
        assert outcome.accepted is True
        assert outcome.correct is False
        assert outcome.score_event.total == 0
        assert session.state.score == score_before
        assert session.state.streak == 0
        assert session.state.incorrect_attempts == expected_attempts
        assert session.state.best_streak == 2
        clock.advance(3.0)
        session.advance()

    # A correct answer clears the wrong-attempt count.
    p = session.state.current_problem
    session.submit_answer(str(p.answer))
    assert session.state.incorrect_attempts == 0
    assert session.state.streak == 1


def test_feedback_delay_is_enforced() -> None:
    clock, session = _started()
    p = session.state.current_problem
    session.submit_answer(str(p.answer))

    clock.advance(2.9)
    assert session.advance() is False
    session.update()
    assert session.phase is Phase.FEEDBACK

    clock.advance(0.2)
    session.update()
    assert session.phase is Phase.IN_PROGRESS
    assert session.state.current_problem is not p
    assert session.state.feedback_message is None


def test_out_of_phase_calls_are_ignored() -> None:
    clock = FakeClock()
    session = build_solutions_session(clock=clock, seed=3)

    assert session.submit_answer("1").accepted is False
    assert session.advance() is False
    assert session.request_hint() == 0
    assert session.reveal_solution() is False
    assert session.phase is Phase.IDLE

    session.start(Difficulty.EASY)
    assert session.advance() is False
    p = session.state.current_problem
    session.submit_answer(str(p.answer))

    # No more input until the next problem is dealt.
    assert session.submit_answer(str(p.answer)).accepted is False
    assert session.request_hint() == 0
    assert session.state.problems_completed == 1


def test_hints_cap_and_penalty() -> None:
    _, session = _started()
    levels = [session.request_hint() for _ in range(5)]
    assert levels == [1, 2, 3, 3, 3]
    assert session.state.hints_used == 3

    snap = session.snapshot()
    assert len(snap.hints) == 3
    assert snap.can_hint is False

    p = session.state.current_problem
    outcome = session.submit_answer(str(p.answer))
    assert outcome.score_event.hint_penalty == 7
    assert outcome.score_event.total == 3


def test_practice_mode_is_untimed_and_penalty_free() -> None:
    _, session = _started(game_mode=GameMode.PRACTICE, timer_mode=True)
    assert session.state.timer_mode is False
    assert session.state.countdown is None
    assert session.snapshot().time_remaining_s is None

    session.request_hint()
    session.request_hint()
    p = session.state.current_problem
    outcome = session.submit_answer(str(p.answer))
    assert outcome.score_event.hint_penalty == 0
    assert outcome.score_event.speed_bonus == 0
    assert outcome.score_event.total == 10


def test_timer_scenario_scores_23_on_third_answer() -> None:
    clock, session = _started(seed=31, timer_mode=True)

    for _ in range(2):
        p = session.state.current_problem
        outcome = session.submit_answer(str(p.answer))
        # Answered instantly: full speed bonus.
        assert outcome.score_event.total == 20
        clock.advance(3.0)
        assert session.advance() is True

    session.request_hint()
    clock.advance(15.0)
    p = session.state.current_problem
    outcome = session.submit_answer(str(p.answer))
    assert outcome.score_event.base == 10
    assert outcome.score_event.hint_penalty == 2
    assert outcome.score_event.speed_bonus == 10
    assert outcome.score_event.streak_bonus == 5
    assert outcome.score_event.total == 23
    assert session.state.score == 63

    expected = "dilution_expert" if p.type.value == "dilution" else "three_in_a_row"
    assert outcome.achievement is not None
    assert outcome.achievement.id == expected
    assert session.state.achievements == [expected]


def test_timeout_counts_as_incorrect() -> None:
    clock, session = _started(timer_mode=True)
    p = session.state.current_problem
    session.request_hint()

    clock.advance(89.0)
    session.update()
    assert session.phase is Phase.IN_PROGRESS
    assert session.snapshot().time_remaining_s == pytest.approx(1.0)

    clock.advance(1.0)
    session.update()
    s = session.state
    assert s.phase is Phase.FEEDBACK
    assert s.last_correct is False
    assert s.score == 0
    assert s.streak == 0
    assert s.incorrect_attempts == 1
    assert s.problems_completed == 1
    assert s.time_remaining_s == 0.0
    assert "Time is up" in s.feedback_message

    events = session.events()
    assert len(events) == 1
    assert events[0].timed_out is True
    assert events[0].problem_id == p.id
    assert events[0].hint_level == 1


def test_late_submission_loses_to_expired_timer() -> None:
    clock, session = _started(timer_mode=True)
    p = session.state.current_problem

    clock.advance(91.0)
    outcome = session.submit_answer(str(p.answer))
    assert outcome.accepted is False
    assert outcome.timed_out is True
    assert session.phase is Phase.FEEDBACK
    assert session.state.score == 0
    assert session.events()[0].timed_out is True


def test_one_countdown_per_session() -> None:
    clock, session = _started(timer_mode=True)
    first = session.state.countdown
    p = session.state.current_problem

    clock.advance(10.0)
    session.submit_answer(str(p.answer))
    assert first is not None and first.active is False
    assert session.snapshot().time_remaining_s == pytest.approx(80.0)

    clock.advance(3.0)
    session.advance()
    second = session.state.countdown
    assert second is not first
    assert second.active is True
    assert first.active is False
    assert second.remaining_s() == pytest.approx(90.0)


def test_reveal_solution_after_two_wrong_attempts() -> None:
    clock, session = _started()
    p = session.state.current_problem

    session.submit_answer(_wrong(p))
    assert session.reveal_solution() is False
    clock.advance(3.0)
    session.advance()

    p2 = session.state.current_problem
    session.submit_answer(_wrong(p2))
    assert session.state.incorrect_attempts == 2
    assert session.snapshot().can_reveal_solution is True

    assert session.reveal_solution() is True
    assert session.state.score == 5
    assert session.state.solutions_revealed == 1
    assert session.snapshot().solution is not None
    # Only once per problem.
    assert session.reveal_solution() is False
    assert session.state.score == 5

    # The next problem is locked until it has been answered wrongly as well.
    clock.advance(3.0)
    session.advance()
    assert session.state.solution_shown is False
    assert session.reveal_solution() is False
    p3 = session.state.current_problem
    session.submit_answer(_wrong(p3))
    assert session.reveal_solution() is True
    assert session.state.score == 10


def test_reveal_solution_locked_on_unanswered_problem() -> None:
    clock, session = _started(seed=9)
    for _ in range(2):
        p = session.state.current_problem
        session.submit_answer(_wrong(p))
        clock.advance(3.0)
        session.advance()

    fresh = session.state.current_problem
    assert session.phase is Phase.IN_PROGRESS
    assert session.state.incorrect_attempts == 2
    assert session.snapshot().can_reveal_solution is False
    assert session.reveal_solution() is False
    assert session.snapshot().solution is None
    assert session.state.score == 0

    outcome = session.submit_answer(str(fresh.answer))
    assert outcome.correct is True
    assert session.state.score == outcome.score_event.total
    # A correct answer gives nothing to reveal.
    assert session.reveal_solution() is False
    assert session.snapshot().can_reveal_solution is False


def test_reveal_solution_in_practice_adds_nothing() -> None:
    clock, session = _started(game_mode=GameMode.PRACTICE)
    p = session.state.current_problem
    session.submit_answer(_wrong(p))
    clock.advance(3.0)
    session.advance()
    p2 = session.state.current_problem
    session.submit_answer(_wrong(p2))
    assert session.reveal_solution() is True
    assert session.state.score == 0


def test_completes_exactly_at_total() -> None:
    clock, session = _started(seed=12)
    total = session.state.total_problems
    assert total == 8

    for i in range(total):
        assert session.phase is Phase.IN_PROGRESS
        p = session.state.current_problem
        session.submit_answer(str(p.answer) if i % 2 == 0 else _wrong(p))
        assert session.state.problems_completed == i + 1
        assert session.phase is Phase.FEEDBACK
        clock.advance(3.0)
        assert session.advance() is True

    assert session.phase is Phase.COMPLETE
    assert session.state.problems_completed == total
    assert session.state.current_problem is None
    assert session.submit_answer("1").accepted is False
    assert session.advance() is False
    assert session.snapshot().prompt.startswith("Results")

    summary = session.summary()
    assert summary.problems_completed == total
    assert summary.correct == 4
    assert summary.accuracy == pytest.approx(0.5)
    assert len(summary.events) == total
    assert summary.max_score == 80


def test_reset_returns_to_idle_and_cancels_timer() -> None:
    clock, session = _started(timer_mode=True)
    countdown = session.state.countdown
    session.request_hint()

    state = session.reset()
    assert state.phase is Phase.IDLE
    assert state.score == 0
    assert state.current_problem is None
    assert state.countdown is None
    assert countdown is not None and countdown.active is False
    assert session.events() == []

    clock.advance(200.0)
    session.update()
    assert session.phase is Phase.IDLE

    session.start(Difficulty.EASY)
    assert session.phase is Phase.IN_PROGRESS
    assert session.state.hint_level == 0


def test_custom_scoring_and_tolerance() -> None:
    clock = FakeClock()
    table = ScoringTable(problem_counts={Difficulty.EASY: 2, Difficulty.MEDIUM: 2, Difficulty.HARD: 2})
    session = build_solutions_session(
        clock=clock,
        seed=5,
        scoring=table,
        config=SessionConfig(tolerance_percent=0.0, tolerance_floor=0.0),
    )
    session.start(Difficulty.EASY)
    assert session.state.total_problems == 2

    p = session.state.current_problem
    outcome = session.submit_answer(str(p.answer * 1.001 + 0.001))
    assert outcome.correct is False


def test_session_deals_generator_sequence() -> None:
    clock, session = _started(seed=44, difficulty=Difficulty.HARD)
    gen = CatalogProblemGenerator(build_solutions_catalog(), seed=44)
    for _ in range(3):
        expected = gen.next_problem(difficulty=Difficulty.HARD)
        assert session.state.current_problem == expected
        session.submit_answer(str(expected.answer))
        clock.advance(3.0)
        session.advance()


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        SessionConfig(tolerance_percent=-1.0)
    with pytest.raises(ValueError):
        SessionConfig(solution_unlock_attempts=-1)
