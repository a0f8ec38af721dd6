from __future__ import annotations

from .problems import GameMode
from .scoring import ScoringTable

DEFAULT_HINT_CAP = 3
SOLUTION_UNLOCK_ATTEMPTS = 2


def next_hint_level(level: int, cap: int = DEFAULT_HINT_CAP) -> int:
    return min(int(level) + 1, int(cap))


class HintLadder:
    """Hint tiers revealed for the current problem.

    The hint cost is the table's penalty for the level reached.  Revealing the
    full solution is a separate action: it is gated on wrong attempts and
    *adds* the consolation points in competition mode instead of costing any.
    """

    def __init__(
        self,
        table: ScoringTable,
        game_mode: GameMode,
        *,
        unlock_attempts: int = SOLUTION_UNLOCK_ATTEMPTS,
    ) -> None:
        self._table = table
        self._game_mode = game_mode
        self._cap = table.max_hint_level
        self._unlock_attempts = int(unlock_attempts)
        self._level = 0
        self._solution_shown = False

    @property
    def level(self) -> int:
        return self._level

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def cost(self) -> int:
        return self._table.hint_penalty(self._level, self._game_mode)

    @property
    def solution_shown(self) -> bool:
        return self._solution_shown

    def reveal(self) -> int:
        self._level = next_hint_level(self._level, self._cap)
        return self._level

    def can_reveal_solution(self, incorrect_attempts: int) -> bool:
        return not self._solution_shown and incorrect_attempts >= self._unlock_attempts

    def reveal_solution(self, incorrect_attempts: int) -> int | None:
        """Return the points to add, or None if the solution is still locked."""
        if not self.can_reveal_solution(incorrect_attempts):
            return None
        self._solution_shown = True
        return self._table.solution_reward(self._game_mode)

    def reset(self) -> None:
        self._level = 0
        self._solution_shown = False
