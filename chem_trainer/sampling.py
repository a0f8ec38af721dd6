from __future__ import annotations

import random
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class FieldRange:
    """Inclusive sampling bounds plus the rounding policy for one field.

    ``places == 0`` draws whole numbers (volumes in mL, masses in g); any other
    value draws a float rounded to that many decimals.
    """

    lo: float
    hi: float
    places: int = 0

    def __post_init__(self) -> None:
        if self.hi < self.lo:
            raise ValueError("hi must be >= lo")
        if self.places < 0:
            raise ValueError("places must be >= 0")


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def token(self) -> str:
        """Opaque problem id; reproducible for a given seed."""
        return str(uuid.UUID(int=self._rng.getrandbits(128)))

    def sample(self, field: FieldRange) -> float:
        if field.places == 0:
            return float(self.randint(int(field.lo), int(field.hi)))
        value = round(self.uniform(field.lo, field.hi), field.places)
        # Rounding can step just outside the bounds.
        return min(field.hi, max(field.lo, value))
