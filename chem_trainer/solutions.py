"""Solutions drill: dilution, molarity, mass/molarity conversion and mixing.

Each problem shape is a frozen ``given`` variant carrying only its own typed
fields and the formula that solves it.  Parameters are drawn from
per-difficulty ranges that widen as the tier goes up; volumes in mL are whole
numbers and concentrations keep two decimals so the numbers on screen stay
friendly for mental estimation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

from .catalog import CatalogEntry, ProblemCatalog
from .clock import Clock
from .problems import DegenerateProblem, Difficulty, ProblemType, fmt_num
from .sampling import FieldRange, SeededRng
from .scoring import ScoringTable
from .session import ChemistrySession, SessionConfig


@dataclass(frozen=True, slots=True)
class Chemical:
    name: str
    formula: str
    molar_mass: float


CHEMICALS: Mapping[Difficulty, tuple[Chemical, ...]] = {
    Difficulty.EASY: (
        Chemical("sodium chloride", "NaCl", 58.5),
        Chemical("glucose", "C6H12O6", 180.0),
        Chemical("hydrogen peroxide", "H2O2", 34.0),
    ),
    Difficulty.MEDIUM: (
        Chemical("sodium hydroxide", "NaOH", 40.0),
        Chemical("calcium chloride", "CaCl2", 111.0),
        Chemical("hydrochloric acid", "HCl", 36.5),
    ),
    Difficulty.HARD: (
        Chemical("potassium nitrate", "KNO3", 101.0),
        Chemical("magnesium sulfate", "MgSO4", 120.0),
        Chemical("sulfuric acid", "H2SO4", 98.0),
    ),
}


# -- Given variants -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DilutionGiven:
    """Dilute ``v1`` mL of ``m1`` M up to ``v2`` mL; solve for M2."""

    problem_type: ClassVar[ProblemType] = ProblemType.DILUTION
    unit: ClassVar[str] = "M"

    substance: str
    m1: float
    v1: float
    v2: float

    def check(self) -> None:
        if self.m1 <= 0 or self.v1 <= 0:
            raise DegenerateProblem("dilution: zero stock concentration or volume")
        if self.v2 <= self.v1:
            raise DegenerateProblem("dilution: final volume must exceed stock volume")

    def solve(self) -> float:
        return self.m1 * self.v1 / self.v2

    def prompt(self) -> str:
        return (
            f"You have {fmt_num(self.v1)} mL of {fmt_num(self.m1)} M {self.substance}. "
            f"Water is added until the volume is {fmt_num(self.v2)} mL. "
            "What is the final concentration?"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        return (
            "Use M1V1 = M2V2",
            f"M2 = (M1 x V1) / V2 = ({fmt_num(self.m1)} x {fmt_num(self.v1)}) / {fmt_num(self.v2)}",
            f"M2 = {answer:.3f} M",
        )


@dataclass(frozen=True, slots=True)
class StockDilutionGiven:
    """Prepare ``v2`` mL of ``m2`` M from ``m1`` M stock; solve for V1."""

    problem_type: ClassVar[ProblemType] = ProblemType.DILUTION
    unit: ClassVar[str] = "mL"

    substance: str
    m1: float
    m2: float
    v2: float

    def check(self) -> None:
        if self.m1 <= 0 or self.m2 <= 0 or self.v2 <= 0:
            raise DegenerateProblem("stock dilution: zero concentration or volume")
        if self.m2 >= self.m1:
            raise DegenerateProblem("stock dilution: target must be weaker than stock")

    def solve(self) -> float:
        return self.m2 * self.v2 / self.m1

    def prompt(self) -> str:
        return (
            f"You need {fmt_num(self.v2)} mL of {fmt_num(self.m2)} M {self.substance}, "
            f"made by diluting a {fmt_num(self.m1)} M stock solution. "
            "How many mL of stock do you need?"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        return (
            "V1 = (M2 x V2) / M1",
            f"V1 = ({fmt_num(self.m2)} x {fmt_num(self.v2)}) / {fmt_num(self.m1)}",
            f"V1 = {answer:.2f} mL",
        )


@dataclass(frozen=True, slots=True)
class MolarityGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MOLARITY
    unit: ClassVar[str] = "M"

    substance: str
    moles: float
    volume_l: float

    def check(self) -> None:
        if self.moles <= 0 or self.volume_l <= 0:
            raise DegenerateProblem("molarity: zero moles or volume")

    def solve(self) -> float:
        return self.moles / self.volume_l

    def prompt(self) -> str:
        return (
            f"You dissolve {fmt_num(self.moles)} mol of {self.substance} "
            f"in {fmt_num(self.volume_l)} L of solution. What is the molarity?"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        return (
            "Molarity (M) = moles / litres",
            f"M = {fmt_num(self.moles)} / {fmt_num(self.volume_l)}",
            f"M = {answer:.3f} M",
        )


@dataclass(frozen=True, slots=True)
class MolarityFromMassGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MOLARITY_FROM_MASS
    unit: ClassVar[str] = "M"

    substance: str
    mass_g: float
    molar_mass: float
    volume_ml: float

    def check(self) -> None:
        if self.mass_g <= 0 or self.molar_mass <= 0 or self.volume_ml <= 0:
            raise DegenerateProblem("molarity from mass: zero mass, molar mass or volume")

    def solve(self) -> float:
        return (self.mass_g / self.molar_mass) / (self.volume_ml / 1000.0)

    def prompt(self) -> str:
        return (
            f"You dissolve {fmt_num(self.mass_g)} g of {self.substance} "
            f"(molar mass {fmt_num(self.molar_mass)} g/mol) in {fmt_num(self.volume_ml)} mL "
            "of solution. What is the molarity?"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        moles = self.mass_g / self.molar_mass
        litres = self.volume_ml / 1000.0
        return (
            "First find moles = g / (g/mol), then M = moles / L",
            f"moles = {fmt_num(self.mass_g)} / {fmt_num(self.molar_mass)} = {moles:.3f}; "
            f"L = {fmt_num(self.volume_ml)} / 1000 = {litres:.3f}",
            f"M = {moles:.3f} / {litres:.3f} = {answer:.3f} M",
        )


@dataclass(frozen=True, slots=True)
class MassFromMolarityGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MASS_FROM_MOLARITY
    unit: ClassVar[str] = "g"

    substance: str
    molarity: float
    volume_ml: float
    molar_mass: float

    def check(self) -> None:
        if self.molarity <= 0 or self.volume_ml <= 0 or self.molar_mass <= 0:
            raise DegenerateProblem("mass from molarity: zero molarity, volume or molar mass")

    def solve(self) -> float:
        return self.molarity * (self.volume_ml / 1000.0) * self.molar_mass

    def prompt(self) -> str:
        return (
            f"You have {fmt_num(self.volume_ml)} mL of {fmt_num(self.molarity)} M {self.substance}. "
            f"How many grams of solute does it contain? (molar mass {fmt_num(self.molar_mass)} g/mol)"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        litres = self.volume_ml / 1000.0
        moles = self.molarity * litres
        return (
            "First find moles = M x L, then mass = moles x molar mass",
            f"moles = {fmt_num(self.molarity)} x ({fmt_num(self.volume_ml)} / 1000) = {moles:.4f}; "
            f"mass = {moles:.4f} x {fmt_num(self.molar_mass)}",
            f"mass = {answer:.2f} g",
        )


@dataclass(frozen=True, slots=True)
class MixingGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MIXING
    unit: ClassVar[str] = "M"

    substance: str
    m1: float
    v1: float
    m2: float
    v2: float

    def check(self) -> None:
        if self.v1 + self.v2 <= 0:
            raise DegenerateProblem("mixing: zero total volume")
        if self.m1 <= 0 and self.m2 <= 0:
            raise DegenerateProblem("mixing: zero concentration")

    def solve(self) -> float:
        return (self.m1 * self.v1 + self.m2 * self.v2) / (self.v1 + self.v2)

    def prompt(self) -> str:
        return (
            f"You mix {fmt_num(self.v1)} mL of {fmt_num(self.m1)} M {self.substance} "
            f"with {fmt_num(self.v2)} mL of {fmt_num(self.m2)} M {self.substance}. "
            "What is the molarity of the mixture?"
        )

    def hints(self, answer: float) -> tuple[str, str, str]:
        return (
            "M = (M1V1 + M2V2) / (V1 + V2)",
            f"M = ({fmt_num(self.m1)} x {fmt_num(self.v1)} + {fmt_num(self.m2)} x {fmt_num(self.v2)})"
            f" / ({fmt_num(self.v1)} + {fmt_num(self.v2)})",
            f"M = {answer:.3f} M",
        )


# -- Sampling ranges ----------------------------------------------------------

_D = Difficulty

DILUTION_M1 = {_D.EASY: FieldRange(1, 5), _D.MEDIUM: FieldRange(0.5, 5.0, 2), _D.HARD: FieldRange(0.5, 6.0, 2)}
DILUTION_V1 = {_D.EASY: FieldRange(10, 100), _D.MEDIUM: FieldRange(5, 50), _D.HARD: FieldRange(5, 60)}
DILUTION_V2 = {_D.EASY: FieldRange(100, 500), _D.MEDIUM: FieldRange(50, 500), _D.HARD: FieldRange(50, 750)}

MOLARITY_MOLES = {
    _D.EASY: FieldRange(0.1, 2.0, 2),
    _D.MEDIUM: FieldRange(0.05, 3.0, 2),
    _D.HARD: FieldRange(0.05, 4.0, 2),
}
MOLARITY_VOLUME_L = {
    _D.EASY: FieldRange(0.1, 1.0, 2),
    _D.MEDIUM: FieldRange(0.05, 1.5, 2),
    _D.HARD: FieldRange(0.05, 2.0, 2),
}

MASS_G = {_D.EASY: FieldRange(10, 100), _D.MEDIUM: FieldRange(10, 150), _D.HARD: FieldRange(5, 200)}
MASS_VOLUME_ML = {_D.EASY: FieldRange(50, 500), _D.MEDIUM: FieldRange(50, 750), _D.HARD: FieldRange(25, 1000)}
MASS_MOLARITY = {
    _D.EASY: FieldRange(0.5, 2.5, 2),
    _D.MEDIUM: FieldRange(0.25, 3.0, 2),
    _D.HARD: FieldRange(0.1, 4.0, 2),
}

MIXING_M = {
    _D.EASY: FieldRange(1.0, 5.0, 2),
    _D.MEDIUM: FieldRange(0.5, 5.0, 2),
    _D.HARD: FieldRange(0.1, 6.0, 2),
}
MIXING_V = {_D.EASY: FieldRange(10, 100), _D.MEDIUM: FieldRange(10, 250), _D.HARD: FieldRange(5, 500)}

STOCK_M2_PLACES = 4


class SolutionsBuilders:
    """Parameter samplers for each solutions problem type."""

    def __init__(self, chemicals: Mapping[Difficulty, tuple[Chemical, ...]] = CHEMICALS) -> None:
        for difficulty in Difficulty:
            if not chemicals.get(difficulty):
                raise ValueError(f"no chemicals for difficulty {difficulty}")
        self._chemicals = chemicals

    def _chemical(self, rng: SeededRng, difficulty: Difficulty) -> Chemical:
        return rng.choice(self._chemicals[difficulty])

    def dilution(self, rng: SeededRng, difficulty: Difficulty) -> DilutionGiven | StockDilutionGiven:
        chem = self._chemical(rng, difficulty)
        m1 = rng.sample(DILUTION_M1[difficulty])
        v1 = rng.sample(DILUTION_V1[difficulty])
        v2 = rng.sample(DILUTION_V2[difficulty])
        if difficulty is Difficulty.EASY:
            return DilutionGiven(substance=chem.name, m1=m1, v1=v1, v2=v2)
        # The target concentration is shown rounded, so V1 is re-derived from it.
        m2 = round(m1 * v1 / v2, STOCK_M2_PLACES) if v2 > 0 else 0.0
        return StockDilutionGiven(substance=chem.name, m1=m1, m2=m2, v2=v2)

    def molarity(self, rng: SeededRng, difficulty: Difficulty) -> MolarityGiven:
        chem = self._chemical(rng, difficulty)
        return MolarityGiven(
            substance=chem.name,
            moles=rng.sample(MOLARITY_MOLES[difficulty]),
            volume_l=rng.sample(MOLARITY_VOLUME_L[difficulty]),
        )

    def molarity_from_mass(self, rng: SeededRng, difficulty: Difficulty) -> MolarityFromMassGiven:
        chem = self._chemical(rng, difficulty)
        return MolarityFromMassGiven(
            substance=f"{chem.name} ({chem.formula})",
            mass_g=rng.sample(MASS_G[difficulty]),
            molar_mass=chem.molar_mass,
            volume_ml=rng.sample(MASS_VOLUME_ML[difficulty]),
        )

    def mass_from_molarity(self, rng: SeededRng, difficulty: Difficulty) -> MassFromMolarityGiven:
        chem = self._chemical(rng, difficulty)
        return MassFromMolarityGiven(
            substance=f"{chem.name} ({chem.formula})",
            molarity=rng.sample(MASS_MOLARITY[difficulty]),
            volume_ml=rng.sample(MASS_VOLUME_ML[difficulty]),
            molar_mass=chem.molar_mass,
        )

    def mixing(self, rng: SeededRng, difficulty: Difficulty) -> MixingGiven:
        chem = self._chemical(rng, difficulty)
        return MixingGiven(
            substance=chem.name,
            m1=rng.sample(MIXING_M[difficulty]),
            v1=rng.sample(MIXING_V[difficulty]),
            m2=rng.sample(MIXING_M[difficulty]),
            v2=rng.sample(MIXING_V[difficulty]),
        )


def build_solutions_catalog(
    chemicals: Mapping[Difficulty, tuple[Chemical, ...]] = CHEMICALS,
) -> ProblemCatalog:
    """Catalog for the solutions drill; easy is limited to three types."""

    b = SolutionsBuilders(chemicals)
    every = frozenset(Difficulty)
    harder = frozenset({Difficulty.MEDIUM, Difficulty.HARD})
    return ProblemCatalog(
        title="Solutions",
        entries=(
            CatalogEntry(ProblemType.DILUTION, every, b.dilution),
            CatalogEntry(ProblemType.MOLARITY, every, b.molarity),
            CatalogEntry(ProblemType.MIXING, harder, b.mixing),
            CatalogEntry(ProblemType.MOLARITY_FROM_MASS, every, b.molarity_from_mass),
            CatalogEntry(ProblemType.MASS_FROM_MOLARITY, harder, b.mass_from_molarity),
        ),
    )


def build_solutions_session(
    *,
    clock: Clock,
    seed: int,
    scoring: ScoringTable | None = None,
    config: SessionConfig | None = None,
) -> ChemistrySession:
    """Factory for the Solutions drill session."""

    return ChemistrySession(
        catalog=build_solutions_catalog(),
        clock=clock,
        seed=seed,
        scoring=scoring,
        config=config,
    )
