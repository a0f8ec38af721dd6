"""Molar-mass drill: sum atomic masses, then convert grams to moles.

The compound and atomic-mass tables below are a static lookup supplied to the
catalog builder; callers can pass their own.  Every problem's ``given``
carries the atomic masses it used, so the answer is reproducible from the
problem alone.
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
class Compound:
    formula: str
    name: str
    elements: tuple[tuple[str, int], ...]  # (symbol, count)


ATOMIC_MASSES: Mapping[str, float] = {
    "H": 1.008,
    "C": 12.011,
    "N": 14.007,
    "O": 15.999,
    "F": 18.998,
    "Na": 22.990,
    "Mg": 24.305,
    "Al": 26.982,
    "Si": 28.086,
    "P": 30.974,
    "S": 32.06,
    "Cl": 35.45,
    "K": 39.098,
    "Ca": 40.078,
    "Mn": 54.938,
    "Fe": 55.845,
    "Cu": 63.546,
    "Zn": 65.38,
    "Br": 79.904,
    "Ag": 107.868,
    "I": 126.904,
}

COMPOUNDS: Mapping[Difficulty, tuple[Compound, ...]] = {
    Difficulty.EASY: (
        Compound("H2O", "water", (("H", 2), ("O", 1))),
        Compound("NaCl", "table salt", (("Na", 1), ("Cl", 1))),
        Compound("O2", "oxygen", (("O", 2),)),
        Compound("N2", "nitrogen", (("N", 2),)),
        Compound("CH4", "methane", (("C", 1), ("H", 4))),
        Compound("CO2", "carbon dioxide", (("C", 1), ("O", 2))),
        Compound("NH3", "ammonia", (("N", 1), ("H", 3))),
        Compound("HCl", "hydrogen chloride", (("H", 1), ("Cl", 1))),
    ),
    Difficulty.MEDIUM: (
        Compound("C2H5OH", "ethanol", (("C", 2), ("H", 6), ("O", 1))),
        Compound("CH3COOH", "acetic acid", (("C", 2), ("H", 4), ("O", 2))),
        Compound("NaOH", "sodium hydroxide", (("Na", 1), ("O", 1), ("H", 1))),
        Compound("CaCO3", "calcium carbonate", (("Ca", 1), ("C", 1), ("O", 3))),
        Compound("KCl", "potassium chloride", (("K", 1), ("Cl", 1))),
        Compound("NaHCO3", "baking soda", (("Na", 1), ("H", 1), ("C", 1), ("O", 3))),
        Compound("H2SO4", "sulfuric acid", (("H", 2), ("S", 1), ("O", 4))),
    ),
    Difficulty.HARD: (
        Compound("C6H12O6", "glucose", (("C", 6), ("H", 12), ("O", 6))),
        Compound("Ca(OH)2", "calcium hydroxide", (("Ca", 1), ("O", 2), ("H", 2))),
        Compound("Al2(SO4)3", "aluminium sulfate", (("Al", 2), ("S", 3), ("O", 12))),
        Compound("CuSO4·5H2O", "copper sulfate pentahydrate", (("Cu", 1), ("S", 1), ("O", 9), ("H", 10))),
        Compound("Fe2O3", "iron(III) oxide", (("Fe", 2), ("O", 3))),
        Compound("KMnO4", "potassium permanganate", (("K", 1), ("Mn", 1), ("O", 4))),
    ),
}

Composition = tuple[tuple[str, int, float], ...]  # (symbol, count, atomic mass)


def _formula_mass(composition: Composition) -> float:
    return sum(count * mass for _, count, mass in composition)


def _check_composition(composition: Composition) -> None:
    if not composition:
        raise DegenerateProblem("molar mass: empty composition")
    for symbol, count, mass in composition:
        if count <= 0 or mass <= 0:
            raise DegenerateProblem(f"molar mass: bad entry for {symbol}")


def _terms(composition: Composition) -> str:
    return " + ".join(f"{count} x {fmt_num(mass)}" for _, count, mass in composition)


@dataclass(frozen=True, slots=True)
class MolarMassGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MOLAR_MASS
    unit: ClassVar[str] = "g/mol"

    substance: str
    formula: str
    composition: Composition

    def check(self) -> None:
        _check_composition(self.composition)

    def solve(self) -> float:
        return _formula_mass(self.composition)

    def prompt(self) -> str:
        return f"What is the molar mass of {self.substance} ({self.formula})?"

    def hints(self, answer: float) -> tuple[str, str, str]:
        return (
            "Molar mass = sum of (atom count x atomic mass) over every element",
            f"M = {_terms(self.composition)}",
            f"M = {answer:.3f} g/mol",
        )


@dataclass(frozen=True, slots=True)
class MolesFromMassGiven:
    problem_type: ClassVar[ProblemType] = ProblemType.MOLES_FROM_MASS
    unit: ClassVar[str] = "mol"

    substance: str
    formula: str
    composition: Composition
    mass_g: float

    def check(self) -> None:
        _check_composition(self.composition)
        if self.mass_g <= 0:
            raise DegenerateProblem("moles from mass: zero mass")

    def solve(self) -> float:
        return self.mass_g / _formula_mass(self.composition)

    def prompt(self) -> str:
        return f"How many moles are in {fmt_num(self.mass_g)} g of {self.substance} ({self.formula})?"

    def hints(self, answer: float) -> tuple[str, str, str]:
        molar_mass = _formula_mass(self.composition)
        return (
            "First find the molar mass, then moles = g / (g/mol)",
            f"M = {_terms(self.composition)} = {molar_mass:.3f} g/mol; n = {fmt_num(self.mass_g)} / {molar_mass:.3f}",
            f"n = {answer:.4f} mol",
        )


MOLES_MASS_G = {
    Difficulty.EASY: FieldRange(10, 100),
    Difficulty.MEDIUM: FieldRange(20, 200),
    Difficulty.HARD: FieldRange(50.0, 500.0, 1),
}


class MolarMassBuilders:
    def __init__(
        self,
        compounds: Mapping[Difficulty, tuple[Compound, ...]] = COMPOUNDS,
        atomic_masses: Mapping[str, float] = ATOMIC_MASSES,
    ) -> None:
        for difficulty in Difficulty:
            if not compounds.get(difficulty):
                raise ValueError(f"no compounds for difficulty {difficulty}")
        self._compounds = compounds
        self._atomic_masses = atomic_masses

    def _compound(self, rng: SeededRng, difficulty: Difficulty) -> tuple[Compound, Composition]:
        compound = rng.choice(self._compounds[difficulty])
        # Unknown symbols get a zero mass and the draw is rejected downstream.
        composition = tuple(
            (symbol, count, float(self._atomic_masses.get(symbol, 0.0))) for symbol, count in compound.elements
        )
        return compound, composition

    def molar_mass(self, rng: SeededRng, difficulty: Difficulty) -> MolarMassGiven:
        compound, composition = self._compound(rng, difficulty)
        return MolarMassGiven(substance=compound.name, formula=compound.formula, composition=composition)

    def moles_from_mass(self, rng: SeededRng, difficulty: Difficulty) -> MolesFromMassGiven:
        compound, composition = self._compound(rng, difficulty)
        return MolesFromMassGiven(
            substance=compound.name,
            formula=compound.formula,
            composition=composition,
            mass_g=rng.sample(MOLES_MASS_G[difficulty]),
        )


def build_molar_mass_catalog(
    compounds: Mapping[Difficulty, tuple[Compound, ...]] = COMPOUNDS,
    atomic_masses: Mapping[str, float] = ATOMIC_MASSES,
) -> ProblemCatalog:
    b = MolarMassBuilders(compounds, atomic_masses)
    return ProblemCatalog(
        title="Molar Mass",
        entries=(
            CatalogEntry(ProblemType.MOLAR_MASS, frozenset(Difficulty), b.molar_mass),
            CatalogEntry(ProblemType.MOLES_FROM_MASS, frozenset({Difficulty.MEDIUM, Difficulty.HARD}), b.moles_from_mass),
        ),
    )


def build_molar_mass_session(
    *,
    clock: Clock,
    seed: int,
    scoring: ScoringTable | None = None,
    config: SessionConfig | None = None,
) -> ChemistrySession:
    """Factory for the Molar Mass drill session."""

    return ChemistrySession(
        catalog=build_molar_mass_catalog(),
        clock=clock,
        seed=seed,
        scoring=scoring,
        config=config,
    )
