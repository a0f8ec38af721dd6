from __future__ import annotations

import re

import pytest

from chem_trainer.catalog import MAX_DRAWS, CatalogEntry, CatalogProblemGenerator, ProblemCatalog, generate_problem
from chem_trainer.problems import DegenerateProblem, Difficulty, ProblemType, build_problem, fmt_num
from chem_trainer.sampling import FieldRange, SeededRng
from chem_trainer.solutions import (
    DilutionGiven,
    MassFromMolarityGiven,
    MixingGiven,
    MolarityFromMassGiven,
    MolarityGiven,
    StockDilutionGiven,
    build_solutions_catalog,
)
from chem_trainer.validation import check_answer, validate_input


def _recompute(given: object) -> float:
    if isinstance(given, DilutionGiven):
        return given.m1 * given.v1 / given.v2
    if isinstance(given, StockDilutionGiven):
        return given.m2 * given.v2 / given.m1
    if isinstance(given, MolarityGiven):
        return given.moles / given.volume_l
    if isinstance(given, MolarityFromMassGiven):
        return given.mass_g / given.molar_mass / (given.volume_ml / 1000.0)
    if isinstance(given, MassFromMolarityGiven):
        return given.molarity * given.volume_ml / 1000.0 * given.molar_mass
    if isinstance(given, MixingGiven):
        return (given.m1 * given.v1 + given.m2 * given.v2) / (given.v1 + given.v2)
    raise AssertionError(f"unexpected given {given!r}")


def _filled_in(given: object) -> list[float]:
    if isinstance(given, DilutionGiven):
        return [given.m1, given.v1, given.v2]
    if isinstance(given, StockDilutionGiven):
        return [given.m2, given.v2, given.m1]
    if isinstance(given, MolarityGiven):
        return [given.moles, given.volume_l]
    if isinstance(given, MolarityFromMassGiven):
        return [given.mass_g, given.molar_mass, given.volume_ml]
    if isinstance(given, MassFromMolarityGiven):
        return [given.molarity, given.volume_ml, given.molar_mass]
    if isinstance(given, MixingGiven):
        return [given.m1, given.v1, given.m2, given.v2]
    raise AssertionError(f"unexpected given {given!r}")


def _last_number(text: str) -> str:
    return re.findall(r"\d+(?:\.\d+)?", text)[-1]


def test_generator_determinism_same_seed_same_sequence() -> None:
    for difficulty in Difficulty:
        gen1 = CatalogProblemGenerator(build_solutions_catalog(), seed=1234)
        gen2 = CatalogProblemGenerator(build_solutions_catalog(), seed=1234)

        seq1 = [gen1.next_problem(difficulty=difficulty) for _ in range(30)]
        seq2 = [gen2.next_problem(difficulty=difficulty) for _ in range(30)]

        assert [(p.id, p.prompt, p.answer) for p in seq1] == [(p.id, p.prompt, p.answer) for p in seq2]


def test_different_seeds_diverge() -> None:
    gen1 = CatalogProblemGenerator(build_solutions_catalog(), seed=1)
    gen2 = CatalogProblemGenerator(build_solutions_catalog(), seed=2)

    seq1 = [gen1.next_problem(difficulty=Difficulty.MEDIUM).prompt for _ in range(10)]
    seq2 = [gen2.next_problem(difficulty=Difficulty.MEDIUM).prompt for _ in range(10)]
    assert seq1 != seq2


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_answer_is_reproducible_from_given(difficulty: Difficulty) -> None:
    gen = CatalogProblemGenerator(build_solutions_catalog(), seed=77)
    for _ in range(200):
        p = gen.next_problem(difficulty=difficulty)
        assert p.answer == p.given.solve()
        assert abs(_recompute(p.given) - p.answer) <= 1e-6
        assert 0.0 < p.answer < 1000.0
        assert p.type is type(p.given).problem_type
        assert p.difficulty is difficulty
        assert len(p.hints) == 3
        assert all(isinstance(h, str) and h for h in p.hints)
        assert check_answer(p.answer, p.answer)


def test_easy_is_limited_to_three_types() -> None:
    catalog = build_solutions_catalog()
    allowed = {ProblemType.DILUTION, ProblemType.MOLARITY, ProblemType.MOLARITY_FROM_MASS}
    assert set(catalog.types_for(Difficulty.EASY)) == allowed

    gen = CatalogProblemGenerator(catalog, seed=5)
    seen = {gen.next_problem(difficulty=Difficulty.EASY).type for _ in range(150)}
    assert seen <= allowed
    assert seen == allowed


def test_harder_tiers_offer_every_solutions_type() -> None:
    catalog = build_solutions_catalog()
    for difficulty in (Difficulty.MEDIUM, Difficulty.HARD):
        assert ProblemType.MIXING in catalog.types_for(difficulty)
        assert ProblemType.MASS_FROM_MOLARITY in catalog.types_for(difficulty)


def test_dilution_solves_for_stock_volume_above_easy() -> None:
    gen = CatalogProblemGenerator(build_solutions_catalog(), seed=9)
    easy = [gen.next_problem(difficulty=Difficulty.EASY) for _ in range(60)]
    medium = [gen.next_problem(difficulty=Difficulty.MEDIUM) for _ in range(120)]

    easy_dilutions = [p for p in easy if p.type is ProblemType.DILUTION]
    medium_dilutions = [p for p in medium if p.type is ProblemType.DILUTION]
    assert easy_dilutions and medium_dilutions
    assert all(isinstance(p.given, DilutionGiven) and p.unit == "M" for p in easy_dilutions)
    assert all(isinstance(p.given, StockDilutionGiven) and p.unit == "mL" for p in medium_dilutions)
    for p in medium_dilutions:
        assert p.given.m2 < p.given.m1


def test_easy_dilution_scenario() -> None:
    p = build_problem(
        problem_id="p1",
        given=DilutionGiven(substance="sodium chloride", m1=2, v1=50, v2=250),
        difficulty=Difficulty.EASY,
    )
    assert p.answer == pytest.approx(0.4)
    assert p.unit == "M"
    assert check_answer(0.4, p.answer)
    assert check_answer(0.39, p.answer)
    assert not check_answer(0.3, p.answer)


def test_mixing_scenario() -> None:
    p = build_problem(
        problem_id="p2",
        given=MixingGiven(substance="sodium hydroxide", m1=2, v1=100, m2=4, v2=100),
        difficulty=Difficulty.MEDIUM,
    )
    assert p.answer == pytest.approx(3.0)
    assert "M = (M1V1 + M2V2) / (V1 + V2)" in p.hints


def test_degenerate_draws_are_rejected() -> None:
    with pytest.raises(DegenerateProblem):
        build_problem(problem_id="x", given=DilutionGiven("water", m1=2, v1=100, v2=100), difficulty=Difficulty.EASY)
    with pytest.raises(DegenerateProblem):
        build_problem(problem_id="x", given=MolarityGiven("water", moles=1.0, volume_l=0.0), difficulty=Difficulty.EASY)
    with pytest.raises(DegenerateProblem):
        build_problem(
            problem_id="x",
            given=StockDilutionGiven("water", m1=1.0, m2=2.0, v2=100),
            difficulty=Difficulty.MEDIUM,
        )
    with pytest.raises(DegenerateProblem):
        # 5000 M is beyond anything the input accepts.
        build_problem(problem_id="x", given=MolarityGiven("water", moles=500.0, volume_l=0.1), difficulty=Difficulty.EASY)


def test_degenerate_draws_are_resampled() -> None:
    calls = {"n": 0}

    def flaky(rng: SeededRng, difficulty: Difficulty) -> MolarityGiven:
        calls["n"] += 1
        if calls["n"] < 4:
            return MolarityGiven("water", moles=1.0, volume_l=0.0)
        return MolarityGiven("water", moles=1.0, volume_l=0.5)

    catalog = ProblemCatalog(
        title="Flaky",
        entries=(CatalogEntry(ProblemType.MOLARITY, frozenset(Difficulty), flaky),),
    )
    p = generate_problem(Difficulty.EASY, catalog, SeededRng(1))
    assert calls["n"] == 4
    assert p.answer == pytest.approx(2.0)


def test_always_degenerate_catalog_gives_up() -> None:
    calls = {"n": 0}

    def broken(rng: SeededRng, difficulty: Difficulty) -> MolarityGiven:
        calls["n"] += 1
        return MolarityGiven("water", moles=0.0, volume_l=1.0)

    catalog = ProblemCatalog(
        title="Broken",
        entries=(CatalogEntry(ProblemType.MOLARITY, frozenset(Difficulty), broken),),
    )
    with pytest.raises(DegenerateProblem):
        generate_problem(Difficulty.HARD, catalog, SeededRng(1))
    assert calls["n"] == MAX_DRAWS


def test_catalog_validation() -> None:
    with pytest.raises(ValueError):
        ProblemCatalog(title="Empty", entries=())

    catalog = ProblemCatalog(
        title="HardOnly",
        entries=(
            CatalogEntry(
                ProblemType.MOLARITY,
                frozenset({Difficulty.HARD}),
                lambda rng, d: MolarityGiven("water", moles=1.0, volume_l=1.0),
            ),
        ),
    )
    with pytest.raises(ValueError):
        generate_problem(Difficulty.EASY, catalog, SeededRng(3))


def test_sampler_respects_bounds_and_rounding() -> None:
    rng = SeededRng(42)
    whole = FieldRange(10, 20)
    frac = FieldRange(0.05, 1.5, 2)
    for _ in range(500):
        a = rng.sample(whole)
        assert 10 <= a <= 20
        assert a == int(a)

        b = rng.sample(frac)
        assert 0.05 <= b <= 1.5
        assert round(b, 2) == b

    with pytest.raises(ValueError):
        FieldRange(5, 1)
    with pytest.raises(ValueError):
        FieldRange(1, 5, -1)


def test_problem_ids_are_unique_and_reproducible() -> None:
    gen1 = CatalogProblemGenerator(build_solutions_catalog(), seed=3)
    gen2 = CatalogProblemGenerator(build_solutions_catalog(), seed=3)
    ids1 = [gen1.next_problem(difficulty=Difficulty.HARD).id for _ in range(50)]
    ids2 = [gen2.next_problem(difficulty=Difficulty.HARD).id for _ in range(50)]
    assert ids1 == ids2
    assert len(set(ids1)) == len(ids1)


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_hint_tiers_fill_in_values_and_give_an_accepted_result(difficulty: Difficulty) -> None:
    gen = CatalogProblemGenerator(build_solutions_catalog(), seed=101)
    seen: set[type] = set()
    for _ in range(200):
        p = gen.next_problem(difficulty=difficulty)
        seen.add(type(p.given))
        formula, filled, result = p.hints

        assert "=" in formula
        for value in _filled_in(p.given):
            assert fmt_num(value) in filled, (filled, value)

        typed = _last_number(result)
        assert result.rstrip().endswith(p.unit)
        parsed = validate_input(typed)
        assert parsed.valid, (result, p.answer)
        assert check_answer(parsed.value, p.answer), (result, p.answer)

    assert len(seen) >= 3


def test_small_mass_result_hint_stays_within_tolerance() -> None:
    p = build_problem(
        problem_id="m",
        given=MassFromMolarityGiven(substance="sulfuric acid", molarity=0.1, volume_ml=25, molar_mass=98.0),
        difficulty=Difficulty.HARD,
    )
    assert p.answer == pytest.approx(0.245)
    assert p.hints[1] == "moles = 0.1 x (25 / 1000) = 0.0025; mass = 0.0025 x 98"
    assert check_answer(float(_last_number(p.hints[2])), p.answer)


def test_dilution_hint_tiers() -> None:
    p = build_problem(
        problem_id="d",
        given=DilutionGiven(substance="sodium chloride", m1=2, v1=50, v2=250),
        difficulty=Difficulty.EASY,
    )
    assert p.hints == (
        "Use M1V1 = M2V2",
        "M2 = (M1 x V1) / V2 = (2 x 50) / 250",
        "M2 = 0.400 M",
    )
