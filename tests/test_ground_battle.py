from __future__ import annotations

import pytest

from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.types import BattleOutcome, CombatKind, GroundTerrain, RoundOutcome, Side
from tactics_sim.rules.scenario import SCENARIO_DIR, load_scenario
from tactics_sim.systems.battle import GroundCombatResolver, resolver_for
from tests.helpers.factories import make_battle, make_ground_force
from tests.helpers.invariants import assert_round_consistent


def _resolve_pass(seed: int | None = None):
    setup = load_scenario(SCENARIO_DIR / "thermopylae.json")
    resolver = resolver_for(setup.kind)
    return resolver.resolve(
        setup.attacker,
        setup.defender,
        setup.context,
        attacker_doctrine=setup.attacker_doctrine,
        defender_doctrine=setup.defender_doctrine,
        seed=setup.seed if seed is None else seed,
    )


def test_few_hold_the_pass_against_many() -> None:
    result = _resolve_pass()
    first = result.round_log[0]
    assert result.kind == CombatKind.GROUND
    assert result.outcome == BattleOutcome.DEFENDER_VICTORY
    assert result.total_rounds == 15
    assert all(r.outcome == RoundOutcome.DEFENDER_ADVANTAGE for r in result.round_log)
    assert first.defender_power.multiplier > 3
    assert first.defender_power.factor("Fortifications") == pytest.approx(3.0)
    assert first.defender_power.factor("Thermopylae Effect") == pytest.approx(2.0)
    assert first.attacker_power.factor("Thermopylae Effect") is None
    assert result.defender_units_lost == 0


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_pass_rounds_stay_consistent(seed: int) -> None:
    for record in _resolve_pass(seed).round_log:
        assert_round_consistent(record, CombatKind.GROUND)


def test_ground_units_never_lose_shields() -> None:
    attacker = make_ground_force("red", 4, attack=40, shields=50)
    defender = make_ground_force("blue", 4, defense=10, shields=50)
    result = GroundCombatResolver().resolve(attacker, defender, CombatContext.ground(), seed=5)
    for record in result.round_log:
        assert all(hit.shield_damage == 0 for hit in record.defender_damage + record.attacker_damage)


def test_overwhelming_army_wins_in_the_open() -> None:
    attacker = make_ground_force("horde", 12, attack=40, defense=30, morale=90, experience=60)
    defender = make_ground_force("outpost", 3, attack=10, defense=10, strength=40)
    result = GroundCombatResolver().resolve(attacker, defender, CombatContext.ground(), seed=11)
    assert result.outcome == BattleOutcome.ATTACKER_VICTORY
    assert result.attacker_units_lost == 0


def test_orbital_support_appears_in_ground_power() -> None:
    context = CombatContext.ground(GroundTerrain.OPEN, orbital_support_level=2, orbital_support_side=Side.ATTACKER)
    battle = make_battle(make_ground_force("a"), make_ground_force("d"), kind=CombatKind.GROUND, context=context)
    record = battle.step()
    assert record.attacker_power.factor("Orbital Support") == pytest.approx(1.4)
    assert record.defender_power.factor("Enemy Orbital") == pytest.approx(0.6)
