from __future__ import annotations

import pytest

from tactics_sim.domain.types import Formation, GroundTerrain, Side, SpaceTerrain, UnitSize
from tactics_sim.rules.ruleset import default_rules
from tactics_sim.rules.tables import FormationMatchupTable, MatchupRule
from tests.helpers.factories import make_unit


def test_formation_matchups_first_rule_wins() -> None:
    table = default_rules().matchups
    assert table.delta(Formation.WEDGE, Formation.LINE) == 15
    assert table.delta(Formation.CRESCENT, Formation.LINE) == 20
    # sphere's own penalty is listed before the penalty for attacking a sphere
    assert table.delta(Formation.SPHERE, Formation.SPHERE) == -5
    assert table.delta(Formation.WEDGE, Formation.SPHERE) == -10
    assert table.delta(Formation.LINE, Formation.DISPERSED) == 15
    assert table.delta(Formation.DISPERSED, Formation.LINE) == -10
    assert table.delta(Formation.STANDARD, Formation.STANDARD) == 0
    assert table.multiplier(Formation.CRESCENT, Formation.LINE) == pytest.approx(1.2)


def test_counter_formations() -> None:
    table = default_rules().matchups
    assert table.counter_for(Formation.WEDGE) == Formation.LINE
    assert table.counter_for(Formation.SWARM) == Formation.SCREEN


def test_matchup_table_defaults_to_zero_and_standard() -> None:
    table = FormationMatchupTable([MatchupRule("wedge", "*", 7)], {})
    assert table.delta(Formation.WEDGE, Formation.SWARM) == 7
    assert table.delta(Formation.SWARM, Formation.WEDGE) == 0
    assert table.counter_for(Formation.ECHELON) == Formation.STANDARD


def test_nebula_favors_small_hulls() -> None:
    terrain = default_rules().terrain
    small = make_unit("s", size=UnitSize.SMALL)
    large = make_unit("l", size=UnitSize.LARGE)
    assert terrain.space_multiplier(SpaceTerrain.NEBULA, Side.ATTACKER, [small]) == pytest.approx(1.3)
    assert terrain.space_multiplier(SpaceTerrain.NEBULA, Side.ATTACKER, [large]) == pytest.approx(0.8)
    assert terrain.space_multiplier(SpaceTerrain.NEBULA, Side.DEFENDER, [small, large]) == pytest.approx(1.05)


def test_asteroid_field_rewards_maneuverability() -> None:
    terrain = default_rules().terrain
    nimble = make_unit("n", maneuverability=70)
    sluggish = make_unit("s", maneuverability=60)
    assert terrain.space_multiplier(SpaceTerrain.ASTEROID_FIELD, Side.ATTACKER, [nimble]) == pytest.approx(1.3)
    assert terrain.space_multiplier(SpaceTerrain.ASTEROID_FIELD, Side.ATTACKER, [sluggish]) == pytest.approx(0.7)


def test_space_chokepoint_punishes_large_formations() -> None:
    terrain = default_rules().terrain
    ten = [make_unit(f"u{i}") for i in range(10)]
    eleven = ten + [make_unit("u10")]
    assert terrain.space_multiplier(SpaceTerrain.CHOKEPOINT, Side.ATTACKER, ten) == pytest.approx(1.1)
    assert terrain.space_multiplier(SpaceTerrain.CHOKEPOINT, Side.ATTACKER, eleven) == pytest.approx(0.8)


def test_flat_space_terrain_is_role_keyed() -> None:
    terrain = default_rules().terrain
    assert terrain.space_multiplier(SpaceTerrain.DEFENSIVE_POSITION, Side.DEFENDER, []) == pytest.approx(1.4)
    assert terrain.space_multiplier(SpaceTerrain.DEFENSIVE_POSITION, Side.ATTACKER, []) == pytest.approx(0.7)
    assert terrain.space_multiplier(SpaceTerrain.NEBULA, Side.ATTACKER, []) == 1.0


def test_ground_terrain_pairs() -> None:
    terrain = default_rules().terrain
    assert terrain.ground_multiplier(GroundTerrain.CHOKEPOINT, Side.ATTACKER) == pytest.approx(0.4)
    assert terrain.ground_multiplier(GroundTerrain.CHOKEPOINT, Side.DEFENDER) == pytest.approx(2.5)
    assert terrain.ground_multiplier(GroundTerrain.OPEN, Side.ATTACKER) == pytest.approx(1.1)
    assert terrain.ground_multiplier(GroundTerrain.OPEN, Side.DEFENDER) == pytest.approx(0.95)
