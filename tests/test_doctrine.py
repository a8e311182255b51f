from __future__ import annotations

import pytest

from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import (
    MAX_CONDITIONAL_ORDERS,
    BattleDoctrine,
    ConditionalOrder,
    ContingencyPlan,
    DoctrineError,
    MidBattleOrder,
)
from tactics_sim.domain.types import (
    BattleContingency,
    EngagementPolicy,
    Formation,
    Side,
    SpaceTerrain,
    TargetPriority,
    TriggerComparison,
    TriggerCondition,
    UnitBattleRole,
)
from tactics_sim.rules.ruleset import default_rules
from tactics_sim.sim.state import ForceState, SideCommand
from tactics_sim.systems.doctrine import (
    build_conditions,
    calculate_effectiveness,
    detect_contingencies,
    fire_conditional_orders,
    trigger_contingencies,
)
from tests.helpers.factories import make_conditions, make_fleet


def _order(
    name: str = "order",
    *,
    trigger: TriggerCondition = TriggerCondition.BATTLE_ROUND,
    comparison: TriggerComparison = TriggerComparison.GREATER_OR_EQUAL,
    threshold: int = 2,
    action: MidBattleOrder | None = None,
    trigger_once: bool = True,
) -> ConditionalOrder:
    return ConditionalOrder(
        name=name,
        trigger=trigger,
        comparison=comparison,
        threshold=threshold,
        action=action if action is not None else MidBattleOrder(formation=Formation.LINE),
        trigger_once=trigger_once,
    )


def test_conditional_order_limit() -> None:
    doctrine = BattleDoctrine()
    for i in range(MAX_CONDITIONAL_ORDERS):
        doctrine.add_conditional_order(_order(f"o{i}"))
    with pytest.raises(DoctrineError):
        doctrine.add_conditional_order(_order("one too many"))
    assert len(doctrine.conditional_orders) == MAX_CONDITIONAL_ORDERS


def test_conditional_order_needs_an_action() -> None:
    with pytest.raises(DoctrineError):
        BattleDoctrine().add_conditional_order(_order(action=MidBattleOrder()))


def test_remove_conditional_order_by_name() -> None:
    doctrine = BattleDoctrine()
    doctrine.add_conditional_order(_order("keep"))
    doctrine.add_conditional_order(_order("drop"))
    doctrine.remove_conditional_order("drop")
    assert [o.name for o in doctrine.conditional_orders] == ["keep"]


def test_drill_saturates() -> None:
    doctrine = BattleDoctrine(drill_level=90)
    assert doctrine.drill(30) == 100
    assert doctrine.drill(-500) == 0
    assert BattleDoctrine(drill_level=150).drill_level == 100


def test_validate_rejects_misfiled_contingency() -> None:
    doctrine = BattleDoctrine()
    doctrine.contingency_plans[BattleContingency.OUTNUMBERED] = ContingencyPlan(
        contingency=BattleContingency.AMBUSHED,
        initial_action=MidBattleOrder(formation=Formation.SPHERE),
    )
    with pytest.raises(DoctrineError):
        doctrine.validate()


def test_flagship_ids_follow_roles() -> None:
    doctrine = BattleDoctrine()
    doctrine.assign_unit_role("a", UnitBattleRole.FLAGSHIP)
    doctrine.assign_unit_role("b", UnitBattleRole.SCREEN)
    assert doctrine.flagship_ids() == {"a"}


@pytest.mark.parametrize(
    "comparison,value,expected",
    [
        (TriggerComparison.LESS_THAN, 24, True),
        (TriggerComparison.LESS_THAN, 25, False),
        (TriggerComparison.LESS_OR_EQUAL, 25, True),
        (TriggerComparison.EQUAL, 25, True),
        (TriggerComparison.EQUAL, 26, False),
        (TriggerComparison.GREATER_OR_EQUAL, 25, True),
        (TriggerComparison.GREATER_THAN, 25, False),
        (TriggerComparison.GREATER_THAN, 26, True),
    ],
)
def test_trigger_comparisons(comparison: TriggerComparison, value: int, expected: bool) -> None:
    assert _order(comparison=comparison, threshold=25).is_satisfied(value) is expected


def test_effectiveness_default_doctrine_is_all_drill() -> None:
    effectiveness = calculate_effectiveness(BattleDoctrine(), default_rules().planning)
    assert effectiveness.planning_points == 0
    assert effectiveness.drill_points == 25
    assert effectiveness.total == 25
    assert effectiveness.execution_bonus == pytest.approx(0.25)


def test_effectiveness_unit_roles_are_capped() -> None:
    planning = default_rules().planning
    doctrine = BattleDoctrine(drill_level=0)
    for i in range(3):
        doctrine.assign_unit_role(f"u{i}", UnitBattleRole.LINE)
    assert calculate_effectiveness(doctrine, planning).planning_points == 6
    for i in range(3, 30):
        doctrine.assign_unit_role(f"u{i}", UnitBattleRole.LINE)
    assert calculate_effectiveness(doctrine, planning).planning_points == 20


def test_effectiveness_planning_is_capped() -> None:
    doctrine = BattleDoctrine(
        formation=Formation.WEDGE,
        engagement_policy=EngagementPolicy.AGGRESSIVE,
        primary_target=TargetPriority.WEAKEST,
        drill_level=100,
    )
    for i in range(MAX_CONDITIONAL_ORDERS):
        doctrine.add_conditional_order(_order(f"o{i}"))
    for contingency in (BattleContingency.AMBUSHED, BattleContingency.OUTNUMBERED, BattleContingency.CRITICAL_LOSSES):
        doctrine.set_contingency_plan(ContingencyPlan(contingency, MidBattleOrder(formation=Formation.SPHERE)))
    effectiveness = calculate_effectiveness(doctrine, default_rules().planning)
    assert effectiveness.planning_points == 50
    assert effectiveness.total == 100


def test_one_shot_orders_fire_once() -> None:
    doctrine = BattleDoctrine()
    doctrine.add_conditional_order(_order(threshold=2))
    command = SideCommand()
    assert fire_conditional_orders(doctrine, command, make_conditions(round_number=1), retreat_orders=False) == []
    fired = fire_conditional_orders(doctrine, command, make_conditions(round_number=2), retreat_orders=False)
    assert [o.name for o in fired] == ["order"]
    assert command.formation == Formation.LINE
    assert fire_conditional_orders(doctrine, command, make_conditions(round_number=3), retreat_orders=False) == []
    assert command.disorder == 0


def test_repeatable_orders_refire() -> None:
    doctrine = BattleDoctrine()
    doctrine.add_conditional_order(_order(trigger_once=False))
    command = SideCommand()
    for round_number in (2, 3, 4):
        assert len(fire_conditional_orders(doctrine, command, make_conditions(round_number=round_number), retreat_orders=False)) == 1


def test_retreat_orders_are_evaluated_separately() -> None:
    doctrine = BattleDoctrine()
    doctrine.add_conditional_order(
        _order(
            "fall back",
            trigger=TriggerCondition.OUR_UNITS_LOST_PERCENT,
            threshold=25,
            action=MidBattleOrder(retreat=True),
        )
    )
    command = SideCommand()
    conditions = make_conditions(our_units_lost_percent=30)
    assert fire_conditional_orders(doctrine, command, conditions, retreat_orders=False) == []
    assert not command.retreat_ordered
    assert len(fire_conditional_orders(doctrine, command, conditions, retreat_orders=True)) == 1
    assert command.retreat_ordered


def test_contingencies_detected_from_situation() -> None:
    context = CombatContext(terrain=SpaceTerrain.NEBULA, is_ambush=True)
    conditions = make_conditions(
        our_units_remaining=2,
        enemy_units_remaining=5,
        our_units_lost_percent=50,
        enemy_units_lost_percent=75,
        our_flagship_destroyed=True,
    )
    assert set(detect_contingencies(Side.DEFENDER, context, conditions)) == set(BattleContingency)
    assert BattleContingency.AMBUSHED not in detect_contingencies(Side.ATTACKER, context, conditions)


def test_contingency_plan_runs_once_and_arms_follow_ups() -> None:
    follow_up = _order("then screen", threshold=3, action=MidBattleOrder(target_priority=TargetPriority.WEAKEST))
    doctrine = BattleDoctrine()
    doctrine.set_contingency_plan(
        ContingencyPlan(
            contingency=BattleContingency.NEBULA_ENCOUNTER,
            initial_action=MidBattleOrder(formation=Formation.DISPERSED),
            follow_up_orders=(follow_up,),
        )
    )
    command = SideCommand()
    context = CombatContext(terrain=SpaceTerrain.NEBULA)

    first = trigger_contingencies(doctrine, command, Side.ATTACKER, context, make_conditions(round_number=1))
    assert first == [BattleContingency.NEBULA_ENCOUNTER]
    assert command.formation == Formation.DISPERSED
    assert command.armed_orders == [follow_up]
    assert trigger_contingencies(doctrine, command, Side.ATTACKER, context, make_conditions(round_number=2)) == []

    fired = fire_conditional_orders(doctrine, command, make_conditions(round_number=3), retreat_orders=False)
    assert fired == [follow_up]
    assert "armed:0" in command.fired_orders
    assert command.target_priority == TargetPriority.WEAKEST


def test_build_conditions_reports_flagship_damage() -> None:
    own = ForceState.from_force(make_fleet("own", 2))
    enemy = ForceState.from_force(make_fleet("enemy", 4))
    own.units[0].hull = 25
    enemy.units[0].hull = 0
    enemy.units[0].clamp()
    doctrine = BattleDoctrine()
    doctrine.assign_unit_role(own.units[0].unit_id, UnitBattleRole.FLAGSHIP)
    enemy_command = SideCommand(disorder=30)

    conditions = build_conditions(
        round_number=4, own=own, enemy=enemy, own_doctrine=doctrine, enemy_command=enemy_command
    )
    assert conditions.round_number == 4
    assert conditions.our_flagship_damage_percent == 75
    assert not conditions.our_flagship_destroyed
    assert conditions.enemy_units_remaining == 3
    assert conditions.enemy_units_lost_percent == 25
    assert conditions.enemy_disorder == 30
