"""Doctrine evaluation during battle: effectiveness, triggers and contingencies."""

from __future__ import annotations

from tactics_sim.domain.battle_models import BattleConditions, DoctrineEffectiveness
from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import (
    DEFAULT_ENGAGEMENT_POLICY,
    DEFAULT_FORMATION,
    DEFAULT_TARGET_PRIORITY,
    BattleDoctrine,
    ConditionalOrder,
    MidBattleOrder,
)
from tactics_sim.domain.types import BattleContingency, Side, SpaceTerrain, TriggerCondition
from tactics_sim.rules.ruleset import PlanningRules
from tactics_sim.sim.state import ForceState, SideCommand


def calculate_effectiveness(doctrine: BattleDoctrine, planning: PlanningRules) -> DoctrineEffectiveness:
    points = 0
    if doctrine.engagement_policy != DEFAULT_ENGAGEMENT_POLICY:
        points += planning.engagement_policy
    if doctrine.formation != DEFAULT_FORMATION:
        points += planning.formation
    if doctrine.primary_target != DEFAULT_TARGET_PRIORITY:
        points += planning.target_priority
    points += len(doctrine.conditional_orders) * planning.per_conditional_order
    points += min(planning.unit_role_cap, len(doctrine.unit_roles) * planning.per_unit_role)
    points += len(doctrine.contingency_plans) * planning.per_contingency_plan
    points = min(planning.planning_cap, points)
    drill_points = doctrine.drill_level // planning.drill_divisor
    return DoctrineEffectiveness(
        planning_points=points,
        drill_points=drill_points,
        total=points + drill_points,
    )


def build_conditions(
    *,
    round_number: int,
    own: ForceState,
    enemy: ForceState,
    own_doctrine: BattleDoctrine | None,
    enemy_command: SideCommand,
    own_command: SideCommand | None = None,
) -> BattleConditions:
    flagship_damage = 0
    flagship_destroyed = False
    flagship_ids = own_doctrine.flagship_ids() if own_doctrine is not None else set()
    flagship = next((unit for unit in own.units if unit.unit_id in flagship_ids), None)
    if flagship is not None:
        if flagship.destroyed:
            flagship_damage = 100
            flagship_destroyed = True
        else:
            flagship_damage = 100 - flagship.hull * 100 // max(1, flagship.max_hull)

    return BattleConditions(
        round_number=round_number,
        our_units_remaining=own.alive_count(),
        our_units_lost_percent=own.lost_percent(),
        enemy_units_remaining=enemy.alive_count(),
        enemy_units_lost_percent=enemy.lost_percent(),
        our_flagship_damage_percent=flagship_damage,
        our_flagship_destroyed=flagship_destroyed,
        our_morale=int(own.average_morale(own_command.morale_shift() if own_command is not None else 0)),
        enemy_morale=int(enemy.average_morale(enemy_command.morale_shift())),
        enemy_disorder=enemy_command.disorder,
    )


def trigger_value(trigger: TriggerCondition, conditions: BattleConditions) -> int:
    if trigger == TriggerCondition.OUR_UNITS_REMAINING:
        return conditions.our_units_remaining
    if trigger == TriggerCondition.OUR_UNITS_LOST_PERCENT:
        return conditions.our_units_lost_percent
    if trigger == TriggerCondition.ENEMY_UNITS_REMAINING:
        return conditions.enemy_units_remaining
    if trigger == TriggerCondition.ENEMY_UNITS_LOST_PERCENT:
        return conditions.enemy_units_lost_percent
    if trigger == TriggerCondition.OUR_FLAGSHIP_DAMAGE_PERCENT:
        return conditions.our_flagship_damage_percent
    if trigger == TriggerCondition.BATTLE_ROUND:
        return conditions.round_number
    if trigger == TriggerCondition.OUR_MORALE:
        return conditions.our_morale
    if trigger == TriggerCondition.ENEMY_MORALE:
        return conditions.enemy_morale
    return conditions.enemy_disorder


def apply_order(command: SideCommand, order: MidBattleOrder) -> None:
    """Apply an order with no disorder cost (pre-planned or conditional)."""
    if order.formation is not None:
        command.formation = order.formation
    if order.target_priority is not None:
        command.target_priority = order.target_priority
    if order.retreat:
        command.retreat_ordered = True


def _keyed_orders(doctrine: BattleDoctrine | None, command: SideCommand) -> list[tuple[str, ConditionalOrder]]:
    keyed: list[tuple[str, ConditionalOrder]] = []
    if doctrine is not None:
        keyed.extend((f"doctrine:{i}", order) for i, order in enumerate(doctrine.conditional_orders))
    keyed.extend((f"armed:{i}", order) for i, order in enumerate(command.armed_orders))
    return keyed


def fire_conditional_orders(
    doctrine: BattleDoctrine | None,
    command: SideCommand,
    conditions: BattleConditions,
    *,
    retreat_orders: bool,
) -> list[ConditionalOrder]:
    """Fire every satisfied order of the requested kind and return them.

    Non-retreat orders are checked at the start of a round; retreat orders
    after damage, so a loss threshold crossed this round is acted on at once.
    """
    fired: list[ConditionalOrder] = []
    for key, order in _keyed_orders(doctrine, command):
        if order.action.retreat != retreat_orders:
            continue
        if order.trigger_once and key in command.fired_orders:
            continue
        if not order.is_satisfied(trigger_value(order.trigger, conditions)):
            continue
        command.fired_orders.add(key)
        apply_order(command, order.action)
        fired.append(order)
    return fired


def detect_contingencies(
    side: Side, context: CombatContext, conditions: BattleConditions
) -> list[BattleContingency]:
    detected: list[BattleContingency] = []
    if context.is_ambush and side == Side.DEFENDER:
        detected.append(BattleContingency.AMBUSHED)
    if conditions.our_units_remaining > 0 and conditions.enemy_units_remaining >= 2 * conditions.our_units_remaining:
        detected.append(BattleContingency.OUTNUMBERED)
    if conditions.our_flagship_destroyed:
        detected.append(BattleContingency.FLAGSHIP_DESTROYED)
    if conditions.our_units_lost_percent >= 50:
        detected.append(BattleContingency.CRITICAL_LOSSES)
    if conditions.enemy_units_lost_percent >= 75:
        detected.append(BattleContingency.VICTORY_IMMINENT)
    if context.terrain == SpaceTerrain.NEBULA:
        detected.append(BattleContingency.NEBULA_ENCOUNTER)
    return detected


def trigger_contingencies(
    doctrine: BattleDoctrine | None,
    command: SideCommand,
    side: Side,
    context: CombatContext,
    conditions: BattleConditions,
) -> list[BattleContingency]:
    """Run each matching contingency plan once per battle."""
    if doctrine is None or not doctrine.contingency_plans:
        return []
    triggered: list[BattleContingency] = []
    for contingency in detect_contingencies(side, context, conditions):
        plan = doctrine.contingency_plans.get(contingency)
        if plan is None or contingency in command.triggered_contingencies:
            continue
        command.triggered_contingencies.add(contingency)
        apply_order(command, plan.initial_action)
        command.armed_orders.extend(plan.follow_up_orders)
        triggered.append(contingency)
    return triggered
