from __future__ import annotations

import random
from dataclasses import dataclass

from tactics_sim.domain.battle_models import BattleConditions
from tactics_sim.domain.doctrine import BattleDoctrine
from tactics_sim.domain.types import (
    CombatKind,
    EngagementPolicy,
    RetreatCondition,
    Stance,
    TrainingTier,
)
from tactics_sim.rules.ruleset import Ruleset
from tactics_sim.sim.state import ForceState, SideCommand
from tactics_sim.systems.doctrine import fire_conditional_orders


@dataclass(frozen=True)
class RetreatDecision:
    retreat: bool
    reason: str = ""


HOLD = RetreatDecision(False)


class RetreatMoraleEvaluator:
    """Decides after each round whether a side breaks off.

    Automatic checks wait until the minimum round. Explicit retreat orders and
    conditional retreat orders are honoured from the first round.
    """

    def __init__(self, rules: Ruleset):
        self.rules = rules

    def evaluate(
        self,
        *,
        kind: CombatKind,
        conditions: BattleConditions,
        doctrine: BattleDoctrine | None,
        command: SideCommand,
        force_state: ForceState,
        training: TrainingTier,
        rng: random.Random,
    ) -> RetreatDecision:
        if conditions.our_units_remaining == 0:
            return HOLD
        if command.retreat_ordered:
            return RetreatDecision(True, "ordered to withdraw")
        fired = fire_conditional_orders(doctrine, command, conditions, retreat_orders=True)
        if fired:
            return RetreatDecision(True, f"conditional order '{fired[0].name}'")
        if conditions.round_number < self.rules.retreat.min_round:
            return HOLD

        condition = doctrine.retreat_condition if doctrine is not None else RetreatCondition.FIFTY_PERCENT_LOSSES
        if self.condition_met(condition, conditions):
            return RetreatDecision(True, f"retreat condition {condition.value.replace('_', ' ')}")

        if self._suppressed(force_state, doctrine, condition):
            return HOLD

        threshold = self.rules.training[training].morale_threshold
        if kind == CombatKind.GROUND:
            if force_state.casualty_ratio() > conditions.our_morale / 100.0 * threshold:
                return RetreatDecision(True, "morale broke under casualties")
            return HOLD

        effective_morale = min(100.0, force_state.average_morale(command.morale_shift()) * threshold)
        chance = (100.0 - effective_morale) / 200.0
        if force_state.force.stance == Stance.EVASIVE:
            chance *= self.rules.retreat.evasive_multiplier
        if chance > 0 and rng.random() < chance:
            return RetreatDecision(True, "morale failed")
        return HOLD

    def condition_met(self, condition: RetreatCondition, conditions: BattleConditions) -> bool:
        rules = self.rules.retreat
        if condition in (RetreatCondition.NEVER, RetreatCondition.COMMANDER_ORDER):
            return False
        if condition == RetreatCondition.FLAGSHIP_CRITICAL:
            return conditions.our_flagship_damage_percent >= rules.flagship_critical_percent
        if condition == RetreatCondition.MORALE_BREAK:
            return conditions.our_morale < rules.morale_break_below
        threshold = rules.loss_thresholds.get(condition)
        return threshold is not None and conditions.our_units_lost_percent >= threshold

    def _suppressed(
        self, force_state: ForceState, doctrine: BattleDoctrine | None, condition: RetreatCondition
    ) -> bool:
        if force_state.force.stance == Stance.ALL_OUT or condition == RetreatCondition.NEVER:
            return True
        return doctrine is not None and doctrine.engagement_policy == EngagementPolicy.ALL_OUT_ASSAULT
