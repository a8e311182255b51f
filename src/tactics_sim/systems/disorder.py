"""Disorder from live mid-battle order changes.

Changing orders under fire costs cohesion. Orders planned ahead through a
doctrine's conditional orders never pass through here.
"""

from __future__ import annotations

import logging

from tactics_sim.domain.battle_models import OrderChangeResult
from tactics_sim.domain.doctrine import MidBattleOrder
from tactics_sim.rules.ruleset import DisorderRules
from tactics_sim.sim.state import SideCommand
from tactics_sim.systems.doctrine import apply_order

logger = logging.getLogger(__name__)


class DisorderTracker:
    def __init__(self, rules: DisorderRules):
        self.rules = rules

    def change_cost(self, command: SideCommand, *, drill_level: int, current_round: int) -> int:
        rules = self.rules
        cost = rules.base_cost
        if not command.commander_present:
            cost += rules.no_commander_cost
        if (
            command.last_change_round is not None
            and current_round - command.last_change_round < rules.rapid_change_window_rounds
        ):
            cost += rules.rapid_change_cost
        cost += command.order_changes * rules.per_prior_change_cost
        cost -= min(rules.max_drill_reduction, drill_level // rules.drill_reduction_divisor)
        return max(rules.min_cost, cost)

    def change_orders(
        self,
        command: SideCommand,
        order: MidBattleOrder,
        *,
        drill_level: int,
        current_round: int,
    ) -> OrderChangeResult:
        """Apply a live order. Disorder is added whether or not the order lands."""
        cost = self.change_cost(command, drill_level=drill_level, current_round=current_round)
        failed = command.disorder + cost >= self.rules.failure_threshold

        command.disorder = min(self.rules.max_disorder, command.disorder + cost)
        command.disorder_accrued += cost
        command.order_changes += 1
        command.last_change_round = current_round
        command.clamp()

        if failed:
            logger.info("Live order lost in the chaos (%s); disorder now %d", order.describe(), command.disorder)
            return OrderChangeResult(
                success=False,
                disorder_caused=cost,
                total_disorder=command.disorder,
                message=f"Order lost in the chaos. Disorder at {command.disorder}%.",
            )

        apply_order(command, order)
        return OrderChangeResult(
            success=True,
            disorder_caused=cost,
            total_disorder=command.disorder,
            message=f"Orders changed ({order.describe()}). Disorder +{cost} (now {command.disorder}%).",
        )

    def decay(self, command: SideCommand, *, drill_level: int) -> int:
        """Recover per-round cohesion; better drilled forces reorganize faster."""
        command.disorder = max(0, command.disorder - drill_level // self.rules.decay_divisor)
        command.clamp()
        return command.disorder
