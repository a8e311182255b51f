"""Battle doctrine: the pre-planned behavior a force carries into combat.

Doctrines are edited between battles (training, administration). During a
battle they are read-only; which conditional orders have fired is tracked in
the battle state instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tactics_sim.domain.types import (
    BattleContingency,
    EngagementPolicy,
    Formation,
    RetreatCondition,
    TargetPriority,
    TriggerComparison,
    TriggerCondition,
    UnitBattleRole,
)

MAX_CONDITIONAL_ORDERS = 10

DEFAULT_FORMATION = Formation.STANDARD
DEFAULT_ENGAGEMENT_POLICY = EngagementPolicy.BALANCED
DEFAULT_TARGET_PRIORITY = TargetPriority.HIGHEST_THREAT
DEFAULT_DRILL_LEVEL = 50


class DoctrineError(ValueError):
    """Doctrine edit or validation failure."""


@dataclass(frozen=True)
class MidBattleOrder:
    formation: Formation | None = None
    target_priority: TargetPriority | None = None
    retreat: bool = False

    @property
    def is_empty(self) -> bool:
        return self.formation is None and self.target_priority is None and not self.retreat

    def describe(self) -> str:
        parts: list[str] = []
        if self.formation is not None:
            parts.append(f"formation {self.formation.value}")
        if self.target_priority is not None:
            parts.append(f"target {self.target_priority.value}")
        if self.retreat:
            parts.append("retreat")
        return ", ".join(parts) if parts else "no change"


@dataclass(frozen=True)
class ConditionalOrder:
    name: str
    trigger: TriggerCondition
    comparison: TriggerComparison
    threshold: int
    action: MidBattleOrder
    trigger_once: bool = True

    def is_satisfied(self, value: int) -> bool:
        if self.comparison == TriggerComparison.LESS_THAN:
            return value < self.threshold
        if self.comparison == TriggerComparison.LESS_OR_EQUAL:
            return value <= self.threshold
        if self.comparison == TriggerComparison.EQUAL:
            return value == self.threshold
        if self.comparison == TriggerComparison.GREATER_OR_EQUAL:
            return value >= self.threshold
        return value > self.threshold


@dataclass(frozen=True)
class ContingencyPlan:
    contingency: BattleContingency
    initial_action: MidBattleOrder
    follow_up_orders: tuple[ConditionalOrder, ...] = ()


@dataclass
class BattleDoctrine:
    name: str = "Standard Doctrine"
    formation: Formation = DEFAULT_FORMATION
    engagement_policy: EngagementPolicy = DEFAULT_ENGAGEMENT_POLICY
    primary_target: TargetPriority = DEFAULT_TARGET_PRIORITY
    secondary_target: TargetPriority = TargetPriority.WEAKEST
    retreat_condition: RetreatCondition = RetreatCondition.FIFTY_PERCENT_LOSSES
    drill_level: int = DEFAULT_DRILL_LEVEL
    conditional_orders: list[ConditionalOrder] = field(default_factory=list)
    unit_roles: dict[str, UnitBattleRole] = field(default_factory=dict)
    contingency_plans: dict[BattleContingency, ContingencyPlan] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.drill_level = max(0, min(100, int(self.drill_level)))

    def set_engagement_policy(self, policy: EngagementPolicy) -> None:
        self.engagement_policy = policy

    def set_formation(self, formation: Formation) -> None:
        self.formation = formation

    def set_target_priority(
        self, primary: TargetPriority, secondary: TargetPriority = TargetPriority.WEAKEST
    ) -> None:
        self.primary_target = primary
        self.secondary_target = secondary

    def set_retreat_condition(self, condition: RetreatCondition) -> None:
        self.retreat_condition = condition

    def add_conditional_order(self, order: ConditionalOrder) -> None:
        if len(self.conditional_orders) >= MAX_CONDITIONAL_ORDERS:
            raise DoctrineError(f"Maximum {MAX_CONDITIONAL_ORDERS} conditional orders allowed")
        if order.action.is_empty:
            raise DoctrineError(f"Conditional order '{order.name}' has no action")
        self.conditional_orders.append(order)

    def remove_conditional_order(self, name: str) -> None:
        self.conditional_orders = [o for o in self.conditional_orders if o.name != name]

    def assign_unit_role(self, unit_id: str, role: UnitBattleRole) -> None:
        self.unit_roles[unit_id] = role

    def set_contingency_plan(self, plan: ContingencyPlan) -> None:
        self.contingency_plans[plan.contingency] = plan

    def drill(self, points: int) -> int:
        """Add (or remove) drill points, saturating at 0 and 100."""
        self.drill_level = max(0, min(100, self.drill_level + int(points)))
        return self.drill_level

    def flagship_ids(self) -> set[str]:
        return {uid for uid, role in self.unit_roles.items() if role == UnitBattleRole.FLAGSHIP}

    def validate(self) -> None:
        if len(self.conditional_orders) > MAX_CONDITIONAL_ORDERS:
            raise DoctrineError(
                f"Doctrine '{self.name}' has {len(self.conditional_orders)} conditional orders "
                f"(maximum {MAX_CONDITIONAL_ORDERS})"
            )
        for order in self.conditional_orders:
            if order.action.is_empty:
                raise DoctrineError(f"Conditional order '{order.name}' has no action")
        for contingency, plan in self.contingency_plans.items():
            if plan.contingency != contingency:
                raise DoctrineError(
                    f"Contingency plan for {plan.contingency.value} filed under {contingency.value}"
                )
            if len(plan.follow_up_orders) > MAX_CONDITIONAL_ORDERS:
                raise DoctrineError(
                    f"Contingency {contingency.value} has too many follow-up orders"
                )
