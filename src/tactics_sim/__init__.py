"""Tactical combat resolution for space fleets and ground forces."""

from tactics_sim.domain.battle_models import BattleResult, RoundRecord
from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import BattleDoctrine, ConditionalOrder, ContingencyPlan, MidBattleOrder
from tactics_sim.domain.forces import Force, Unit
from tactics_sim.rules.ruleset import Ruleset, default_rules
from tactics_sim.systems.aftermath import apply_battle_result
from tactics_sim.systems.battle import (
    Battle,
    GroundCombatResolver,
    SpaceCombatResolver,
    resolver_for,
)

__all__ = [
    "Battle",
    "BattleDoctrine",
    "BattleResult",
    "CombatContext",
    "ConditionalOrder",
    "ContingencyPlan",
    "Force",
    "GroundCombatResolver",
    "MidBattleOrder",
    "RoundRecord",
    "Ruleset",
    "SpaceCombatResolver",
    "Unit",
    "apply_battle_result",
    "default_rules",
    "resolver_for",
]
