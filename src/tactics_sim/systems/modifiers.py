"""Combat power: base stats times a labeled stack of multipliers.

Every multiplier is recorded as a Factor so a round can explain why one
side hit harder than the other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from tactics_sim.domain.battle_models import Factor, PowerBreakdown
from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import BattleDoctrine
from tactics_sim.domain.forces import Force, ForceStats
from tactics_sim.domain.types import (
    Formation,
    GroundTerrain,
    Side,
    SpaceTerrain,
    TrainingTier,
)
from tactics_sim.rules.ruleset import Ruleset
from tactics_sim.systems.doctrine import calculate_effectiveness


@dataclass(frozen=True)
class SideView:
    """Read-only snapshot of one side, taken at the start of a round."""

    side: Side
    force: Force
    units: Sequence
    stats: ForceStats
    doctrine: BattleDoctrine | None
    formation: Formation
    disorder: int
    commander_present: bool


class ModifierEngine:
    def __init__(self, rules: Ruleset):
        self.rules = rules

    def training_tier(self, view: SideView) -> TrainingTier:
        if view.force.training is not None:
            return view.force.training
        return self.rules.training_tier(view.stats.average_experience)

    def space_power(
        self, own: SideView, enemy: SideView, context: CombatContext, round_number: int
    ) -> PowerBreakdown:
        rules = self.rules.modifiers
        factors: list[Factor] = []
        side = own.side

        self._stance_factors(factors, own)
        experience = rules.experience_base + own.stats.average_experience / 100.0 * rules.experience_scale
        factors.append(Factor("Experience", experience, f"average experience {own.stats.average_experience:.0f}"))
        morale = rules.space_morale_base + own.stats.average_morale / 100.0 * rules.space_morale_scale
        factors.append(Factor("Morale", morale, f"average morale {own.stats.average_morale:.0f}"))
        if own.commander_present:
            factors.append(Factor("Commander", rules.commander, "commander present"))

        if isinstance(context.terrain, SpaceTerrain):
            terrain = self.rules.terrain.space_multiplier(context.terrain, side, own.units)
            if terrain != 1.0:
                factors.append(Factor("Terrain", terrain, context.terrain.value.replace("_", " ")))

        self._ambush_factor(factors, side, context, round_number)

        if side == Side.DEFENDER:
            if context.defender_entrenched:
                factors.append(Factor("Entrenched", rules.entrenched, "prepared defensive positions"))
            if context.fortification_level > 0:
                fort = 1.0 + rules.space_fortification_per_level * context.fortification_level
                factors.append(Factor("Fortifications", fort, f"fortification level {context.fortification_level}"))

        if (
            own.stats.unit_count > 0
            and own.stats.unit_count * rules.space_underdog_ratio <= enemy.stats.unit_count
            and own.stats.average_experience >= rules.space_underdog_min_experience
        ):
            factors.append(
                Factor(
                    "Underdog",
                    rules.space_underdog_bonus,
                    f"outnumbered {enemy.stats.unit_count} to {own.stats.unit_count} by veterans",
                )
            )

        self._orbital_factor(factors, side, context)
        self._supply_strain_factor(factors, side, context)
        self._doctrine_factor(factors, own)
        self._disorder_factor(factors, own)
        self._formation_factors(factors, own, enemy)

        base = own.stats.total_attack if side == Side.ATTACKER else own.stats.total_defense
        return _breakdown(base, factors)

    def ground_power(
        self, own: SideView, enemy: SideView, context: CombatContext, round_number: int
    ) -> PowerBreakdown:
        rules = self.rules.modifiers
        factors: list[Factor] = []
        side = own.side

        self._stance_factors(factors, own)
        tier = self.training_tier(own)
        factors.append(Factor("Training", self.rules.training[tier].power, f"{tier.value} troops"))
        morale = rules.ground_morale_base + own.stats.average_morale / 100.0 * rules.ground_morale_scale
        factors.append(Factor("Morale", morale, f"average morale {own.stats.average_morale:.0f}"))
        if own.commander_present:
            factors.append(Factor("Commander", rules.commander, "commander present"))
        if own.force.equipment_level > 0:
            equipment = 1.0 + own.force.equipment_level / 100.0 * rules.equipment_max_bonus
            factors.append(Factor("Equipment", equipment, f"equipment level {own.force.equipment_level}"))

        if isinstance(context.terrain, GroundTerrain):
            terrain = self.rules.terrain.ground_multiplier(context.terrain, side)
            if terrain != 1.0:
                factors.append(Factor("Terrain", terrain, context.terrain.value))

        self._ambush_factor(factors, side, context, round_number)

        if side == Side.DEFENDER:
            if context.defender_entrenched:
                factors.append(Factor("Entrenched", rules.entrenched, "dug-in positions"))
            if context.fortification_level > 0:
                fort = 1.0 + rules.ground_fortification_per_level * context.fortification_level
                factors.append(Factor("Fortifications", fort, f"fortification level {context.fortification_level}"))
            factors.append(Factor("Home Ground", rules.home_ground, "defending familiar terrain"))
            thermopylae = self.thermopylae_multiplier(own, enemy, context)
            if thermopylae > 1.0:
                factors.append(
                    Factor("Thermopylae Effect", thermopylae, "few holding a narrow pass against many")
                )

        self._orbital_factor(factors, side, context)
        self._supply_strain_factor(factors, side, context)
        if own.force.supply_level < rules.supply_shortage_below:
            shortage = 0.5 + own.force.supply_level / 100.0
            factors.append(Factor("Supply Shortage", shortage, f"supply at {own.force.supply_level}%"))
        self._doctrine_factor(factors, own)
        self._disorder_factor(factors, own)
        self._formation_factors(factors, own, enemy)

        base = own.stats.total_attack if side == Side.ATTACKER else own.stats.total_defense
        return _breakdown(base, factors)

    def thermopylae_multiplier(self, own: SideView, enemy: SideView, context: CombatContext) -> float:
        """Defender bonus in a chokepoint; grows with log10 of the odds, capped."""
        rules = self.rules.modifiers
        if own.side != Side.DEFENDER or context.terrain is not GroundTerrain.CHOKEPOINT:
            return 1.0
        if own.stats.total_strength <= 0:
            return 1.0
        ratio = enemy.stats.total_strength / own.stats.total_strength
        if ratio <= rules.ground_underdog_ratio:
            return 1.0
        return min(rules.ground_underdog_cap, 1.0 + math.log10(ratio))

    def _stance_factors(self, factors: list[Factor], own: SideView) -> None:
        stance = self.rules.stances[own.force.stance].for_side(own.side)
        factors.append(Factor("Stance", stance, f"{own.force.stance.value} stance"))
        if own.doctrine is not None:
            policy = own.doctrine.engagement_policy
            value = self.rules.engagement_policies[policy].for_side(own.side)
            if value != 1.0:
                factors.append(Factor("Engagement Policy", value, policy.value.replace("_", " ")))

    def _ambush_factor(
        self, factors: list[Factor], side: Side, context: CombatContext, round_number: int
    ) -> None:
        rules = self.rules.modifiers
        if not context.is_ambush or round_number > rules.ambush_rounds:
            return
        if side == Side.ATTACKER:
            factors.append(Factor("Ambusher", rules.ambush_attacker, "striking from surprise"))
        else:
            factors.append(Factor("Ambushed", rules.ambush_defender, "caught by surprise"))

    def _orbital_factor(self, factors: list[Factor], side: Side, context: CombatContext) -> None:
        rules = self.rules.modifiers
        if context.orbital_support_level <= 0 or context.orbital_support_side is None:
            return
        if context.orbital_support_side == side:
            value = 1.0 + rules.orbital_per_level * context.orbital_support_level
            factors.append(Factor("Orbital Support", value, f"support level {context.orbital_support_level}"))
        else:
            factors.append(Factor("Enemy Orbital", rules.orbital_enemy_penalty, "under enemy orbital fire"))

    def _supply_strain_factor(self, factors: list[Factor], side: Side, context: CombatContext) -> None:
        if side != Side.ATTACKER or context.attacker_supply_strain <= 0:
            return
        penalty = context.attacker_supply_strain / 100.0 * self.rules.modifiers.supply_strain_max_penalty
        factors.append(Factor("Supply Strain", 1.0 - penalty, f"supply strain {context.attacker_supply_strain}%"))

    def _doctrine_factor(self, factors: list[Factor], own: SideView) -> None:
        if own.doctrine is None:
            return
        effectiveness = calculate_effectiveness(own.doctrine, self.rules.planning)
        factors.append(
            Factor(
                "Doctrine Execution",
                1.0 + effectiveness.execution_bonus,
                f"effectiveness {effectiveness.total} (planning {effectiveness.planning_points}, "
                f"drill {effectiveness.drill_points})",
            )
        )

    def _disorder_factor(self, factors: list[Factor], own: SideView) -> None:
        if own.disorder <= 0:
            return
        value = 1.0 - own.disorder / self.rules.modifiers.disorder_divisor
        factors.append(Factor("Disorder", value, f"disorder {own.disorder}%"))

    def _formation_factors(self, factors: list[Factor], own: SideView, enemy: SideView) -> None:
        formation = self.rules.formation_modifiers[own.formation].for_side(own.side)
        if formation != 1.0:
            factors.append(Factor("Formation", formation, f"{own.formation.value} formation"))
        delta = self.rules.matchups.delta(own.formation, enemy.formation)
        if delta != 0:
            factors.append(
                Factor(
                    "Formation Matchup",
                    (100 + delta) / 100.0,
                    f"{own.formation.value} vs {enemy.formation.value} ({delta:+d}%)",
                )
            )


def _breakdown(base: float, factors: list[Factor]) -> PowerBreakdown:
    multiplier = 1.0
    for factor in factors:
        multiplier *= factor.value
    return PowerBreakdown(
        base=base,
        factors=tuple(factors),
        multiplier=multiplier,
        total=max(0.0, base * multiplier),
    )
