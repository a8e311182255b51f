from __future__ import annotations

import random
from typing import Sequence

from tactics_sim.domain.battle_models import UnitDamage
from tactics_sim.domain.types import CombatKind, RoundOutcome, TargetPriority
from tactics_sim.rules.ruleset import CombatTuning, DamageRules
from tactics_sim.sim.state import LiveUnit

_SHUFFLED = {TargetPriority.NEAREST, TargetPriority.RANDOM, TargetPriority.ISOLATED}


def round_damage_cap(target_strength: int, divisor: int = 3) -> int:
    """Most damage one round may deal to a side with the given strength."""
    return max(1, target_strength // divisor)


class RoundResolver:
    """Resolves the exchange of fire for one round.

    Randomness comes only from the rng passed in, drawn in a fixed order, so
    a seeded battle replays identically.
    """

    def __init__(self, tuning: CombatTuning, damage: DamageRules):
        self.tuning = tuning
        self.damage_rules = damage

    def roll(self, rng: random.Random) -> float:
        low, high = self.tuning.variance
        return rng.uniform(low, high)

    def damage(
        self,
        effective_power: float,
        fraction: float,
        priority: TargetPriority,
        target_strength: int,
    ) -> int:
        if target_strength <= 0 or effective_power <= 0:
            return 0
        raw = effective_power * fraction
        if priority in self.damage_rules.focus_fire_priorities:
            raw *= self.damage_rules.focus_fire_bonus
        dealt = max(1, int(raw))
        return min(dealt, round_damage_cap(target_strength, self.damage_rules.round_loss_divisor))

    def classify(self, effective_attack: float, effective_defense: float) -> RoundOutcome:
        threshold = self.tuning.advantage_threshold
        if effective_attack > effective_defense * threshold:
            return RoundOutcome.ATTACKER_ADVANTAGE
        if effective_defense > effective_attack * threshold:
            return RoundOutcome.DEFENDER_ADVANTAGE
        return RoundOutcome.STALEMATE

    def order_targets(
        self,
        units: Sequence[LiveUnit],
        priority: TargetPriority,
        rng: random.Random,
        flagship_ids: set[str] | frozenset[str] = frozenset(),
    ) -> list[LiveUnit]:
        alive = [unit for unit in units if unit.is_alive]
        if priority in (TargetPriority.WEAKEST, TargetPriority.WEAKEST_FIRST):
            return sorted(alive, key=lambda u: u.hull)
        if priority in (TargetPriority.STRONGEST, TargetPriority.HIGHEST_THREAT, TargetPriority.WEAPON_SYSTEMS):
            return sorted(alive, key=lambda u: -u.attack)
        if priority == TargetPriority.CAPITALS:
            return sorted(alive, key=lambda u: -u.size.rank)
        if priority == TargetPriority.ESCORTS:
            return sorted(alive, key=lambda u: u.size.rank)
        if priority == TargetPriority.FLAGSHIPS:
            return sorted(alive, key=lambda u: (u.unit_id not in flagship_ids, -u.size.rank))
        if priority in _SHUFFLED:
            shuffled = list(alive)
            rng.shuffle(shuffled)
            return shuffled
        return alive

    def distribute(
        self,
        units: Sequence[LiveUnit],
        total: int,
        priority: TargetPriority,
        rng: random.Random,
        flagship_ids: set[str] | frozenset[str] = frozenset(),
    ) -> list[tuple[LiveUnit, int]]:
        """Split a round's damage across targets. Shares always sum to total."""
        if total <= 0:
            return []
        if self.tuning.distribution == "proportional":
            targets = [unit for unit in units if unit.is_alive]
            weights = [float(max(1, unit.hull)) for unit in targets]
        else:
            ordered = self.order_targets(units, priority, rng, flagship_ids)
            if priority == TargetPriority.BALANCED or self.tuning.max_targets <= 0:
                targets = ordered
            else:
                targets = ordered[: self.tuning.max_targets]
            spread = self.damage_rules.target_weight_variance
            weights = [1.0 + rng.uniform(-spread, spread) for _ in targets]
        if not targets:
            return []
        return list(zip(targets, _apportion(total, weights)))

    def apply(self, unit: LiveUnit, amount: int, kind: CombatKind) -> UnitDamage:
        shield_damage = 0
        remaining = amount
        if kind == CombatKind.SPACE and unit.shields > 0 and remaining > 0:
            shield_damage = min(unit.shields, remaining)
            unit.shields -= shield_damage
            remaining -= shield_damage
            remaining = int(remaining * self.damage_rules.shield_leak_factor)

        hull_damage = min(unit.hull, remaining)
        unit.hull -= hull_damage

        morale_loss = 0
        if kind == CombatKind.SPACE and hull_damage > self.damage_rules.morale_hit_threshold:
            morale_loss = min(unit.morale, hull_damage // self.damage_rules.morale_hit_divisor)
            unit.morale -= morale_loss

        unit.clamp()
        return UnitDamage(
            unit_id=unit.unit_id,
            damage_assigned=amount,
            shield_damage=shield_damage,
            hull_damage=hull_damage,
            morale_loss=morale_loss,
            destroyed=unit.destroyed,
        )


def _apportion(total: int, weights: list[float]) -> list[int]:
    """Largest-remainder split of an integer total by weight."""
    weight_sum = sum(weights)
    if weight_sum <= 0:
        weights = [1.0] * len(weights)
        weight_sum = float(len(weights))
    exact = [total * w / weight_sum for w in weights]
    shares = [int(x) for x in exact]
    leftover = total - sum(shares)
    by_remainder = sorted(range(len(weights)), key=lambda i: (-(exact[i] - shares[i]), i))
    for i in by_remainder[:leftover]:
        shares[i] += 1
    return shares
