"""Battle runtime records.

Everything here is frozen: rounds are appended to an append-only log and
results are handed back to callers, who apply them to their own state.
"""

from __future__ import annotations

from dataclasses import dataclass

from tactics_sim.domain.types import BattleOutcome, CombatKind, RoundOutcome


@dataclass(frozen=True)
class Factor:
    name: str
    value: float
    why: str


@dataclass(frozen=True)
class PowerBreakdown:
    base: float
    factors: tuple[Factor, ...]
    multiplier: float
    total: float

    def factor(self, name: str) -> float | None:
        for item in self.factors:
            if item.name == name:
                return item.value
        return None

    def summary(self) -> str:
        if not self.factors:
            return f"{self.base:.0f} base"
        parts = ", ".join(f"{f.name} x{f.value:.2f}" for f in self.factors)
        return f"{self.base:.0f} base x{self.multiplier:.2f} ({parts}) = {self.total:.0f}"


@dataclass(frozen=True)
class DoctrineEffectiveness:
    planning_points: int
    drill_points: int
    total: int

    @property
    def execution_bonus(self) -> float:
        return self.total / 100.0


@dataclass(frozen=True)
class BattleConditions:
    """Snapshot of one side's situation, used to evaluate triggers."""

    round_number: int
    our_units_remaining: int
    our_units_lost_percent: int
    enemy_units_remaining: int
    enemy_units_lost_percent: int
    our_flagship_damage_percent: int
    our_flagship_destroyed: bool
    our_morale: int
    enemy_morale: int
    enemy_disorder: int


@dataclass(frozen=True)
class OrderChangeResult:
    success: bool
    disorder_caused: int
    total_disorder: int
    message: str


@dataclass(frozen=True)
class UnitDamage:
    unit_id: str
    damage_assigned: int
    shield_damage: int
    hull_damage: int
    morale_loss: int
    destroyed: bool


@dataclass(frozen=True)
class UnitDamageSummary:
    """Net effect of a whole battle on one unit."""

    unit_id: str
    shield_damage: int
    hull_damage: int
    morale_loss: int
    destroyed: bool


@dataclass(frozen=True)
class RoundRecord:
    round_number: int
    outcome: RoundOutcome
    attacker_power: PowerBreakdown
    defender_power: PowerBreakdown
    effective_attack: float
    effective_defense: float
    damage_to_attacker: int
    damage_to_defender: int
    attacker_damage: tuple[UnitDamage, ...]
    defender_damage: tuple[UnitDamage, ...]
    attacker_disorder: int
    defender_disorder: int
    attacker_units_remaining: int
    defender_units_remaining: int
    attacker_retreating: bool
    defender_retreating: bool
    events: tuple[str, ...]
    narrative: str


@dataclass(frozen=True)
class BattleResult:
    kind: CombatKind
    outcome: BattleOutcome
    total_rounds: int
    attacker_damage: tuple[UnitDamageSummary, ...]
    defender_damage: tuple[UnitDamageSummary, ...]
    attacker_units_lost: int
    defender_units_lost: int
    round_log: tuple[RoundRecord, ...]
    narrative: str
