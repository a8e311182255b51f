"""Mutable state owned by a single battle.

Callers' forces and doctrines are never written to; units are copied into
LiveUnit records and per-side command state lives in SideCommand.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tactics_sim.domain.doctrine import (
    DEFAULT_FORMATION,
    DEFAULT_TARGET_PRIORITY,
    BattleDoctrine,
    ConditionalOrder,
)
from tactics_sim.domain.forces import Force, Unit
from tactics_sim.domain.types import BattleContingency, Formation, Side, TargetPriority, UnitSize
from tactics_sim.rules.ruleset import MoraleEvent


@dataclass()
class LiveUnit:
    unit_id: str
    name: str
    attack: int
    defense: int
    hull: int
    max_hull: int
    shields: int
    max_shields: int
    morale: int
    experience: int
    size: UnitSize
    maneuverability: int
    destroyed: bool
    initial_hull: int
    initial_shields: int
    initial_morale: int

    @classmethod
    def from_unit(cls, unit: Unit) -> "LiveUnit":
        return cls(
            unit_id=unit.unit_id,
            name=unit.name,
            attack=unit.attack,
            defense=unit.defense,
            hull=unit.hull,
            max_hull=unit.max_hull,
            shields=unit.shields,
            max_shields=unit.max_shields,
            morale=unit.morale,
            experience=unit.experience,
            size=unit.size,
            maneuverability=unit.maneuverability,
            destroyed=unit.destroyed,
            initial_hull=unit.hull,
            initial_shields=unit.shields,
            initial_morale=unit.morale,
        )

    @property
    def is_alive(self) -> bool:
        return not self.destroyed

    @property
    def strength(self) -> int:
        return self.hull + self.shields

    def clamp(self) -> None:
        self.hull = max(0, min(self.max_hull, self.hull))
        self.shields = max(0, min(self.max_shields, self.shields))
        self.morale = max(0, min(100, self.morale))
        if self.hull <= 0:
            self.destroyed = True


@dataclass()
class ForceState:
    force: Force
    units: list[LiveUnit]
    initial_count: int
    initial_strength: int

    @classmethod
    def from_force(cls, force: Force) -> "ForceState":
        units = [LiveUnit.from_unit(unit) for unit in force.alive_units()]
        return cls(
            force=force,
            units=units,
            initial_count=len(units),
            initial_strength=sum(unit.hull for unit in units),
        )

    def alive(self) -> list[LiveUnit]:
        return [unit for unit in self.units if unit.is_alive]

    def alive_count(self) -> int:
        return sum(1 for unit in self.units if unit.is_alive)

    def destroyed_count(self) -> int:
        return self.initial_count - self.alive_count()

    def lost_percent(self) -> int:
        if self.initial_count == 0:
            return 100
        return self.destroyed_count() * 100 // self.initial_count

    def current_strength(self) -> int:
        """Summed hull plus shields of surviving units."""
        return sum(unit.strength for unit in self.units if unit.is_alive)

    def hull_strength(self) -> int:
        return sum(unit.hull for unit in self.units if unit.is_alive)

    def casualty_ratio(self) -> float:
        if self.initial_strength <= 0:
            return 1.0
        return max(0.0, 1.0 - self.hull_strength() / self.initial_strength)

    def average_morale(self, shift: int = 0) -> float:
        """Mean morale of surviving units, moved by shift and kept within 0-100."""
        alive = self.alive()
        if not alive:
            return 0.0
        return max(0.0, min(100.0, sum(unit.morale for unit in alive) / len(alive) + shift))


@dataclass()
class MoraleModifier:
    name: str
    value: int
    rounds_remaining: int


@dataclass()
class SideCommand:
    formation: Formation = DEFAULT_FORMATION
    target_priority: TargetPriority = DEFAULT_TARGET_PRIORITY
    commander_present: bool = False
    disorder: int = 0
    disorder_accrued: int = 0
    order_changes: int = 0
    last_change_round: int | None = None
    retreat_ordered: bool = False
    fired_orders: set[str] = field(default_factory=set)
    triggered_contingencies: set[BattleContingency] = field(default_factory=set)
    armed_orders: list[ConditionalOrder] = field(default_factory=list)
    morale_modifiers: list[MoraleModifier] = field(default_factory=list)
    casualty_marks: set[int] = field(default_factory=set)
    flagship_lost: bool = False

    @classmethod
    def from_doctrine(cls, doctrine: BattleDoctrine | None, *, commander_present: bool) -> "SideCommand":
        if doctrine is None:
            return cls(commander_present=commander_present)
        return cls(
            formation=doctrine.formation,
            target_priority=doctrine.primary_target,
            commander_present=commander_present,
        )

    def clamp(self) -> None:
        self.disorder = max(0, min(100, self.disorder))

    def add_morale_modifier(self, event: MoraleEvent) -> None:
        """Apply a timed morale event. Repeats refresh the duration instead of stacking."""
        for modifier in self.morale_modifiers:
            if modifier.name == event.name:
                modifier.rounds_remaining = max(modifier.rounds_remaining, event.rounds)
                return
        self.morale_modifiers.append(MoraleModifier(event.name, event.value, event.rounds))

    def morale_shift(self) -> int:
        return sum(modifier.value for modifier in self.morale_modifiers)

    def tick_morale(self) -> None:
        for modifier in self.morale_modifiers:
            modifier.rounds_remaining -= 1
        self.morale_modifiers = [m for m in self.morale_modifiers if m.rounds_remaining > 0]


@dataclass()
class BattleState:
    attacker: SideCommand
    defender: SideCommand
    current_round: int = 0

    def command(self, side: Side) -> SideCommand:
        return self.attacker if side == Side.ATTACKER else self.defender
