"""Force and unit models handed to the combat core by its callers."""

from __future__ import annotations

from dataclasses import dataclass, field

from tactics_sim.domain.types import Stance, TrainingTier, UnitSize


def _clamp_int(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, int(value)))


@dataclass(frozen=True)
class Unit:
    """A ship or ground element.

    Ground elements carry no shields; their hull is their strength.
    Out-of-range values are clamped on construction.
    """

    unit_id: str
    name: str
    attack: int
    defense: int
    hull: int
    max_hull: int
    shields: int = 0
    max_shields: int = 0
    morale: int = 75
    experience: int = 20
    size: UnitSize = UnitSize.MEDIUM
    maneuverability: int = 50
    destroyed: bool = False

    def __post_init__(self) -> None:
        max_hull = max(1, int(self.max_hull))
        max_shields = max(0, int(self.max_shields))
        object.__setattr__(self, "attack", max(0, int(self.attack)))
        object.__setattr__(self, "defense", max(0, int(self.defense)))
        object.__setattr__(self, "max_hull", max_hull)
        object.__setattr__(self, "hull", _clamp_int(self.hull, 0, max_hull))
        object.__setattr__(self, "max_shields", max_shields)
        object.__setattr__(self, "shields", _clamp_int(self.shields, 0, max_shields))
        object.__setattr__(self, "morale", _clamp_int(self.morale, 0, 100))
        object.__setattr__(self, "experience", _clamp_int(self.experience, 0, 100))
        object.__setattr__(self, "maneuverability", _clamp_int(self.maneuverability, 0, 100))
        if self.hull <= 0:
            object.__setattr__(self, "destroyed", True)

    @property
    def strength(self) -> int:
        return self.hull

    @property
    def is_alive(self) -> bool:
        return not self.destroyed


@dataclass(frozen=True)
class Force:
    """A fleet or ground army on one side of an engagement."""

    force_id: str
    name: str
    units: list[Unit] = field(default_factory=list)
    stance: Stance = Stance.BALANCED
    commander_present: bool = False
    training: TrainingTier | None = None
    supply_level: int = 100
    equipment_level: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "supply_level", _clamp_int(self.supply_level, 0, 100))
        object.__setattr__(self, "equipment_level", _clamp_int(self.equipment_level, 0, 100))

    def alive_units(self) -> list[Unit]:
        return [unit for unit in self.units if unit.is_alive]


@dataclass(frozen=True)
class ForceStats:
    total_attack: float
    total_defense: float
    total_strength: int
    unit_count: int
    average_morale: float
    average_experience: float

    @classmethod
    def empty(cls) -> "ForceStats":
        return cls(
            total_attack=0.0,
            total_defense=0.0,
            total_strength=0,
            unit_count=0,
            average_morale=0.0,
            average_experience=0.0,
        )

    @property
    def is_empty(self) -> bool:
        return self.unit_count == 0
