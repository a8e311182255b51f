from __future__ import annotations

from dataclasses import dataclass

from tactics_sim.domain.types import CombatKind, GroundTerrain, Side, SpaceTerrain

MAX_FORTIFICATION_LEVEL = 5
MAX_ORBITAL_SUPPORT_LEVEL = 5


@dataclass(frozen=True)
class CombatContext:
    """Battlefield situation for one engagement. Values are clamped on construction."""

    terrain: SpaceTerrain | GroundTerrain = SpaceTerrain.OPEN_SPACE
    is_ambush: bool = False
    defender_entrenched: bool = False
    fortification_level: int = 0
    orbital_support_level: int = 0
    orbital_support_side: Side | None = None
    attacker_supply_strain: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "fortification_level",
            max(0, min(MAX_FORTIFICATION_LEVEL, int(self.fortification_level))),
        )
        object.__setattr__(
            self,
            "orbital_support_level",
            max(0, min(MAX_ORBITAL_SUPPORT_LEVEL, int(self.orbital_support_level))),
        )
        object.__setattr__(
            self,
            "attacker_supply_strain",
            max(0, min(100, int(self.attacker_supply_strain))),
        )

    @property
    def kind(self) -> CombatKind:
        return CombatKind.GROUND if isinstance(self.terrain, GroundTerrain) else CombatKind.SPACE

    @classmethod
    def ground(cls, terrain: GroundTerrain = GroundTerrain.OPEN, **kwargs) -> "CombatContext":
        return cls(terrain=terrain, **kwargs)
