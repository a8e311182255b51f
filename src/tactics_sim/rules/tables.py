"""Static lookup tables built once from rules data and shared read-only."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

from tactics_sim.domain.types import Formation, GroundTerrain, Side, SpaceTerrain, UnitSize

WILDCARD = "*"


@dataclass(frozen=True)
class RoleMultiplier:
    attacker: float
    defender: float

    def for_side(self, side: Side) -> float:
        return self.attacker if side == Side.ATTACKER else self.defender


NEUTRAL = RoleMultiplier(1.0, 1.0)


@dataclass(frozen=True)
class MatchupRule:
    formation: str
    against: str
    delta: int

    def matches(self, own: Formation, enemy: Formation) -> bool:
        return self.formation in (WILDCARD, own.value) and self.against in (WILDCARD, enemy.value)


class FormationMatchupTable:
    """Formation-vs-formation effectiveness deltas, in percent.

    Rules are resolved first-match-wins when the table is built, so lookups
    are a single dictionary read.
    """

    def __init__(self, rules: Sequence[MatchupRule], counters: Mapping[Formation, Formation]):
        deltas: dict[tuple[Formation, Formation], int] = {}
        for own in Formation:
            for enemy in Formation:
                deltas[(own, enemy)] = next(
                    (rule.delta for rule in rules if rule.matches(own, enemy)), 0
                )
        self._deltas = MappingProxyType(deltas)
        self._counters = MappingProxyType(dict(counters))

    def delta(self, own: Formation, enemy: Formation) -> int:
        return self._deltas[(own, enemy)]

    def multiplier(self, own: Formation, enemy: Formation) -> float:
        return (100 + self.delta(own, enemy)) / 100.0

    def counter_for(self, formation: Formation) -> Formation:
        """Formation best suited to face the given one."""
        return self._counters.get(formation, Formation.STANDARD)


@dataclass(frozen=True)
class SpaceTerrainRule:
    kind: str
    flat: RoleMultiplier = NEUTRAL
    sizes: Mapping[UnitSize, float] = field(default_factory=dict)
    default: float = 1.0
    threshold: int = 0
    above: float = 1.0
    below: float = 1.0


class TerrainModifierTable:
    """Space and ground terrain multipliers.

    Space entries may depend on the fighting units: nebulae favor small hulls,
    asteroid fields favor nimble ones, chokepoints punish large formations.
    """

    def __init__(
        self,
        space: Mapping[SpaceTerrain, SpaceTerrainRule],
        ground: Mapping[GroundTerrain, RoleMultiplier],
    ):
        self._space = MappingProxyType(dict(space))
        self._ground = MappingProxyType(dict(ground))

    def space_multiplier(self, terrain: SpaceTerrain, side: Side, units: Sequence) -> float:
        rule = self._space.get(terrain)
        if rule is None:
            return 1.0
        if rule.kind == "flat":
            return rule.flat.for_side(side)
        if not units:
            return 1.0
        if rule.kind == "size":
            values = [rule.sizes.get(unit.size, rule.default) for unit in units]
            return sum(values) / len(values)
        if rule.kind == "maneuverability":
            values = [rule.above if unit.maneuverability > rule.threshold else rule.below for unit in units]
            return sum(values) / len(values)
        if rule.kind == "count":
            return rule.above if len(units) > rule.threshold else rule.below
        return 1.0

    def ground_multiplier(self, terrain: GroundTerrain, side: Side) -> float:
        return self._ground.get(terrain, NEUTRAL).for_side(side)
