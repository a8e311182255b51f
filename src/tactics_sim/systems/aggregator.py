from __future__ import annotations

from typing import Iterable

from tactics_sim.domain.forces import ForceStats


def unit_condition(unit) -> float:
    """Fraction of fighting condition left: hull and shields weighted equally."""
    hull_fraction = unit.hull / unit.max_hull if unit.max_hull > 0 else 0.0
    if unit.max_shields <= 0:
        return hull_fraction
    return (hull_fraction + unit.shields / unit.max_shields) / 2.0


def aggregate(units: Iterable) -> ForceStats:
    """Sum the surviving units' fighting stats.

    Accepts domain Units or battle LiveUnits. An empty or fully destroyed
    roster yields ForceStats.empty(), which callers treat as a lost side.
    """
    alive = [unit for unit in units if not unit.destroyed]
    if not alive:
        return ForceStats.empty()
    total_attack = 0.0
    total_defense = 0.0
    for unit in alive:
        condition = unit_condition(unit)
        total_attack += unit.attack * condition
        total_defense += unit.defense * condition
    return ForceStats(
        total_attack=total_attack,
        total_defense=total_defense,
        total_strength=sum(unit.hull + unit.shields for unit in alive),
        unit_count=len(alive),
        average_morale=sum(unit.morale for unit in alive) / len(alive),
        average_experience=sum(unit.experience for unit in alive) / len(alive),
    )
