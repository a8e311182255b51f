"""Human-readable round and battle summaries."""

from __future__ import annotations

from typing import Sequence

from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.types import (
    BattleOutcome,
    CombatKind,
    Formation,
    GroundTerrain,
    RoundOutcome,
)

_SPACE_LINES = {
    RoundOutcome.ATTACKER_ADVANTAGE: (
        "The attackers press forward, weapons finding their marks.",
        "Attacking ships break through the defensive screen.",
        "A concentrated volley staggers the defending line.",
    ),
    RoundOutcome.DEFENDER_ADVANTAGE: (
        "The defenders hold firm and punish every approach.",
        "Defensive fire tears into the attacking formation.",
        "The assault falters against disciplined return fire.",
    ),
    RoundOutcome.STALEMATE: (
        "Both fleets trade fire without a decisive edge.",
        "The battle line holds steady as shields flare on both sides.",
        "Neither side gives ground in a furious exchange.",
    ),
}

_GROUND_LINES = {
    RoundOutcome.ATTACKER_ADVANTAGE: (
        "Attacking troops gain ground under heavy fire.",
        "The assault overruns a forward position.",
    ),
    RoundOutcome.DEFENDER_ADVANTAGE: (
        "Defenders repulse the assault with heavy casualties.",
        "Entrenched positions hold against wave after wave.",
    ),
    RoundOutcome.STALEMATE: (
        "Fighting grinds on with neither side gaining ground.",
        "Both armies dig in and trade fire across the line.",
    ),
}

_GROUND_TERRAIN_LINES = {
    GroundTerrain.URBAN: "Street-to-street fighting slows the advance.",
    GroundTerrain.MOUNTAIN: "Mountain passes favor the defenders.",
    GroundTerrain.FOREST: "Dense forest hides ambushers at every turn.",
    GroundTerrain.CHOKEPOINT: "The narrow pass funnels attackers into a killing zone.",
    GroundTerrain.SWAMP: "Troops struggle through the mire.",
    GroundTerrain.ARCTIC: "Bitter cold saps the strength of both armies.",
}


def round_narrative(
    *,
    kind: CombatKind,
    round_number: int,
    outcome: RoundOutcome,
    context: CombatContext,
    attacker_formation: Formation,
    defender_formation: Formation,
    attacker_disorder: int,
    defender_disorder: int,
    events: Sequence[str] = (),
    retreat_reasons: Sequence[str] = (),
) -> str:
    parts: list[str] = [f"Round {round_number}:"]
    if round_number == 1:
        if context.is_ambush:
            parts.append("The defenders are caught in an ambush!")
        if kind == CombatKind.GROUND and isinstance(context.terrain, GroundTerrain):
            line = _GROUND_TERRAIN_LINES.get(context.terrain)
            if line:
                parts.append(line)
        if attacker_formation != Formation.STANDARD:
            parts.append(f"The attackers advance in {attacker_formation.value} formation.")
        if defender_formation != Formation.STANDARD:
            parts.append(f"The defenders hold a {defender_formation.value} formation.")

    parts.extend(events)

    if outcome == RoundOutcome.ATTACKER_RETREATS:
        parts.append("The attackers break off and withdraw.")
    elif outcome == RoundOutcome.DEFENDER_RETREATS:
        parts.append("The defenders abandon the field.")
    else:
        lines = (_GROUND_LINES if kind == CombatKind.GROUND else _SPACE_LINES)[outcome]
        parts.append(lines[round_number % len(lines)])
    parts.extend(retreat_reasons)

    if attacker_disorder > 40:
        parts.append("The attacking formation is in disarray.")
    if defender_disorder > 40:
        parts.append("The defending formation is in disarray.")
    return " ".join(parts)


def battle_narrative(
    *,
    kind: CombatKind,
    outcome: BattleOutcome,
    total_rounds: int,
    attacker_name: str,
    defender_name: str,
    attacker_lost: int,
    defender_lost: int,
) -> str:
    arena = "ground battle" if kind == CombatKind.GROUND else "engagement"
    if outcome == BattleOutcome.ATTACKER_VICTORY:
        headline = f"{attacker_name} defeats {defender_name}"
    elif outcome == BattleOutcome.DEFENDER_VICTORY:
        headline = f"{defender_name} repels {attacker_name}"
    elif outcome == BattleOutcome.MUTUAL_DESTRUCTION:
        headline = f"{attacker_name} and {defender_name} destroy each other"
    else:
        headline = f"{attacker_name} and {defender_name} fight to a standstill"
    return (
        f"{headline} after a {total_rounds}-round {arena}. "
        f"Losses: {attacker_name} {attacker_lost}, {defender_name} {defender_lost}."
    )
