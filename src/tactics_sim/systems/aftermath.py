from __future__ import annotations

from dataclasses import replace

from tactics_sim.domain.battle_models import BattleResult
from tactics_sim.domain.forces import Force
from tactics_sim.domain.types import BattleOutcome, Side
from tactics_sim.rules.ruleset import AftermathRules, default_rules

_WINS = {
    Side.ATTACKER: BattleOutcome.ATTACKER_VICTORY,
    Side.DEFENDER: BattleOutcome.DEFENDER_VICTORY,
}


def apply_battle_result(
    force: Force,
    result: BattleResult,
    side: Side,
    rules: AftermathRules | None = None,
) -> Force:
    """Return a copy of the force with the battle's damage applied.

    Destroyed units are dropped. Survivors gain experience, more for a
    victory, and their morale moves with the outcome.
    """
    rules = rules if rules is not None else default_rules().aftermath
    damage = {d.unit_id: d for d in (result.attacker_damage if side == Side.ATTACKER else result.defender_damage)}
    won = result.outcome == _WINS[side]
    experience_gain = rules.victory_experience if won else rules.defeat_experience
    morale_change = rules.victory_morale if won else rules.defeat_morale

    survivors = []
    for unit in force.units:
        summary = damage.get(unit.unit_id)
        if summary is not None and summary.destroyed:
            continue
        if not unit.is_alive:
            continue
        hull = unit.hull
        shields = unit.shields
        morale = unit.morale
        if summary is not None:
            hull -= summary.hull_damage
            shields -= summary.shield_damage
            morale -= summary.morale_loss
        survivors.append(
            replace(
                unit,
                hull=hull,
                shields=shields,
                morale=morale + morale_change,
                experience=unit.experience + experience_gain,
            )
        )
    return replace(force, units=survivors)
