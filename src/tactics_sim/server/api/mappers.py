from __future__ import annotations

from typing import Any, Iterable

from tactics_sim.domain.battle_models import (
    BattleResult,
    PowerBreakdown,
    RoundRecord,
    UnitDamage,
    UnitDamageSummary,
)
from tactics_sim.domain.types import (
    BattleContingency,
    CombatKind,
    EngagementPolicy,
    Formation,
    GroundTerrain,
    RetreatCondition,
    Side,
    SpaceTerrain,
    Stance,
    TargetPriority,
    TrainingTier,
    TriggerComparison,
    TriggerCondition,
    UnitBattleRole,
)
from tactics_sim.rules.ruleset import Ruleset
from tactics_sim.sim.rng import derive_seed
from tactics_sim.systems.battle import Battle
from tactics_sim.server.api import schemas


def battle_request_data(payload: schemas.BattleRequest) -> dict[str, Any]:
    """Flatten a request into the scenario-file shape understood by the parser."""
    data = payload.model_dump(exclude_none=True)
    data.pop("campaign_seed", None)
    data.pop("battle_key", None)
    if payload.seed is None and payload.campaign_seed is not None:
        data["seed"] = derive_seed(payload.campaign_seed, battle_key=payload.battle_key or "battle")
    return data


def power_response(breakdown: PowerBreakdown) -> schemas.PowerResponse:
    return schemas.PowerResponse(
        base=breakdown.base,
        multiplier=breakdown.multiplier,
        total=breakdown.total,
        factors=[schemas.FactorResponse(name=f.name, value=f.value, why=f.why) for f in breakdown.factors],
    )


def _unit_damage(entries: Iterable[UnitDamage]) -> list[schemas.UnitDamageResponse]:
    return [
        schemas.UnitDamageResponse(
            unit_id=entry.unit_id,
            damage_assigned=entry.damage_assigned,
            shield_damage=entry.shield_damage,
            hull_damage=entry.hull_damage,
            morale_loss=entry.morale_loss,
            destroyed=entry.destroyed,
        )
        for entry in entries
    ]


def _unit_summaries(entries: Iterable[UnitDamageSummary]) -> list[schemas.UnitSummaryResponse]:
    return [
        schemas.UnitSummaryResponse(
            unit_id=entry.unit_id,
            shield_damage=entry.shield_damage,
            hull_damage=entry.hull_damage,
            morale_loss=entry.morale_loss,
            destroyed=entry.destroyed,
        )
        for entry in entries
    ]


def round_response(record: RoundRecord) -> schemas.RoundResponse:
    return schemas.RoundResponse(
        round_number=record.round_number,
        outcome=record.outcome.value,
        attacker_power=power_response(record.attacker_power),
        defender_power=power_response(record.defender_power),
        effective_attack=record.effective_attack,
        effective_defense=record.effective_defense,
        damage_to_attacker=record.damage_to_attacker,
        damage_to_defender=record.damage_to_defender,
        attacker_damage=_unit_damage(record.attacker_damage),
        defender_damage=_unit_damage(record.defender_damage),
        attacker_disorder=record.attacker_disorder,
        defender_disorder=record.defender_disorder,
        attacker_units_remaining=record.attacker_units_remaining,
        defender_units_remaining=record.defender_units_remaining,
        attacker_retreating=record.attacker_retreating,
        defender_retreating=record.defender_retreating,
        events=list(record.events),
        narrative=record.narrative,
    )


def result_response(result: BattleResult) -> schemas.BattleResultResponse:
    return schemas.BattleResultResponse(
        kind=result.kind.value,
        outcome=result.outcome.value,
        total_rounds=result.total_rounds,
        attacker_units_lost=result.attacker_units_lost,
        defender_units_lost=result.defender_units_lost,
        attacker_damage=_unit_summaries(result.attacker_damage),
        defender_damage=_unit_summaries(result.defender_damage),
        rounds=[round_response(record) for record in result.round_log],
        narrative=result.narrative,
    )


def battle_state_response(battle_id: str, battle: Battle) -> schemas.BattleStateResponse:
    attacker = battle.command(Side.ATTACKER)
    defender = battle.command(Side.DEFENDER)
    return schemas.BattleStateResponse(
        battle_id=battle_id,
        kind=battle.kind.value,
        current_round=battle.state.current_round,
        max_rounds=battle.resolver.max_rounds,
        complete=battle.is_complete,
        attacker_formation=attacker.formation.value,
        defender_formation=defender.formation.value,
        attacker_disorder=attacker.disorder,
        defender_disorder=defender.disorder,
        rounds=[round_response(record) for record in battle.rounds],
        result=result_response(battle.result) if battle.result is not None else None,
    )


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def build_catalog(rules: Ruleset) -> schemas.CatalogResponse:
    return schemas.CatalogResponse(
        kinds=_values(CombatKind),
        stances=_values(Stance),
        formations=_values(Formation),
        engagement_policies=_values(EngagementPolicy),
        target_priorities=_values(TargetPriority),
        retreat_conditions=_values(RetreatCondition),
        triggers=_values(TriggerCondition),
        comparisons=_values(TriggerComparison),
        contingencies=_values(BattleContingency),
        unit_roles=_values(UnitBattleRole),
        space_terrain=_values(SpaceTerrain),
        ground_terrain=_values(GroundTerrain),
        training_tiers=_values(TrainingTier),
        doctrine_presets=sorted(rules.doctrine_presets),
        max_rounds={kind.value: rules.tuning(kind).max_rounds for kind in CombatKind},
        formation_counters={formation.value: rules.matchups.counter_for(formation).value for formation in Formation},
    )
