from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_by_name=True)


# Requests


class UnitSpec(CamelModel):
    unit_id: Optional[str] = Field(None, alias="unitId")
    name: Optional[str] = None
    count: int = Field(1, ge=1, le=500)
    attack: int = Field(10, ge=0)
    defense: int = Field(10, ge=0)
    hull: Optional[int] = Field(None, ge=0)
    max_hull: Optional[int] = Field(None, alias="maxHull", ge=1)
    strength: Optional[int] = Field(None, ge=0)
    shields: Optional[int] = Field(None, ge=0)
    max_shields: Optional[int] = Field(None, alias="maxShields", ge=0)
    morale: int = 75
    experience: int = 20
    size: str = "medium"
    maneuverability: int = 50


class ForceSpec(CamelModel):
    force_id: Optional[str] = Field(None, alias="forceId")
    name: Optional[str] = None
    stance: str = "balanced"
    commander_present: bool = Field(False, alias="commanderPresent")
    training: Optional[str] = None
    supply_level: int = Field(100, alias="supplyLevel")
    equipment_level: int = Field(0, alias="equipmentLevel")
    units: List[UnitSpec] = Field(default_factory=list)


class ContextSpec(CamelModel):
    terrain: Optional[str] = None
    is_ambush: bool = Field(False, alias="isAmbush")
    defender_entrenched: bool = Field(False, alias="defenderEntrenched")
    fortification_level: int = Field(0, alias="fortificationLevel")
    orbital_support_level: int = Field(0, alias="orbitalSupportLevel")
    orbital_support_side: Optional[str] = Field(None, alias="orbitalSupportSide")
    attacker_supply_strain: int = Field(0, alias="attackerSupplyStrain")


class OrderSpec(CamelModel):
    formation: Optional[str] = None
    target_priority: Optional[str] = Field(None, alias="targetPriority")
    retreat: bool = False


class ConditionalOrderSpec(CamelModel):
    name: str
    trigger: str
    comparison: str = "ge"
    threshold: int
    action: OrderSpec
    trigger_once: bool = Field(True, alias="triggerOnce")


class ContingencyPlanSpec(CamelModel):
    contingency: str
    initial_action: OrderSpec = Field(..., alias="initialAction")
    follow_up_orders: List[ConditionalOrderSpec] = Field(default_factory=list, alias="followUpOrders")


class DoctrineSpec(CamelModel):
    preset: Optional[str] = None
    name: Optional[str] = None
    formation: Optional[str] = None
    engagement_policy: Optional[str] = Field(None, alias="engagementPolicy")
    primary_target: Optional[str] = Field(None, alias="primaryTarget")
    secondary_target: Optional[str] = Field(None, alias="secondaryTarget")
    retreat_condition: Optional[str] = Field(None, alias="retreatCondition")
    drill_level: Optional[int] = Field(None, alias="drillLevel")
    conditional_orders: List[ConditionalOrderSpec] = Field(default_factory=list, alias="conditionalOrders")
    unit_roles: Dict[str, str] = Field(default_factory=dict, alias="unitRoles")
    contingency_plans: List[ContingencyPlanSpec] = Field(default_factory=list, alias="contingencyPlans")


class BattleRequest(CamelModel):
    kind: str = "space"
    seed: Optional[int] = None
    campaign_seed: Optional[int] = Field(None, alias="campaignSeed")
    battle_key: Optional[str] = Field(None, alias="battleKey")
    context: ContextSpec = Field(default_factory=ContextSpec)
    attacker: ForceSpec
    defender: ForceSpec
    attacker_doctrine: Optional[DoctrineSpec] = Field(None, alias="attackerDoctrine")
    defender_doctrine: Optional[DoctrineSpec] = Field(None, alias="defenderDoctrine")


class LiveOrderRequest(CamelModel):
    side: str
    order: OrderSpec


# Responses


class FactorResponse(CamelModel):
    name: str
    value: float
    why: str


class PowerResponse(CamelModel):
    base: float
    multiplier: float
    total: float
    factors: List[FactorResponse]


class UnitDamageResponse(CamelModel):
    unit_id: str = Field(..., alias="unitId")
    damage_assigned: int = Field(..., alias="damageAssigned")
    shield_damage: int = Field(..., alias="shieldDamage")
    hull_damage: int = Field(..., alias="hullDamage")
    morale_loss: int = Field(..., alias="moraleLoss")
    destroyed: bool


class RoundResponse(CamelModel):
    round_number: int = Field(..., alias="roundNumber")
    outcome: str
    attacker_power: PowerResponse = Field(..., alias="attackerPower")
    defender_power: PowerResponse = Field(..., alias="defenderPower")
    effective_attack: float = Field(..., alias="effectiveAttack")
    effective_defense: float = Field(..., alias="effectiveDefense")
    damage_to_attacker: int = Field(..., alias="damageToAttacker")
    damage_to_defender: int = Field(..., alias="damageToDefender")
    attacker_damage: List[UnitDamageResponse] = Field(..., alias="attackerDamage")
    defender_damage: List[UnitDamageResponse] = Field(..., alias="defenderDamage")
    attacker_disorder: int = Field(..., alias="attackerDisorder")
    defender_disorder: int = Field(..., alias="defenderDisorder")
    attacker_units_remaining: int = Field(..., alias="attackerUnitsRemaining")
    defender_units_remaining: int = Field(..., alias="defenderUnitsRemaining")
    attacker_retreating: bool = Field(..., alias="attackerRetreating")
    defender_retreating: bool = Field(..., alias="defenderRetreating")
    events: List[str]
    narrative: str


class UnitSummaryResponse(CamelModel):
    unit_id: str = Field(..., alias="unitId")
    shield_damage: int = Field(..., alias="shieldDamage")
    hull_damage: int = Field(..., alias="hullDamage")
    morale_loss: int = Field(..., alias="moraleLoss")
    destroyed: bool


class BattleResultResponse(CamelModel):
    kind: str
    outcome: str
    total_rounds: int = Field(..., alias="totalRounds")
    attacker_units_lost: int = Field(..., alias="attackerUnitsLost")
    defender_units_lost: int = Field(..., alias="defenderUnitsLost")
    attacker_damage: List[UnitSummaryResponse] = Field(..., alias="attackerDamage")
    defender_damage: List[UnitSummaryResponse] = Field(..., alias="defenderDamage")
    rounds: List[RoundResponse]
    narrative: str


class BattleStateResponse(CamelModel):
    battle_id: str = Field(..., alias="battleId")
    kind: str
    current_round: int = Field(..., alias="currentRound")
    max_rounds: int = Field(..., alias="maxRounds")
    complete: bool
    attacker_formation: str = Field(..., alias="attackerFormation")
    defender_formation: str = Field(..., alias="defenderFormation")
    attacker_disorder: int = Field(..., alias="attackerDisorder")
    defender_disorder: int = Field(..., alias="defenderDisorder")
    rounds: List[RoundResponse]
    result: Optional[BattleResultResponse] = None


class ApiResponse(CamelModel):
    ok: bool
    message: Optional[str] = None
    message_kind: str = Field("info", alias="messageKind")
    battle: Optional[BattleStateResponse] = None
    round: Optional[RoundResponse] = None
    result: Optional[BattleResultResponse] = None


class OrderResponse(CamelModel):
    ok: bool
    message: Optional[str] = None
    success: bool = False
    disorder_caused: int = Field(0, alias="disorderCaused")
    total_disorder: int = Field(0, alias="totalDisorder")
    battle: Optional[BattleStateResponse] = None


class CatalogResponse(CamelModel):
    kinds: List[str]
    stances: List[str]
    formations: List[str]
    engagement_policies: List[str] = Field(..., alias="engagementPolicies")
    target_priorities: List[str] = Field(..., alias="targetPriorities")
    retreat_conditions: List[str] = Field(..., alias="retreatConditions")
    triggers: List[str]
    comparisons: List[str]
    contingencies: List[str]
    unit_roles: List[str] = Field(..., alias="unitRoles")
    space_terrain: List[str] = Field(..., alias="spaceTerrain")
    ground_terrain: List[str] = Field(..., alias="groundTerrain")
    training_tiers: List[str] = Field(..., alias="trainingTiers")
    doctrine_presets: List[str] = Field(..., alias="doctrinePresets")
    max_rounds: Dict[str, int] = Field(..., alias="maxRounds")
    formation_counters: Dict[str, str] = Field(..., alias="formationCounters")
