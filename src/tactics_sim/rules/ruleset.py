"""Data-driven combat tuning."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from tactics_sim.domain.doctrine import BattleDoctrine
from tactics_sim.domain.types import (
    CombatKind,
    EngagementPolicy,
    Formation,
    GroundTerrain,
    RetreatCondition,
    SpaceTerrain,
    Stance,
    TargetPriority,
    TrainingTier,
    UnitSize,
)
from tactics_sim.rules.tables import (
    FormationMatchupTable,
    MatchupRule,
    RoleMultiplier,
    SpaceTerrainRule,
    TerrainModifierTable,
)

DEFAULT_RULES_DIR = Path(__file__).resolve().parents[1] / "data" / "rules"


class RulesError(ValueError):
    """Error loading or validating rules."""


@dataclass(frozen=True)
class CombatTuning:
    """Per combat-kind round parameters."""

    kind: CombatKind
    max_rounds: int
    variance: tuple[float, float]
    attacker_damage_fraction: float
    defender_damage_fraction: float
    advantage_threshold: float
    max_targets: int
    distribution: str


@dataclass(frozen=True)
class DamageRules:
    focus_fire_bonus: float
    focus_fire_priorities: frozenset[TargetPriority]
    round_loss_divisor: int
    target_weight_variance: float
    shield_leak_factor: float
    morale_hit_threshold: int
    morale_hit_divisor: int


@dataclass(frozen=True)
class ModifierRules:
    experience_base: float
    experience_scale: float
    space_morale_base: float
    space_morale_scale: float
    ground_morale_base: float
    ground_morale_scale: float
    commander: float
    ambush_attacker: float
    ambush_defender: float
    ambush_rounds: int
    entrenched: float
    space_fortification_per_level: float
    ground_fortification_per_level: float
    space_underdog_ratio: float
    space_underdog_min_experience: int
    space_underdog_bonus: float
    ground_underdog_ratio: float
    ground_underdog_cap: float
    orbital_per_level: float
    orbital_enemy_penalty: float
    supply_strain_max_penalty: float
    supply_shortage_below: int
    equipment_max_bonus: float
    home_ground: float
    disorder_divisor: float


@dataclass(frozen=True)
class TrainingTierRule:
    tier: TrainingTier
    min_experience: int
    power: float
    morale_threshold: float


@dataclass(frozen=True)
class RetreatRules:
    min_round: int
    flagship_critical_percent: int
    morale_break_below: int
    evasive_multiplier: float
    loss_thresholds: dict[RetreatCondition, int]


@dataclass(frozen=True)
class AftermathRules:
    victory_experience: int
    defeat_experience: int
    victory_morale: int
    defeat_morale: int


@dataclass(frozen=True)
class MoraleEvent:
    """A timed shift to a side's morale, keyed by name."""

    name: str
    value: int
    rounds: int


@dataclass(frozen=True)
class MoraleRules:
    flagship_destroyed: MoraleEvent
    enemy_flagship_destroyed: MoraleEvent
    significant_casualties: MoraleEvent
    significant_casualties_percent: int
    heavy_casualties: MoraleEvent
    heavy_casualties_percent: int
    orders_ignored: MoraleEvent
    inspiring_command: MoraleEvent


@dataclass(frozen=True)
class PlanningRules:
    engagement_policy: int
    formation: int
    target_priority: int
    per_conditional_order: int
    per_unit_role: int
    unit_role_cap: int
    per_contingency_plan: int
    planning_cap: int
    drill_divisor: int


@dataclass(frozen=True)
class DisorderRules:
    base_cost: int
    no_commander_cost: int
    rapid_change_cost: int
    rapid_change_window_rounds: int
    per_prior_change_cost: int
    drill_reduction_divisor: int
    max_drill_reduction: int
    min_cost: int
    failure_threshold: int
    decay_divisor: int
    max_disorder: int


@dataclass(frozen=True)
class Ruleset:
    """Loaded and validated combat rules. Shared read-only between battles."""

    space: CombatTuning
    ground: CombatTuning
    damage: DamageRules
    modifiers: ModifierRules
    training: dict[TrainingTier, TrainingTierRule]
    retreat: RetreatRules
    decisive_margin: int
    aftermath: AftermathRules
    morale: MoraleRules
    stances: dict[Stance, RoleMultiplier]
    engagement_policies: dict[EngagementPolicy, RoleMultiplier]
    formation_modifiers: dict[Formation, RoleMultiplier]
    matchups: FormationMatchupTable
    terrain: TerrainModifierTable
    planning: PlanningRules
    disorder: DisorderRules
    doctrine_presets: dict[str, dict[str, Any]]

    @staticmethod
    def load(data_dir: Path) -> "Ruleset":
        """Load ruleset from JSON files in data directory."""
        combat = _load_json(data_dir / "combat.json")
        stances = _load_json(data_dir / "stances.json")
        formations = _load_json(data_dir / "formations.json")
        terrain = _load_json(data_dir / "terrain.json")
        doctrine = _load_json(data_dir / "doctrine.json")

        return Ruleset(
            space=_load_tuning(combat, CombatKind.SPACE, data_dir / "combat.json"),
            ground=_load_tuning(combat, CombatKind.GROUND, data_dir / "combat.json"),
            damage=_load_damage(combat.get("damage", {})),
            modifiers=_load_modifiers(combat.get("modifiers", {})),
            training=_load_training(combat.get("training", {}), data_dir / "combat.json"),
            retreat=_load_retreat(combat.get("retreat", {}), data_dir / "combat.json"),
            decisive_margin=int(combat.get("outcome", {}).get("decisive_margin", 2)),
            aftermath=_load_aftermath(combat.get("aftermath", {})),
            morale=_load_morale(combat.get("morale_events", {})),
            stances=_load_role_table(stances, "stances", Stance, data_dir / "stances.json"),
            engagement_policies=_load_role_table(
                stances, "engagement_policies", EngagementPolicy, data_dir / "stances.json"
            ),
            formation_modifiers=_load_role_table(
                formations, "modifiers", Formation, data_dir / "formations.json"
            ),
            matchups=_load_matchups(formations, data_dir / "formations.json"),
            terrain=_load_terrain(terrain, data_dir / "terrain.json"),
            planning=_load_planning(doctrine.get("planning", {})),
            disorder=_load_disorder(doctrine.get("disorder", {})),
            doctrine_presets=_load_presets(doctrine.get("presets", {}), data_dir / "doctrine.json"),
        )

    def tuning(self, kind: CombatKind) -> CombatTuning:
        return self.space if kind == CombatKind.SPACE else self.ground

    def training_tier(self, experience: float) -> TrainingTier:
        """Highest tier whose experience floor the value reaches."""
        tier = TrainingTier.CONSCRIPT
        for rule in sorted(self.training.values(), key=lambda r: r.min_experience):
            if experience >= rule.min_experience:
                tier = rule.tier
        return tier

    def build_doctrine(self, preset: str) -> BattleDoctrine:
        """Fresh doctrine built from a named preset."""
        data = self.doctrine_presets.get(preset)
        if data is None:
            raise RulesError(f"Unknown doctrine preset: {preset}")
        doctrine = BattleDoctrine(name=str(data.get("name", preset)))
        if "formation" in data:
            doctrine.set_formation(Formation(data["formation"]))
        if "engagement_policy" in data:
            doctrine.set_engagement_policy(EngagementPolicy(data["engagement_policy"]))
        if "primary_target" in data:
            doctrine.set_target_priority(TargetPriority(data["primary_target"]))
        if "retreat_condition" in data:
            doctrine.set_retreat_condition(RetreatCondition(data["retreat_condition"]))
        if "drill_level" in data:
            doctrine.drill(int(data["drill_level"]) - doctrine.drill_level)
        return doctrine


@lru_cache(maxsize=1)
def default_rules() -> Ruleset:
    """The packaged ruleset, loaded once per process."""
    return Ruleset.load(DEFAULT_RULES_DIR)


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise RulesError(f"Rules file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise RulesError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RulesError(f"{path}: top level must be an object")
    return data


def _enum_key(enum_cls, value: str, path: Path):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise RulesError(f"{path}: unknown {enum_cls.__name__} '{value}'") from exc


def _load_tuning(data: dict[str, Any], kind: CombatKind, path: Path) -> CombatTuning:
    section = data.get(kind.value)
    if not isinstance(section, dict):
        raise RulesError(f"{path}: missing '{kind.value}' section")
    variance = section.get("variance", [0.7, 1.3])
    if not isinstance(variance, list) or len(variance) != 2:
        raise RulesError(f"{path}: {kind.value}.variance must be [min, max]")
    low, high = float(variance[0]), float(variance[1])
    if low <= 0 or low > high:
        raise RulesError(f"{path}: {kind.value}.variance must satisfy 0 < min <= max")
    max_rounds = int(section.get("max_rounds", 10))
    if max_rounds < 1:
        raise RulesError(f"{path}: {kind.value}.max_rounds must be positive")
    distribution = str(section.get("distribution", "focused"))
    if distribution not in ("focused", "proportional"):
        raise RulesError(f"{path}: {kind.value}.distribution must be 'focused' or 'proportional'")
    return CombatTuning(
        kind=kind,
        max_rounds=max_rounds,
        variance=(low, high),
        attacker_damage_fraction=float(section.get("attacker_damage_fraction", 0.15)),
        defender_damage_fraction=float(section.get("defender_damage_fraction", 0.12)),
        advantage_threshold=float(section.get("advantage_threshold", 1.2)),
        max_targets=int(section.get("max_targets", 3)),
        distribution=distribution,
    )


def _load_damage(data: dict[str, Any]) -> DamageRules:
    return DamageRules(
        focus_fire_bonus=float(data.get("focus_fire_bonus", 1.2)),
        focus_fire_priorities=frozenset(
            TargetPriority(p) for p in data.get("focus_fire_priorities", ["weakest", "flagships"])
        ),
        round_loss_divisor=max(1, int(data.get("round_loss_divisor", 3))),
        target_weight_variance=float(data.get("target_weight_variance", 0.1)),
        shield_leak_factor=float(data.get("shield_leak_factor", 0.8)),
        morale_hit_threshold=int(data.get("morale_hit_threshold", 20)),
        morale_hit_divisor=max(1, int(data.get("morale_hit_divisor", 4))),
    )


def _load_modifiers(data: dict[str, Any]) -> ModifierRules:
    return ModifierRules(
        experience_base=float(data.get("experience_base", 0.5)),
        experience_scale=float(data.get("experience_scale", 1.0)),
        space_morale_base=float(data.get("space_morale_base", 0.3)),
        space_morale_scale=float(data.get("space_morale_scale", 0.9)),
        ground_morale_base=float(data.get("ground_morale_base", 0.4)),
        ground_morale_scale=float(data.get("ground_morale_scale", 0.8)),
        commander=float(data.get("commander", 1.1)),
        ambush_attacker=float(data.get("ambush_attacker", 1.3)),
        ambush_defender=float(data.get("ambush_defender", 0.6)),
        ambush_rounds=int(data.get("ambush_rounds", 1)),
        entrenched=float(data.get("entrenched", 1.25)),
        space_fortification_per_level=float(data.get("space_fortification_per_level", 0.08)),
        ground_fortification_per_level=float(data.get("ground_fortification_per_level", 0.4)),
        space_underdog_ratio=float(data.get("space_underdog_ratio", 2.0)),
        space_underdog_min_experience=int(data.get("space_underdog_min_experience", 50)),
        space_underdog_bonus=float(data.get("space_underdog_bonus", 1.15)),
        ground_underdog_ratio=float(data.get("ground_underdog_ratio", 3.0)),
        ground_underdog_cap=float(data.get("ground_underdog_cap", 3.0)),
        orbital_per_level=float(data.get("orbital_per_level", 0.2)),
        orbital_enemy_penalty=float(data.get("orbital_enemy_penalty", 0.6)),
        supply_strain_max_penalty=float(data.get("supply_strain_max_penalty", 0.3)),
        supply_shortage_below=int(data.get("supply_shortage_below", 50)),
        equipment_max_bonus=float(data.get("equipment_max_bonus", 0.5)),
        home_ground=float(data.get("home_ground", 1.15)),
        disorder_divisor=float(data.get("disorder_divisor", 200)),
    )


def _load_training(data: dict[str, Any], path: Path) -> dict[TrainingTier, TrainingTierRule]:
    tiers: dict[TrainingTier, TrainingTierRule] = {}
    for key, entry in data.items():
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: training.{key} must be object")
        tier = _enum_key(TrainingTier, key, path)
        tiers[tier] = TrainingTierRule(
            tier=tier,
            min_experience=int(entry.get("min_experience", 0)),
            power=float(entry.get("power", 1.0)),
            morale_threshold=float(entry.get("morale_threshold", 1.0)),
        )
    missing = [tier.value for tier in TrainingTier if tier not in tiers]
    if missing:
        raise RulesError(f"{path}: training tiers missing: {', '.join(missing)}")
    return tiers


def _load_retreat(data: dict[str, Any], path: Path) -> RetreatRules:
    thresholds = {
        _enum_key(RetreatCondition, key, path): int(value)
        for key, value in dict(data.get("loss_thresholds", {})).items()
    }
    return RetreatRules(
        min_round=int(data.get("min_round", 3)),
        flagship_critical_percent=int(data.get("flagship_critical_percent", 75)),
        morale_break_below=int(data.get("morale_break_below", 25)),
        evasive_multiplier=float(data.get("evasive_multiplier", 2.0)),
        loss_thresholds=thresholds,
    )


def _load_aftermath(data: dict[str, Any]) -> AftermathRules:
    return AftermathRules(
        victory_experience=int(data.get("victory_experience", 10)),
        defeat_experience=int(data.get("defeat_experience", 3)),
        victory_morale=int(data.get("victory_morale", 5)),
        defeat_morale=int(data.get("defeat_morale", -5)),
    )


def _load_morale_event(data: dict[str, Any], key: str, value: int, rounds: int) -> MoraleEvent:
    entry = dict(data.get(key, {}))
    return MoraleEvent(
        name=str(entry.get("name", key)),
        value=int(entry.get("value", value)),
        rounds=max(1, int(entry.get("rounds", rounds))),
    )


def _load_morale(data: dict[str, Any]) -> MoraleRules:
    return MoraleRules(
        flagship_destroyed=_load_morale_event(data, "flagship_destroyed", -25, 5),
        enemy_flagship_destroyed=_load_morale_event(data, "enemy_flagship_destroyed", 15, 5),
        significant_casualties=_load_morale_event(data, "significant_casualties", -10, 3),
        significant_casualties_percent=int(dict(data.get("significant_casualties", {})).get("percent", 25)),
        heavy_casualties=_load_morale_event(data, "heavy_casualties", -20, 3),
        heavy_casualties_percent=int(dict(data.get("heavy_casualties", {})).get("percent", 50)),
        orders_ignored=_load_morale_event(data, "orders_ignored", -5, 2),
        inspiring_command=_load_morale_event(data, "inspiring_command", 15, 3),
    )


def _load_role_multiplier(entry: Any, where: str, path: Path) -> RoleMultiplier:
    if isinstance(entry, (int, float)):
        return RoleMultiplier(float(entry), float(entry))
    if not isinstance(entry, dict):
        raise RulesError(f"{path}: {where} must be a number or object")
    return RoleMultiplier(
        attacker=float(entry.get("attacker", 1.0)),
        defender=float(entry.get("defender", 1.0)),
    )


def _load_role_table(data: dict[str, Any], key: str, enum_cls, path: Path) -> dict:
    section = data.get(key)
    if not isinstance(section, dict):
        raise RulesError(f"{path}: missing '{key}' key")
    table = {
        _enum_key(enum_cls, name, path): _load_role_multiplier(entry, f"{key}.{name}", path)
        for name, entry in section.items()
    }
    for member in enum_cls:
        table.setdefault(member, RoleMultiplier(1.0, 1.0))
    return table


def _load_matchups(data: dict[str, Any], path: Path) -> FormationMatchupTable:
    rules: list[MatchupRule] = []
    for item in data.get("matchups", []):
        if not isinstance(item, dict):
            raise RulesError(f"{path}: matchup entry must be object")
        formation = str(item.get("formation", "*"))
        against = str(item.get("against", "*"))
        for value in (formation, against):
            if value != "*":
                _enum_key(Formation, value, path)
        rules.append(MatchupRule(formation=formation, against=against, delta=int(item.get("delta", 0))))
    counters = {
        _enum_key(Formation, key, path): _enum_key(Formation, value, path)
        for key, value in dict(data.get("counters", {})).items()
    }
    return FormationMatchupTable(rules, counters)


def _load_terrain(data: dict[str, Any], path: Path) -> TerrainModifierTable:
    space: dict[SpaceTerrain, SpaceTerrainRule] = {}
    for name, entry in dict(data.get("space", {})).items():
        terrain = _enum_key(SpaceTerrain, name, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: space.{name} must be object")
        kind = str(entry.get("kind", "flat"))
        if kind not in ("flat", "size", "maneuverability", "count"):
            raise RulesError(f"{path}: space.{name}.kind '{kind}' is not supported")
        space[terrain] = SpaceTerrainRule(
            kind=kind,
            flat=_load_role_multiplier(entry, f"space.{name}", path),
            sizes={
                _enum_key(UnitSize, size, path): float(value)
                for size, value in dict(entry.get("sizes", {})).items()
            },
            default=float(entry.get("default", 1.0)),
            threshold=int(entry.get("threshold", 0)),
            above=float(entry.get("above", 1.0)),
            below=float(entry.get("below", 1.0)),
        )
    ground = {
        _enum_key(GroundTerrain, name, path): _load_role_multiplier(entry, f"ground.{name}", path)
        for name, entry in dict(data.get("ground", {})).items()
    }
    return TerrainModifierTable(space, ground)


def _load_planning(data: dict[str, Any]) -> PlanningRules:
    return PlanningRules(
        engagement_policy=int(data.get("engagement_policy", 5)),
        formation=int(data.get("formation", 5)),
        target_priority=int(data.get("target_priority", 5)),
        per_conditional_order=int(data.get("per_conditional_order", 3)),
        per_unit_role=int(data.get("per_unit_role", 2)),
        unit_role_cap=int(data.get("unit_role_cap", 20)),
        per_contingency_plan=int(data.get("per_contingency_plan", 5)),
        planning_cap=int(data.get("planning_cap", 50)),
        drill_divisor=max(1, int(data.get("drill_divisor", 2))),
    )


def _load_disorder(data: dict[str, Any]) -> DisorderRules:
    return DisorderRules(
        base_cost=int(data.get("base_cost", 15)),
        no_commander_cost=int(data.get("no_commander_cost", 25)),
        rapid_change_cost=int(data.get("rapid_change_cost", 20)),
        rapid_change_window_rounds=int(data.get("rapid_change_window_rounds", 1)),
        per_prior_change_cost=int(data.get("per_prior_change_cost", 5)),
        drill_reduction_divisor=max(1, int(data.get("drill_reduction_divisor", 5))),
        max_drill_reduction=int(data.get("max_drill_reduction", 20)),
        min_cost=int(data.get("min_cost", 5)),
        failure_threshold=int(data.get("failure_threshold", 100)),
        decay_divisor=max(1, int(data.get("decay_divisor", 20))),
        max_disorder=int(data.get("max_disorder", 100)),
    )


def _load_presets(data: dict[str, Any], path: Path) -> dict[str, dict[str, Any]]:
    presets: dict[str, dict[str, Any]] = {}
    checks = {
        "formation": Formation,
        "engagement_policy": EngagementPolicy,
        "primary_target": TargetPriority,
        "retreat_condition": RetreatCondition,
    }
    for name, entry in data.items():
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: preset '{name}' must be object")
        for key, enum_cls in checks.items():
            if key in entry:
                _enum_key(enum_cls, entry[key], path)
        presets[str(name)] = dict(entry)
    return presets
