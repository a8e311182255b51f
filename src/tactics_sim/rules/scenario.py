"""Battle scenario files: forces, context and doctrines described in JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import (
    BattleDoctrine,
    ConditionalOrder,
    ContingencyPlan,
    DoctrineError,
    MidBattleOrder,
)
from tactics_sim.domain.forces import Force, Unit
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
    UnitSize,
)
from tactics_sim.rules.ruleset import Ruleset, RulesError, default_rules

SCENARIO_DIR = Path(__file__).resolve().parents[1] / "data" / "scenarios"


class ScenarioError(ValueError):
    pass


@dataclass(frozen=True)
class BattleSetup:
    kind: CombatKind
    attacker: Force
    defender: Force
    context: CombatContext
    attacker_doctrine: BattleDoctrine | None
    defender_doctrine: BattleDoctrine | None
    seed: int | None


def load_scenario(path: Path, rules: Ruleset | None = None) -> BattleSetup:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise ScenarioError(f"Scenario file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ScenarioError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_battle_setup(data, rules)


def parse_battle_setup(data: Any, rules: Ruleset | None = None) -> BattleSetup:
    if not isinstance(data, dict):
        raise ScenarioError("Scenario must be an object")
    rules = rules if rules is not None else default_rules()
    try:
        kind = CombatKind(data.get("kind", "space"))
        attacker = parse_force(_require(data, "attacker"), "attacker")
        defender = parse_force(_require(data, "defender"), "defender")
        context = parse_context(data.get("context") or {}, kind)
        attacker_doctrine = parse_doctrine(data.get("attacker_doctrine"), rules)
        defender_doctrine = parse_doctrine(data.get("defender_doctrine"), rules)
        seed = data.get("seed")
        if seed is not None:
            seed = int(seed)
    except ScenarioError:
        raise
    except (DoctrineError, RulesError) as exc:
        raise ScenarioError(str(exc)) from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ScenarioError(f"Invalid scenario: {exc}") from exc
    return BattleSetup(
        kind=kind,
        attacker=attacker,
        defender=defender,
        context=context,
        attacker_doctrine=attacker_doctrine,
        defender_doctrine=defender_doctrine,
        seed=seed,
    )


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ScenarioError(f"Scenario missing '{key}'")
    return data[key]


def parse_force(data: dict[str, Any], default_id: str) -> Force:
    if not isinstance(data, dict):
        raise ScenarioError(f"{default_id}: force must be an object")
    force_id = str(data.get("force_id", default_id))
    units: list[Unit] = []
    for index, entry in enumerate(data.get("units", [])):
        units.extend(_parse_unit_group(entry, f"{force_id}-{index + 1}"))
    training = data.get("training")
    return Force(
        force_id=force_id,
        name=str(data.get("name", force_id)),
        units=units,
        stance=Stance(data.get("stance", "balanced")),
        commander_present=bool(data.get("commander_present", False)),
        training=TrainingTier(training) if training else None,
        supply_level=int(data.get("supply_level", 100)),
        equipment_level=int(data.get("equipment_level", 0)),
    )


def _parse_unit_group(entry: dict[str, Any], default_id: str) -> list[Unit]:
    """One entry may stand for several identical units via 'count'."""
    if not isinstance(entry, dict):
        raise ScenarioError(f"{default_id}: unit entry must be an object")
    count = int(entry.get("count", 1))
    if count < 1:
        raise ScenarioError(f"{default_id}: unit count must be positive")
    base_id = str(entry.get("unit_id", default_id))
    max_hull = int(entry.get("max_hull", entry.get("hull", entry.get("strength", 100))))
    max_shields = int(entry.get("max_shields", entry.get("shields", 0)))
    units: list[Unit] = []
    for n in range(count):
        unit_id = base_id if count == 1 else f"{base_id}-{n + 1}"
        units.append(
            Unit(
                unit_id=unit_id,
                name=str(entry.get("name", unit_id)),
                attack=int(entry.get("attack", 10)),
                defense=int(entry.get("defense", 10)),
                hull=int(entry.get("hull", entry.get("strength", max_hull))),
                max_hull=max_hull,
                shields=int(entry.get("shields", max_shields)),
                max_shields=max_shields,
                morale=int(entry.get("morale", 75)),
                experience=int(entry.get("experience", 20)),
                size=UnitSize(entry.get("size", "medium")),
                maneuverability=int(entry.get("maneuverability", 50)),
            )
        )
    return units


def parse_context(data: dict[str, Any], kind: CombatKind) -> CombatContext:
    if not isinstance(data, dict):
        raise ScenarioError("context must be an object")
    if kind == CombatKind.GROUND:
        terrain: SpaceTerrain | GroundTerrain = GroundTerrain(data.get("terrain", "open"))
    else:
        terrain = SpaceTerrain(data.get("terrain", "open_space"))
    support_side = data.get("orbital_support_side")
    return CombatContext(
        terrain=terrain,
        is_ambush=bool(data.get("is_ambush", False)),
        defender_entrenched=bool(data.get("defender_entrenched", False)),
        fortification_level=int(data.get("fortification_level", 0)),
        orbital_support_level=int(data.get("orbital_support_level", 0)),
        orbital_support_side=Side(support_side) if support_side else None,
        attacker_supply_strain=int(data.get("attacker_supply_strain", 0)),
    )


def parse_order(data: dict[str, Any]) -> MidBattleOrder:
    if not isinstance(data, dict):
        raise ScenarioError("order must be an object")
    formation = data.get("formation")
    target = data.get("target_priority")
    return MidBattleOrder(
        formation=Formation(formation) if formation else None,
        target_priority=TargetPriority(target) if target else None,
        retreat=bool(data.get("retreat", False)),
    )


def parse_conditional_order(data: dict[str, Any]) -> ConditionalOrder:
    if not isinstance(data, dict):
        raise ScenarioError("conditional order must be an object")
    return ConditionalOrder(
        name=str(data.get("name", "order")),
        trigger=TriggerCondition(data["trigger"]),
        comparison=TriggerComparison(data.get("comparison", "ge")),
        threshold=int(data["threshold"]),
        action=parse_order(data.get("action") or {}),
        trigger_once=bool(data.get("trigger_once", True)),
    )


def parse_doctrine(data: dict[str, Any] | None, rules: Ruleset) -> BattleDoctrine | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ScenarioError("doctrine must be an object")
    doctrine = rules.build_doctrine(data["preset"]) if data.get("preset") else BattleDoctrine()
    if "name" in data:
        doctrine.name = str(data["name"])
    if "formation" in data:
        doctrine.set_formation(Formation(data["formation"]))
    if "engagement_policy" in data:
        doctrine.set_engagement_policy(EngagementPolicy(data["engagement_policy"]))
    if "primary_target" in data:
        doctrine.set_target_priority(
            TargetPriority(data["primary_target"]),
            TargetPriority(data.get("secondary_target", "weakest")),
        )
    if "retreat_condition" in data:
        doctrine.set_retreat_condition(RetreatCondition(data["retreat_condition"]))
    if "drill_level" in data:
        doctrine.drill(int(data["drill_level"]) - doctrine.drill_level)
    for entry in data.get("conditional_orders", []):
        doctrine.add_conditional_order(parse_conditional_order(entry))
    for unit_id, role in dict(data.get("unit_roles", {})).items():
        doctrine.assign_unit_role(str(unit_id), UnitBattleRole(role))
    for entry in data.get("contingency_plans", []):
        doctrine.set_contingency_plan(
            ContingencyPlan(
                contingency=BattleContingency(entry["contingency"]),
                initial_action=parse_order(entry.get("initial_action") or {}),
                follow_up_orders=tuple(
                    parse_conditional_order(item) for item in entry.get("follow_up_orders", [])
                ),
            )
        )
    return doctrine
