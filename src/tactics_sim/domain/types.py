"""Common enums shared by the combat core."""

from __future__ import annotations

from enum import Enum


class Side(str, Enum):
    ATTACKER = "attacker"
    DEFENDER = "defender"

    @property
    def opponent(self) -> "Side":
        return Side.DEFENDER if self is Side.ATTACKER else Side.ATTACKER


class CombatKind(str, Enum):
    SPACE = "space"
    GROUND = "ground"


class UnitSize(str, Enum):
    """Hull classes, smallest first."""

    TINY = "tiny"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HEAVY = "heavy"
    CAPITAL = "capital"
    MASSIVE = "massive"

    @property
    def rank(self) -> int:
        return list(UnitSize).index(self)


class Stance(str, Enum):
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    DEFENSIVE = "defensive"
    EVASIVE = "evasive"
    ALL_OUT = "all_out"


class TrainingTier(str, Enum):
    CONSCRIPT = "conscript"
    REGULAR = "regular"
    VETERAN = "veteran"
    ELITE = "elite"
    LEGENDARY = "legendary"


class SpaceTerrain(str, Enum):
    OPEN_SPACE = "open_space"
    NEBULA = "nebula"
    ASTEROID_FIELD = "asteroid_field"
    NEAR_STAR = "near_star"
    DEFENSIVE_POSITION = "defensive_position"
    CHOKEPOINT = "chokepoint"
    GRAVITY_WELL = "gravity_well"
    ION_STORM = "ion_storm"


class GroundTerrain(str, Enum):
    OPEN = "open"
    URBAN = "urban"
    MOUNTAIN = "mountain"
    FOREST = "forest"
    DESERT = "desert"
    CHOKEPOINT = "chokepoint"
    SWAMP = "swamp"
    ARCTIC = "arctic"
    UNDERGROUND = "underground"


class Formation(str, Enum):
    STANDARD = "standard"
    WEDGE = "wedge"
    LINE = "line"
    SPHERE = "sphere"
    CRESCENT = "crescent"
    DISPERSED = "dispersed"
    ECHELON = "echelon"
    SWARM = "swarm"
    SCREEN = "screen"


class EngagementPolicy(str, Enum):
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    CAUTIOUS = "cautious"
    HIT_AND_RUN = "hit_and_run"
    OVERWHELMING = "overwhelming"
    DEFENSIVE = "defensive"
    ALL_OUT_ASSAULT = "all_out_assault"


class TargetPriority(str, Enum):
    NEAREST = "nearest"
    WEAKEST = "weakest"
    STRONGEST = "strongest"
    HIGHEST_THREAT = "highest_threat"
    CAPITALS = "capitals"
    ESCORTS = "escorts"
    FLAGSHIPS = "flagships"
    WEAPON_SYSTEMS = "weapon_systems"
    WEAKEST_FIRST = "weakest_first"
    ISOLATED = "isolated"
    RANDOM = "random"
    BALANCED = "balanced"


class RetreatCondition(str, Enum):
    NEVER = "never"
    TEN_PERCENT_LOSSES = "ten_percent_losses"
    TWENTY_PERCENT_LOSSES = "twenty_percent_losses"
    TWENTY_FIVE_PERCENT_LOSSES = "twenty_five_percent_losses"
    THIRTY_PERCENT_LOSSES = "thirty_percent_losses"
    FIFTY_PERCENT_LOSSES = "fifty_percent_losses"
    SEVENTY_FIVE_PERCENT_LOSSES = "seventy_five_percent_losses"
    FLAGSHIP_CRITICAL = "flagship_critical"
    COMMANDER_ORDER = "commander_order"
    MORALE_BREAK = "morale_break"


class UnitBattleRole(str, Enum):
    LINE = "line"
    FLAGSHIP = "flagship"
    VANGUARD = "vanguard"
    REARGUARD = "rearguard"
    FLANKER = "flanker"
    SCREEN = "screen"
    RESERVE = "reserve"
    SUPPORT = "support"
    SCOUT = "scout"


class TriggerCondition(str, Enum):
    OUR_UNITS_REMAINING = "our_units_remaining"
    OUR_UNITS_LOST_PERCENT = "our_units_lost_percent"
    ENEMY_UNITS_REMAINING = "enemy_units_remaining"
    ENEMY_UNITS_LOST_PERCENT = "enemy_units_lost_percent"
    OUR_FLAGSHIP_DAMAGE_PERCENT = "our_flagship_damage_percent"
    BATTLE_ROUND = "battle_round"
    OUR_MORALE = "our_morale"
    ENEMY_MORALE = "enemy_morale"
    ENEMY_DISORDER = "enemy_disorder"


class TriggerComparison(str, Enum):
    LESS_THAN = "lt"
    LESS_OR_EQUAL = "le"
    EQUAL = "eq"
    GREATER_OR_EQUAL = "ge"
    GREATER_THAN = "gt"


class BattleContingency(str, Enum):
    AMBUSHED = "ambushed"
    OUTNUMBERED = "outnumbered"
    FLAGSHIP_DESTROYED = "flagship_destroyed"
    CRITICAL_LOSSES = "critical_losses"
    VICTORY_IMMINENT = "victory_imminent"
    NEBULA_ENCOUNTER = "nebula_encounter"


class RoundOutcome(str, Enum):
    ATTACKER_ADVANTAGE = "attacker_advantage"
    DEFENDER_ADVANTAGE = "defender_advantage"
    STALEMATE = "stalemate"
    ATTACKER_RETREATS = "attacker_retreats"
    DEFENDER_RETREATS = "defender_retreats"


class BattleOutcome(str, Enum):
    ATTACKER_VICTORY = "attacker_victory"
    DEFENDER_VICTORY = "defender_victory"
    STALEMATE = "stalemate"
    MUTUAL_DESTRUCTION = "mutual_destruction"
