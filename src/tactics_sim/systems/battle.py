"""Battle orchestration.

A TacticalResolver runs the per-round pipeline shared by space and ground
combat; SpaceCombatResolver and GroundCombatResolver supply the power model
and round parameters. A Battle is the live session for one engagement and can
be stepped a round at a time, with live orders injected between rounds.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from tactics_sim.domain.battle_models import (
    BattleResult,
    OrderChangeResult,
    PowerBreakdown,
    RoundRecord,
    UnitDamage,
    UnitDamageSummary,
)
from tactics_sim.domain.context import CombatContext
from tactics_sim.domain.doctrine import DEFAULT_DRILL_LEVEL, BattleDoctrine, MidBattleOrder
from tactics_sim.domain.forces import Force
from tactics_sim.domain.types import (
    BattleOutcome,
    CombatKind,
    RoundOutcome,
    Side,
    TrainingTier,
)
from tactics_sim.rules.ruleset import Ruleset, default_rules
from tactics_sim.sim.rng import make_rng
from tactics_sim.sim.state import BattleState, ForceState, SideCommand
from tactics_sim.systems.aggregator import aggregate
from tactics_sim.systems.disorder import DisorderTracker
from tactics_sim.systems.doctrine import build_conditions, fire_conditional_orders, trigger_contingencies
from tactics_sim.systems.modifiers import ModifierEngine, SideView
from tactics_sim.systems.narrative import battle_narrative, round_narrative
from tactics_sim.systems.outcome import BattleOutcomeClassifier
from tactics_sim.systems.retreat import RetreatMoraleEvaluator
from tactics_sim.systems.rounds import RoundResolver

logger = logging.getLogger(__name__)

_SIDE_LABEL = {Side.ATTACKER: "The attackers", Side.DEFENDER: "The defenders"}


class BattleClosedError(RuntimeError):
    """Raised when a finished battle is asked to continue."""


@dataclass()
class Battle:
    resolver: "TacticalResolver"
    attacker: ForceState
    defender: ForceState
    context: CombatContext
    attacker_doctrine: BattleDoctrine | None
    defender_doctrine: BattleDoctrine | None
    rng: random.Random
    state: BattleState
    rounds: list[RoundRecord] = field(default_factory=list)
    result: BattleResult | None = None

    @property
    def kind(self) -> CombatKind:
        return self.resolver.kind

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    @property
    def outcome(self) -> BattleOutcome | None:
        return self.result.outcome if self.result is not None else None

    def force_state(self, side: Side) -> ForceState:
        return self.attacker if side == Side.ATTACKER else self.defender

    def doctrine(self, side: Side) -> BattleDoctrine | None:
        return self.attacker_doctrine if side == Side.ATTACKER else self.defender_doctrine

    def command(self, side: Side) -> SideCommand:
        return self.state.command(side)

    def drill_level(self, side: Side) -> int:
        doctrine = self.doctrine(side)
        return doctrine.drill_level if doctrine is not None else DEFAULT_DRILL_LEVEL

    def view(self, side: Side) -> SideView:
        force_state = self.force_state(side)
        command = self.command(side)
        alive = force_state.alive()
        stats = aggregate(alive)
        if not stats.is_empty and command.morale_modifiers:
            stats = replace(stats, average_morale=force_state.average_morale(command.morale_shift()))
        return SideView(
            side=side,
            force=force_state.force,
            units=alive,
            stats=stats,
            doctrine=self.doctrine(side),
            formation=command.formation,
            disorder=command.disorder,
            commander_present=command.commander_present,
        )

    def step(self) -> RoundRecord | None:
        """Resolve the next round, or return None once the battle is over."""
        if self.is_complete:
            return None
        return self.resolver.resolve_round(self)

    def give_order(self, side: Side, order: MidBattleOrder) -> OrderChangeResult:
        """Issue a live order between rounds. Costs disorder; may fail outright."""
        if self.is_complete:
            raise BattleClosedError("Battle is over; orders can no longer be given")
        command = self.command(side)
        result = self.resolver.disorder.change_orders(
            command,
            order,
            drill_level=self.drill_level(side),
            current_round=self.state.current_round,
        )
        morale = self.resolver.rules.morale
        if not result.success:
            command.add_morale_modifier(morale.orders_ignored)
        elif command.commander_present:
            command.add_morale_modifier(morale.inspiring_command)
        return result

    def run_to_completion(self) -> BattleResult:
        while self.result is None:
            self.resolver.resolve_round(self)
        return self.result


class TacticalResolver(ABC):
    kind: CombatKind = CombatKind.SPACE

    def __init__(self, rules: Ruleset | None = None, seed: int | None = None):
        self.rules = rules if rules is not None else default_rules()
        self.seed = seed
        self.tuning = self.rules.tuning(self.kind)
        self.modifiers = ModifierEngine(self.rules)
        self.round_resolver = RoundResolver(self.tuning, self.rules.damage)
        self.disorder = DisorderTracker(self.rules.disorder)
        self.retreat = RetreatMoraleEvaluator(self.rules)
        self.classifier = BattleOutcomeClassifier(self.rules.decisive_margin)

    @property
    def max_rounds(self) -> int:
        return self.tuning.max_rounds

    @abstractmethod
    def power(self, own: SideView, enemy: SideView, context: CombatContext, round_number: int) -> PowerBreakdown:
        """Combat power of one side against the other for this round."""

    def start(
        self,
        attacker: Force,
        defender: Force,
        context: CombatContext | None = None,
        *,
        attacker_doctrine: BattleDoctrine | None = None,
        defender_doctrine: BattleDoctrine | None = None,
        seed: int | None = None,
    ) -> Battle:
        for doctrine in (attacker_doctrine, defender_doctrine):
            if doctrine is not None:
                doctrine.validate()
        state = BattleState(
            attacker=SideCommand.from_doctrine(attacker_doctrine, commander_present=attacker.commander_present),
            defender=SideCommand.from_doctrine(defender_doctrine, commander_present=defender.commander_present),
        )
        return Battle(
            resolver=self,
            attacker=ForceState.from_force(attacker),
            defender=ForceState.from_force(defender),
            context=context if context is not None else CombatContext(),
            attacker_doctrine=attacker_doctrine,
            defender_doctrine=defender_doctrine,
            rng=make_rng(seed if seed is not None else self.seed),
            state=state,
        )

    def resolve(
        self,
        attacker: Force,
        defender: Force,
        context: CombatContext | None = None,
        *,
        attacker_doctrine: BattleDoctrine | None = None,
        defender_doctrine: BattleDoctrine | None = None,
        seed: int | None = None,
    ) -> BattleResult:
        battle = self.start(
            attacker,
            defender,
            context,
            attacker_doctrine=attacker_doctrine,
            defender_doctrine=defender_doctrine,
            seed=seed,
        )
        return battle.run_to_completion()

    def resolve_round(self, battle: Battle) -> RoundRecord:
        if battle.is_complete:
            raise BattleClosedError("Battle is over; no further rounds")
        round_number = battle.state.current_round + 1
        if battle.attacker.alive_count() == 0 or battle.defender.alive_count() == 0:
            record = self._forfeit_round(battle, round_number)
        else:
            record = self._fight_round(battle, round_number)
        battle.rounds.append(record)
        battle.state.current_round = round_number
        logger.debug(
            "round %d: %s (attack %.1f vs defense %.1f)",
            round_number,
            record.outcome.value,
            record.effective_attack,
            record.effective_defense,
        )
        if self._is_over(battle, record):
            self._finish(battle)
        return record

    def classify_outcome(self, battle: Battle) -> BattleOutcome:
        return self.classifier.classify(
            battle.rounds,
            attacker_remaining=battle.attacker.alive_count(),
            defender_remaining=battle.defender.alive_count(),
        )

    def training_tier(self, force_state: ForceState) -> TrainingTier:
        if force_state.force.training is not None:
            return force_state.force.training
        stats = aggregate(force_state.units)
        return self.rules.training_tier(stats.average_experience)

    def _fight_round(self, battle: Battle, round_number: int) -> RoundRecord:
        context = battle.context
        events = self._pre_round_orders(battle, round_number)

        attacker_view = battle.view(Side.ATTACKER)
        defender_view = battle.view(Side.DEFENDER)
        attacker_power = self.power(attacker_view, defender_view, context, round_number)
        defender_power = self.power(defender_view, attacker_view, context, round_number)

        attack_roll = self.round_resolver.roll(battle.rng)
        defense_roll = self.round_resolver.roll(battle.rng)
        effective_attack = attacker_power.total * attack_roll
        effective_defense = defender_power.total * defense_roll

        attacker_command = battle.command(Side.ATTACKER)
        defender_command = battle.command(Side.DEFENDER)
        damage_to_defender = self.round_resolver.damage(
            effective_attack,
            self.tuning.attacker_damage_fraction,
            attacker_command.target_priority,
            battle.defender.current_strength(),
        )
        damage_to_attacker = self.round_resolver.damage(
            effective_defense,
            self.tuning.defender_damage_fraction,
            defender_command.target_priority,
            battle.attacker.current_strength(),
        )
        defender_hits = self._apply_damage(battle, Side.DEFENDER, damage_to_defender, attacker_command)
        attacker_hits = self._apply_damage(battle, Side.ATTACKER, damage_to_attacker, defender_command)
        events.extend(self._morale_events(battle))

        outcome = self.round_resolver.classify(effective_attack, effective_defense)
        retreat_reasons: list[str] = []
        retreating: dict[Side, bool] = {}
        for side in (Side.ATTACKER, Side.DEFENDER):
            conditions = build_conditions(
                round_number=round_number,
                own=battle.force_state(side),
                enemy=battle.force_state(side.opponent),
                own_doctrine=battle.doctrine(side),
                enemy_command=battle.command(side.opponent),
                own_command=battle.command(side),
            )
            decision = self.retreat.evaluate(
                kind=self.kind,
                conditions=conditions,
                doctrine=battle.doctrine(side),
                command=battle.command(side),
                force_state=battle.force_state(side),
                training=self.training_tier(battle.force_state(side)),
                rng=battle.rng,
            )
            retreating[side] = decision.retreat
            if decision.retreat:
                retreat_reasons.append(f"{_SIDE_LABEL[side]} withdraw: {decision.reason}.")
        if retreating[Side.ATTACKER]:
            outcome = RoundOutcome.ATTACKER_RETREATS
        elif retreating[Side.DEFENDER]:
            outcome = RoundOutcome.DEFENDER_RETREATS

        for side in (Side.ATTACKER, Side.DEFENDER):
            self.disorder.decay(battle.command(side), drill_level=battle.drill_level(side))
            battle.command(side).tick_morale()

        narrative = round_narrative(
            kind=self.kind,
            round_number=round_number,
            outcome=outcome,
            context=context,
            attacker_formation=attacker_command.formation,
            defender_formation=defender_command.formation,
            attacker_disorder=attacker_command.disorder,
            defender_disorder=defender_command.disorder,
            events=events,
            retreat_reasons=retreat_reasons,
        )
        return RoundRecord(
            round_number=round_number,
            outcome=outcome,
            attacker_power=attacker_power,
            defender_power=defender_power,
            effective_attack=effective_attack,
            effective_defense=effective_defense,
            damage_to_attacker=damage_to_attacker,
            damage_to_defender=damage_to_defender,
            attacker_damage=tuple(attacker_hits),
            defender_damage=tuple(defender_hits),
            attacker_disorder=attacker_command.disorder,
            defender_disorder=defender_command.disorder,
            attacker_units_remaining=battle.attacker.alive_count(),
            defender_units_remaining=battle.defender.alive_count(),
            attacker_retreating=retreating[Side.ATTACKER],
            defender_retreating=retreating[Side.DEFENDER],
            events=tuple(events),
            narrative=narrative,
        )

    def _pre_round_orders(self, battle: Battle, round_number: int) -> list[str]:
        events: list[str] = []
        for side in (Side.ATTACKER, Side.DEFENDER):
            doctrine = battle.doctrine(side)
            command = battle.command(side)
            conditions = build_conditions(
                round_number=round_number,
                own=battle.force_state(side),
                enemy=battle.force_state(side.opponent),
                own_doctrine=doctrine,
                enemy_command=battle.command(side.opponent),
                own_command=command,
            )
            for contingency in trigger_contingencies(doctrine, command, side, battle.context, conditions):
                label = contingency.value.replace("_", " ")
                events.append(f"{_SIDE_LABEL[side]} execute their {label} contingency plan.")
            for order in fire_conditional_orders(doctrine, command, conditions, retreat_orders=False):
                events.append(f"{_SIDE_LABEL[side]} execute conditional order '{order.name}'.")
        return events

    def _morale_events(self, battle: Battle) -> list[str]:
        """Apply morale modifiers for flagships lost and casualty thresholds crossed this round."""
        morale = self.rules.morale
        events: list[str] = []
        for side in (Side.ATTACKER, Side.DEFENDER):
            command = battle.command(side)
            force_state = battle.force_state(side)
            doctrine = battle.doctrine(side)
            flagship_ids = doctrine.flagship_ids() if doctrine is not None else set()
            if not command.flagship_lost and any(
                unit.destroyed for unit in force_state.units if unit.unit_id in flagship_ids
            ):
                command.flagship_lost = True
                command.add_morale_modifier(morale.flagship_destroyed)
                battle.command(side.opponent).add_morale_modifier(morale.enemy_flagship_destroyed)
                events.append(f"{_SIDE_LABEL[side]} lose their flagship.")

            lost = force_state.lost_percent()
            heavy = morale.heavy_casualties_percent
            significant = morale.significant_casualties_percent
            if lost >= heavy and heavy not in command.casualty_marks:
                command.casualty_marks.update({heavy, significant})
                command.add_morale_modifier(morale.heavy_casualties)
                events.append(f"{_SIDE_LABEL[side]} are shaken by heavy casualties.")
            elif lost >= significant and significant not in command.casualty_marks:
                command.casualty_marks.add(significant)
                command.add_morale_modifier(morale.significant_casualties)
                events.append(f"{_SIDE_LABEL[side]} are shaken by mounting casualties.")
        return events

    def _apply_damage(
        self, battle: Battle, target_side: Side, amount: int, shooter: SideCommand
    ) -> list[UnitDamage]:
        target_doctrine = battle.doctrine(target_side)
        flagship_ids = target_doctrine.flagship_ids() if target_doctrine is not None else set()
        shares = self.round_resolver.distribute(
            battle.force_state(target_side).units,
            amount,
            shooter.target_priority,
            battle.rng,
            flagship_ids,
        )
        return [self.round_resolver.apply(unit, share, self.kind) for unit, share in shares if share > 0]

    def _forfeit_round(self, battle: Battle, round_number: int) -> RoundRecord:
        attacker_view = battle.view(Side.ATTACKER)
        defender_view = battle.view(Side.DEFENDER)
        attacker_empty = attacker_view.stats.is_empty
        defender_empty = defender_view.stats.is_empty
        if attacker_empty and not defender_empty:
            outcome = RoundOutcome.DEFENDER_ADVANTAGE
            narrative = f"Round {round_number}: The attackers have no forces to field."
        elif defender_empty and not attacker_empty:
            outcome = RoundOutcome.ATTACKER_ADVANTAGE
            narrative = f"Round {round_number}: The defenders have no forces to field."
        else:
            outcome = RoundOutcome.STALEMATE
            narrative = f"Round {round_number}: Neither side has forces to field."
        attacker_power = self.power(attacker_view, defender_view, battle.context, round_number)
        defender_power = self.power(defender_view, attacker_view, battle.context, round_number)
        return RoundRecord(
            round_number=round_number,
            outcome=outcome,
            attacker_power=attacker_power,
            defender_power=defender_power,
            effective_attack=attacker_power.total,
            effective_defense=defender_power.total,
            damage_to_attacker=0,
            damage_to_defender=0,
            attacker_damage=(),
            defender_damage=(),
            attacker_disorder=battle.command(Side.ATTACKER).disorder,
            defender_disorder=battle.command(Side.DEFENDER).disorder,
            attacker_units_remaining=battle.attacker.alive_count(),
            defender_units_remaining=battle.defender.alive_count(),
            attacker_retreating=False,
            defender_retreating=False,
            events=(),
            narrative=narrative,
        )

    def _is_over(self, battle: Battle, record: RoundRecord) -> bool:
        if record.attacker_retreating or record.defender_retreating:
            return True
        if battle.attacker.alive_count() == 0 or battle.defender.alive_count() == 0:
            return True
        return record.round_number >= self.max_rounds

    def _finish(self, battle: Battle) -> None:
        outcome = self.classify_outcome(battle)
        attacker_lost = battle.attacker.destroyed_count()
        defender_lost = battle.defender.destroyed_count()
        battle.result = BattleResult(
            kind=self.kind,
            outcome=outcome,
            total_rounds=len(battle.rounds),
            attacker_damage=_summaries(battle.attacker),
            defender_damage=_summaries(battle.defender),
            attacker_units_lost=attacker_lost,
            defender_units_lost=defender_lost,
            round_log=tuple(battle.rounds),
            narrative=battle_narrative(
                kind=self.kind,
                outcome=outcome,
                total_rounds=len(battle.rounds),
                attacker_name=battle.attacker.force.name,
                defender_name=battle.defender.force.name,
                attacker_lost=attacker_lost,
                defender_lost=defender_lost,
            ),
        )
        logger.info(
            "%s battle concluded: %s after %d rounds",
            self.kind.value,
            outcome.value,
            len(battle.rounds),
        )


class SpaceCombatResolver(TacticalResolver):
    kind = CombatKind.SPACE

    def power(self, own: SideView, enemy: SideView, context: CombatContext, round_number: int) -> PowerBreakdown:
        return self.modifiers.space_power(own, enemy, context, round_number)


class GroundCombatResolver(TacticalResolver):
    kind = CombatKind.GROUND

    def power(self, own: SideView, enemy: SideView, context: CombatContext, round_number: int) -> PowerBreakdown:
        return self.modifiers.ground_power(own, enemy, context, round_number)


def resolver_for(kind: CombatKind, rules: Ruleset | None = None, seed: int | None = None) -> TacticalResolver:
    if kind == CombatKind.GROUND:
        return GroundCombatResolver(rules, seed)
    return SpaceCombatResolver(rules, seed)


def _summaries(force_state: ForceState) -> tuple[UnitDamageSummary, ...]:
    summaries: list[UnitDamageSummary] = []
    for unit in force_state.units:
        shield_damage = unit.initial_shields - unit.shields
        hull_damage = unit.initial_hull - unit.hull
        morale_loss = unit.initial_morale - unit.morale
        if shield_damage or hull_damage or morale_loss or unit.destroyed:
            summaries.append(
                UnitDamageSummary(
                    unit_id=unit.unit_id,
                    shield_damage=shield_damage,
                    hull_damage=hull_damage,
                    morale_loss=morale_loss,
                    destroyed=unit.destroyed,
                )
            )
    return tuple(summaries)
