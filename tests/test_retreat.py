from __future__ import annotations

import random

from tactics_sim.domain.doctrine import BattleDoctrine, ConditionalOrder, MidBattleOrder
from tactics_sim.domain.types import (
    CombatKind,
    EngagementPolicy,
    RetreatCondition,
    Stance,
    TrainingTier,
    TriggerComparison,
    TriggerCondition,
)
from tactics_sim.rules.ruleset import default_rules
from tactics_sim.sim.state import ForceState, SideCommand
from tactics_sim.systems.retreat import RetreatMoraleEvaluator
from tests.helpers.factories import make_conditions, make_fleet, make_ground_force


class _FixedRng:
    """Stands in for random.Random where a single draw matters."""

    def __init__(self, value: float):
        self.value = value
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        return self.value


def _evaluate(
    *,
    conditions,
    force_state: ForceState,
    doctrine: BattleDoctrine | None = None,
    command: SideCommand | None = None,
    kind: CombatKind = CombatKind.SPACE,
    training: TrainingTier = TrainingTier.REGULAR,
    rng=None,
):
    evaluator = RetreatMoraleEvaluator(default_rules())
    return evaluator.evaluate(
        kind=kind,
        conditions=conditions,
        doctrine=doctrine,
        command=command if command is not None else SideCommand(),
        force_state=force_state,
        training=training,
        rng=rng if rng is not None else random.Random(0),
    )


def _fleet_state(*, morale: int = 100, stance: Stance = Stance.BALANCED) -> ForceState:
    return ForceState.from_force(make_fleet("f", 4, morale=morale, stance=stance))


def test_wiped_out_side_does_not_retreat() -> None:
    decision = _evaluate(
        conditions=make_conditions(our_units_remaining=0),
        force_state=_fleet_state(),
        command=SideCommand(retreat_ordered=True),
    )
    assert not decision.retreat


def test_explicit_retreat_order_skips_the_opening_grace() -> None:
    decision = _evaluate(
        conditions=make_conditions(round_number=1),
        force_state=_fleet_state(),
        command=SideCommand(retreat_ordered=True),
    )
    assert decision.retreat
    assert "ordered" in decision.reason


def test_no_automatic_retreat_before_round_three() -> None:
    rng = _FixedRng(0.0)
    decision = _evaluate(
        conditions=make_conditions(round_number=2, our_units_lost_percent=90),
        force_state=_fleet_state(morale=0),
        rng=rng,
    )
    assert not decision.retreat
    assert rng.draws == 0


def test_default_condition_is_half_losses() -> None:
    force_state = _fleet_state()
    assert not _evaluate(conditions=make_conditions(our_units_lost_percent=49), force_state=force_state).retreat
    decision = _evaluate(conditions=make_conditions(our_units_lost_percent=50), force_state=force_state)
    assert decision.retreat
    assert "fifty percent losses" in decision.reason


def test_doctrine_condition_thresholds() -> None:
    evaluator = RetreatMoraleEvaluator(default_rules())
    assert evaluator.condition_met(RetreatCondition.TEN_PERCENT_LOSSES, make_conditions(our_units_lost_percent=10))
    assert not evaluator.condition_met(RetreatCondition.THIRTY_PERCENT_LOSSES, make_conditions(our_units_lost_percent=29))
    assert evaluator.condition_met(RetreatCondition.FLAGSHIP_CRITICAL, make_conditions(our_flagship_damage_percent=75))
    assert evaluator.condition_met(RetreatCondition.MORALE_BREAK, make_conditions(our_morale=24))
    assert not evaluator.condition_met(RetreatCondition.MORALE_BREAK, make_conditions(our_morale=25))
    assert not evaluator.condition_met(RetreatCondition.NEVER, make_conditions(our_units_lost_percent=99))
    assert not evaluator.condition_met(RetreatCondition.COMMANDER_ORDER, make_conditions(our_units_lost_percent=99))


def test_never_retreat_suppresses_morale_checks() -> None:
    rng = _FixedRng(0.0)
    decision = _evaluate(
        conditions=make_conditions(our_units_lost_percent=90, our_morale=0),
        force_state=_fleet_state(morale=0),
        doctrine=BattleDoctrine(retreat_condition=RetreatCondition.NEVER),
        rng=rng,
    )
    assert not decision.retreat
    assert rng.draws == 0


def test_all_out_stance_and_policy_suppress_morale_checks() -> None:
    conditions = make_conditions(our_units_lost_percent=10)
    doctrine = BattleDoctrine(retreat_condition=RetreatCondition.TWENTY_PERCENT_LOSSES)
    assert not _evaluate(
        conditions=conditions,
        force_state=_fleet_state(morale=0, stance=Stance.ALL_OUT),
        doctrine=doctrine,
        rng=_FixedRng(0.0),
    ).retreat
    assault = BattleDoctrine(
        engagement_policy=EngagementPolicy.ALL_OUT_ASSAULT,
        retreat_condition=RetreatCondition.TWENTY_PERCENT_LOSSES,
    )
    assert not _evaluate(conditions=conditions, force_state=_fleet_state(morale=0), doctrine=assault, rng=_FixedRng(0.0)).retreat


def test_space_morale_check_is_stochastic() -> None:
    shaken = _fleet_state(morale=20)
    # chance (100 - 20) / 200 = 0.4
    assert _evaluate(conditions=make_conditions(), force_state=shaken, rng=_FixedRng(0.39)).retreat
    assert not _evaluate(conditions=make_conditions(), force_state=shaken, rng=_FixedRng(0.41)).retreat


def test_evasive_stance_doubles_the_chance() -> None:
    evasive = _fleet_state(morale=20, stance=Stance.EVASIVE)
    assert _evaluate(conditions=make_conditions(), force_state=evasive, rng=_FixedRng(0.79)).retreat


def test_full_morale_never_draws() -> None:
    rng = _FixedRng(0.0)
    assert not _evaluate(conditions=make_conditions(), force_state=_fleet_state(morale=100), rng=rng).retreat
    assert rng.draws == 0


def test_training_raises_the_break_threshold() -> None:
    force_state = _fleet_state(morale=60)
    # regular: chance 0.2; legendary: morale counts double, chance 0
    assert _evaluate(conditions=make_conditions(), force_state=force_state, rng=_FixedRng(0.1)).retreat
    assert not _evaluate(
        conditions=make_conditions(),
        force_state=force_state,
        training=TrainingTier.LEGENDARY,
        rng=_FixedRng(0.0),
    ).retreat


def test_ground_retreat_follows_casualties() -> None:
    force_state = ForceState.from_force(make_ground_force("g", 2, strength=100))
    force_state.units[0].hull = 10
    conditions = make_conditions(our_morale=30)
    # casualty ratio 0.45 against a 0.3 break point
    assert _evaluate(conditions=conditions, force_state=force_state, kind=CombatKind.GROUND).retreat
    assert not _evaluate(
        conditions=conditions,
        force_state=force_state,
        kind=CombatKind.GROUND,
        training=TrainingTier.LEGENDARY,
    ).retreat


def test_conditional_retreat_order_fires_after_damage() -> None:
    doctrine = BattleDoctrine(retreat_condition=RetreatCondition.COMMANDER_ORDER)
    doctrine.add_conditional_order(
        ConditionalOrder(
            name="Fall back",
            trigger=TriggerCondition.OUR_UNITS_LOST_PERCENT,
            comparison=TriggerComparison.GREATER_OR_EQUAL,
            threshold=25,
            action=MidBattleOrder(retreat=True),
        )
    )
    command = SideCommand()
    force_state = _fleet_state()
    assert not _evaluate(
        conditions=make_conditions(our_units_lost_percent=24), force_state=force_state, doctrine=doctrine, command=command
    ).retreat
    decision = _evaluate(
        conditions=make_conditions(our_units_lost_percent=25), force_state=force_state, doctrine=doctrine, command=command
    )
    assert decision.retreat
    assert "Fall back" in decision.reason
    assert command.retreat_ordered


def test_conditional_retreat_order_is_honoured_before_round_three() -> None:
    doctrine = BattleDoctrine(retreat_condition=RetreatCondition.NEVER)
    doctrine.add_conditional_order(
        ConditionalOrder(
            name="Break off early",
            trigger=TriggerCondition.OUR_UNITS_LOST_PERCENT,
            comparison=TriggerComparison.GREATER_OR_EQUAL,
            threshold=25,
            action=MidBattleOrder(retreat=True),
        )
    )
    command = SideCommand()
    rng = _FixedRng(0.0)
    decision = _evaluate(
        conditions=make_conditions(round_number=1, our_units_lost_percent=25),
        force_state=_fleet_state(),
        doctrine=doctrine,
        command=command,
        rng=rng,
    )
    assert decision.retreat
    assert "Break off early" in decision.reason
    assert command.retreat_ordered
    assert rng.draws == 0
