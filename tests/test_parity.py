from __future__ import annotations

import pytest

from tactics_sim.domain.doctrine import BattleDoctrine, ConditionalOrder, MidBattleOrder
from tactics_sim.domain.types import Formation, Side, TriggerComparison, TriggerCondition
from tests.helpers.factories import make_battle, make_fleet, sturdy_fleet


def _planned_doctrine() -> BattleDoctrine:
    doctrine = BattleDoctrine()
    doctrine.add_conditional_order(
        ConditionalOrder(
            name="Form line",
            trigger=TriggerCondition.BATTLE_ROUND,
            comparison=TriggerComparison.GREATER_OR_EQUAL,
            threshold=2,
            action=MidBattleOrder(formation=Formation.LINE),
        )
    )
    return doctrine


def test_planned_order_costs_no_disorder_while_live_order_does() -> None:
    live = make_battle(sturdy_fleet("blue"), sturdy_fleet("red"), attacker_doctrine=BattleDoctrine(), seed=6)
    live.step()
    live.give_order(Side.ATTACKER, MidBattleOrder(formation=Formation.LINE))
    live_round = live.step()

    planned = make_battle(sturdy_fleet("blue"), sturdy_fleet("red"), attacker_doctrine=_planned_doctrine(), seed=6)
    first = planned.step()
    planned_round = planned.step()

    assert first.attacker_power.factor("Formation") is None
    assert live.command(Side.ATTACKER).formation == Formation.LINE
    assert planned.command(Side.ATTACKER).formation == Formation.LINE
    assert live_round.attacker_power.factor("Formation") == pytest.approx(1.1)
    assert planned_round.attacker_power.factor("Formation") == pytest.approx(1.1)

    assert live.command(Side.ATTACKER).disorder_accrued == 30
    assert planned.command(Side.ATTACKER).disorder_accrued == 0
    assert live_round.attacker_power.factor("Disorder") is not None
    assert planned_round.attacker_power.factor("Disorder") is None
    assert any("Form line" in event for event in planned_round.events)


def test_commander_and_drill_soften_live_orders() -> None:
    drilled = BattleDoctrine(drill_level=100)
    attacker = make_fleet("blue", shields=400, hull=300, morale=100, experience=50, commander_present=True)
    battle = make_battle(attacker, sturdy_fleet("red"), attacker_doctrine=drilled)
    battle.step()
    result = battle.give_order(Side.ATTACKER, MidBattleOrder(formation=Formation.ECHELON))
    assert result.success
    assert result.disorder_caused == 5
