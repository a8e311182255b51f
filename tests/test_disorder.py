from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from tactics_sim.domain.doctrine import MidBattleOrder
from tactics_sim.domain.types import Formation
from tactics_sim.rules.ruleset import default_rules
from tactics_sim.sim.state import SideCommand
from tactics_sim.systems.disorder import DisorderTracker
from tests.helpers.strategies import order_strategy


def _tracker() -> DisorderTracker:
    return DisorderTracker(default_rules().disorder)


def test_change_cost_components() -> None:
    tracker = _tracker()
    # base 15, drill 50 knocks off 10, floor of 5
    assert tracker.change_cost(SideCommand(commander_present=True), drill_level=50, current_round=1) == 5
    assert tracker.change_cost(SideCommand(commander_present=False), drill_level=50, current_round=1) == 30
    rapid = SideCommand(commander_present=True, last_change_round=2, order_changes=2)
    # +20 for a second change this round, +5 per prior change
    assert tracker.change_cost(rapid, drill_level=0, current_round=2) == 15 + 20 + 10
    settled = SideCommand(commander_present=True, last_change_round=1, order_changes=2)
    assert tracker.change_cost(settled, drill_level=0, current_round=2) == 15 + 10


def test_drill_reduction_is_capped() -> None:
    tracker = _tracker()
    command = SideCommand(commander_present=False)
    assert tracker.change_cost(command, drill_level=100, current_round=1) == 15 + 25 - 20


def test_successful_order_applies_and_accrues() -> None:
    tracker = _tracker()
    command = SideCommand(commander_present=True)
    result = tracker.change_orders(
        command, MidBattleOrder(formation=Formation.LINE), drill_level=50, current_round=1
    )
    assert result.success
    assert result.disorder_caused == 5
    assert result.total_disorder == 5
    assert command.formation == Formation.LINE
    assert command.disorder_accrued == 5
    assert command.order_changes == 1
    assert command.last_change_round == 1


def test_failed_order_still_costs_disorder() -> None:
    tracker = _tracker()
    command = SideCommand(commander_present=False, disorder=95)
    result = tracker.change_orders(
        command, MidBattleOrder(formation=Formation.WEDGE), drill_level=0, current_round=3
    )
    assert not result.success
    assert command.formation == Formation.STANDARD
    assert command.disorder == 100
    assert command.disorder_accrued == 40
    assert "chaos" in result.message


def test_decay_scales_with_drill() -> None:
    tracker = _tracker()
    command = SideCommand(disorder=10)
    assert tracker.decay(command, drill_level=60) == 7
    assert tracker.decay(command, drill_level=0) == 7
    assert tracker.decay(SideCommand(disorder=2), drill_level=100) == 0


@given(
    orders=st.lists(order_strategy(), min_size=1, max_size=12),
    commander=st.booleans(),
    drill=st.integers(min_value=0, max_value=100),
)
@settings(max_examples=25)
def test_disorder_stays_bounded(orders: list[MidBattleOrder], commander: bool, drill: int) -> None:
    tracker = _tracker()
    command = SideCommand(commander_present=commander)
    accrued = 0
    for round_number, order in enumerate(orders, start=1):
        result = tracker.change_orders(command, order, drill_level=drill, current_round=round_number // 2)
        accrued += result.disorder_caused
        assert result.disorder_caused >= 5
        assert 0 <= command.disorder <= 100
        tracker.decay(command, drill_level=drill)
        assert 0 <= command.disorder <= 100
    assert command.disorder_accrued == accrued
