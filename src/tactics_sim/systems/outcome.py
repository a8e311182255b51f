from __future__ import annotations

from typing import Sequence

from tactics_sim.domain.battle_models import RoundRecord
from tactics_sim.domain.types import BattleOutcome, RoundOutcome


class BattleOutcomeClassifier:
    def __init__(self, decisive_margin: int = 2):
        self.decisive_margin = decisive_margin

    def classify(
        self,
        rounds: Sequence[RoundRecord],
        *,
        attacker_remaining: int,
        defender_remaining: int,
    ) -> BattleOutcome:
        if rounds:
            last = rounds[-1]
            if last.attacker_retreating:
                return BattleOutcome.DEFENDER_VICTORY
            if last.defender_retreating:
                return BattleOutcome.ATTACKER_VICTORY

        if attacker_remaining == 0 and defender_remaining == 0:
            return BattleOutcome.MUTUAL_DESTRUCTION
        if defender_remaining == 0:
            return BattleOutcome.ATTACKER_VICTORY
        if attacker_remaining == 0:
            return BattleOutcome.DEFENDER_VICTORY

        attacker_rounds = sum(1 for r in rounds if r.outcome == RoundOutcome.ATTACKER_ADVANTAGE)
        defender_rounds = sum(1 for r in rounds if r.outcome == RoundOutcome.DEFENDER_ADVANTAGE)
        if attacker_rounds > defender_rounds + self.decisive_margin:
            return BattleOutcome.ATTACKER_VICTORY
        if defender_rounds > attacker_rounds + self.decisive_margin:
            return BattleOutcome.DEFENDER_VICTORY
        return BattleOutcome.STALEMATE
