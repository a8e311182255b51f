from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field

from tactics_sim.rules.scenario import BattleSetup
from tactics_sim.systems.battle import Battle, resolver_for


@dataclass
class BattleSession:
    battle: Battle
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


MAX_SESSIONS = 256

_sessions: dict[str, BattleSession] = {}


def start_battle(setup: BattleSetup) -> tuple[str, BattleSession]:
    resolver = resolver_for(setup.kind)
    battle = resolver.start(
        setup.attacker,
        setup.defender,
        setup.context,
        attacker_doctrine=setup.attacker_doctrine,
        defender_doctrine=setup.defender_doctrine,
        seed=setup.seed,
    )
    battle_id = str(uuid.uuid4())
    session = BattleSession(battle=battle)
    _sessions[battle_id] = session
    while len(_sessions) > MAX_SESSIONS:
        _sessions.pop(next(iter(_sessions)))
    return battle_id, session


def get_session(battle_id: str) -> BattleSession | None:
    return _sessions.get(battle_id)


def discard_session(battle_id: str) -> bool:
    return _sessions.pop(battle_id, None) is not None


def clear_sessions() -> None:
    _sessions.clear()
