from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from tactics_sim.domain.types import Side
from tactics_sim.rules.ruleset import default_rules
from tactics_sim.rules.scenario import ScenarioError, parse_battle_setup, parse_order
from tactics_sim.server.api import mappers, schemas
from tactics_sim.server.session import BattleSession, discard_session, get_session, start_battle
from tactics_sim.systems.battle import BattleClosedError, resolver_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _require_session(battle_id: str) -> BattleSession:
    session = get_session(battle_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown battle: {battle_id}")
    return session


def _parse_side(value: str) -> Side:
    try:
        return Side(value)
    except ValueError as exc:
        raise ValueError(f"Unknown side: {value}") from exc


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/catalog", response_model=schemas.CatalogResponse)
async def get_catalog():
    return mappers.build_catalog(default_rules())


@router.post("/battles/resolve", response_model=schemas.ApiResponse)
async def resolve_battle(payload: schemas.BattleRequest):
    try:
        setup = parse_battle_setup(mappers.battle_request_data(payload))
    except ScenarioError as exc:
        return schemas.ApiResponse(ok=False, message=str(exc), message_kind="error")
    resolver = resolver_for(setup.kind)
    result = resolver.resolve(
        setup.attacker,
        setup.defender,
        setup.context,
        attacker_doctrine=setup.attacker_doctrine,
        defender_doctrine=setup.defender_doctrine,
        seed=setup.seed,
    )
    return schemas.ApiResponse(
        ok=True,
        message=result.narrative,
        result=mappers.result_response(result),
    )


@router.post("/battles", response_model=schemas.ApiResponse)
async def create_battle(payload: schemas.BattleRequest):
    try:
        setup = parse_battle_setup(mappers.battle_request_data(payload))
    except ScenarioError as exc:
        return schemas.ApiResponse(ok=False, message=str(exc), message_kind="error")
    battle_id, session = start_battle(setup)
    logger.info("Started %s battle %s", setup.kind.value, battle_id)
    async with session.lock:
        return schemas.ApiResponse(
            ok=True,
            message="Battle started",
            battle=mappers.battle_state_response(battle_id, session.battle),
        )


@router.get("/battles/{battle_id}", response_model=schemas.BattleStateResponse)
async def get_battle(battle_id: str):
    session = _require_session(battle_id)
    async with session.lock:
        return mappers.battle_state_response(battle_id, session.battle)


@router.delete("/battles/{battle_id}", response_model=schemas.ApiResponse)
async def end_battle(battle_id: str):
    if not discard_session(battle_id):
        raise HTTPException(status_code=404, detail=f"Unknown battle: {battle_id}")
    logger.info("Discarded battle %s", battle_id)
    return schemas.ApiResponse(ok=True, message="Battle discarded")


@router.post("/battles/{battle_id}/rounds", response_model=schemas.ApiResponse)
async def next_round(battle_id: str):
    session = _require_session(battle_id)
    async with session.lock:
        record = session.battle.step()
        state = mappers.battle_state_response(battle_id, session.battle)
        if record is None:
            return schemas.ApiResponse(ok=False, message="Battle is over", message_kind="error", battle=state)
        return schemas.ApiResponse(
            ok=True,
            message=record.narrative,
            battle=state,
            round=mappers.round_response(record),
            result=state.result,
        )


@router.post("/battles/{battle_id}/orders", response_model=schemas.OrderResponse)
async def give_order(battle_id: str, payload: schemas.LiveOrderRequest):
    session = _require_session(battle_id)
    async with session.lock:
        try:
            side = _parse_side(payload.side)
            order = parse_order(payload.order.model_dump(exclude_none=True))
            if order.is_empty:
                raise ValueError("Order changes nothing")
            result = session.battle.give_order(side, order)
        except (BattleClosedError, ValueError) as exc:
            return schemas.OrderResponse(
                ok=False,
                message=str(exc),
                battle=mappers.battle_state_response(battle_id, session.battle),
            )
        return schemas.OrderResponse(
            ok=True,
            message=result.message,
            success=result.success,
            disorder_caused=result.disorder_caused,
            total_disorder=result.total_disorder,
            battle=mappers.battle_state_response(battle_id, session.battle),
        )
