from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tactics_sim.rules.ruleset import default_rules
from tactics_sim.server.api import router as api_router
from tactics_sim.server.session import clear_sessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    default_rules()
    logger.info("Combat rules loaded")
    yield
    clear_sessions()


def create_app() -> FastAPI:
    app = FastAPI(title="Tactics Sim", lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()
