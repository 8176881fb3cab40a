from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..features.scenario import ScenarioManager, create_scenario_router


def create_app(manager: ScenarioManager | None = None) -> FastAPI:
    manager = manager or ScenarioManager()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            manager.close()

    app = FastAPI(title="Preflop Scenario Tree", lifespan=lifespan)
    app.state.manager = manager
    app.include_router(create_scenario_router(manager))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
