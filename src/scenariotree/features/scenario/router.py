from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, HTTPException, Response
from fastapi.responses import JSONResponse

from ...core.errors import EngineError, IllegalAction, NodeNotFound, ScenarioNotFound
from ...core.models import ActionKind, parse_action
from ...dynamic.bet_sizing import default_sizing_options
from .schemas import (
    ApplyActionRequest,
    ConvertToHeroRequest,
    CreateScenarioRequest,
    LinkRangeRequest,
    SizingOptionsPayload,
    StackOverrideRequest,
)
from .service import ScenarioManager

__all__ = ["create_scenario_router"]

_STATUS = {
    NodeNotFound: 404,
    ScenarioNotFound: 404,
    IllegalAction: 409,
}


def _http_error(exc: EngineError) -> HTTPException:
    status = _STATUS.get(type(exc), 400)
    return HTTPException(status_code=status, detail={"code": exc.code, "message": exc.message})


class _ScenarioController:
    def __init__(self, manager: ScenarioManager) -> None:
        self.manager = manager

    def _snapshot(self, scenario_id: str) -> JSONResponse:
        return JSONResponse(self.manager.snapshot(scenario_id).to_dict())

    def _edit(self, scenario_id: str, command: Callable[[], object]) -> JSONResponse:
        try:
            command()
            return self._snapshot(scenario_id)
        except EngineError as exc:
            raise _http_error(exc) from exc

    async def create(self, payload: CreateScenarioRequest | None = None) -> JSONResponse:
        payload = payload or CreateScenarioRequest()
        scenario_id = await self.manager.create_async(payload.table_format, hero=payload.hero)
        return self._snapshot(scenario_id)

    async def get(self, scenario_id: str) -> JSONResponse:
        try:
            return self._snapshot(scenario_id)
        except EngineError as exc:
            raise _http_error(exc) from exc

    async def legal(self, scenario_id: str, node_id: str) -> dict[str, object]:
        try:
            actions = self.manager.legal_actions(scenario_id, node_id)
        except EngineError as exc:
            raise _http_error(exc) from exc
        order = list(ActionKind)
        return {"node_id": node_id, "legal_actions": [action.value for action in sorted(actions, key=order.index)]}

    async def apply(self, scenario_id: str, payload: ApplyActionRequest) -> JSONResponse:
        try:
            await self.manager.apply_async(scenario_id, payload.node_id, payload.action, payload.sizing)
            return self._snapshot(scenario_id)
        except EngineError as exc:
            raise _http_error(exc) from exc

    async def modify(self, scenario_id: str, node_id: str) -> JSONResponse:
        return self._edit(scenario_id, lambda: self.manager.modify_action(scenario_id, node_id))

    async def hero(self, scenario_id: str, node_id: str, payload: ConvertToHeroRequest | None = None) -> JSONResponse:
        range_id = payload.range_id if payload else None
        return self._edit(scenario_id, lambda: self.manager.convert_to_hero(scenario_id, node_id, range_id))

    async def villain(self, scenario_id: str, node_id: str) -> JSONResponse:
        return self._edit(scenario_id, lambda: self.manager.convert_to_villain(scenario_id, node_id))

    async def link_range(self, scenario_id: str, node_id: str, payload: LinkRangeRequest) -> JSONResponse:
        return self._edit(scenario_id, lambda: self.manager.link_range(scenario_id, node_id, payload.range_id))

    async def stack(self, scenario_id: str, node_id: str, payload: StackOverrideRequest) -> JSONResponse:
        return self._edit(scenario_id, lambda: self.manager.set_stack_override(scenario_id, node_id, payload.stack_bb))

    async def sizing(self, action: str) -> dict[str, object]:
        try:
            kind = parse_action(action)
        except EngineError as exc:
            raise _http_error(exc) from exc
        return SizingOptionsPayload(action=kind, options=list(default_sizing_options(kind))).to_dict()

    async def save(self, scenario_id: str) -> dict[str, str]:
        try:
            saved_id = await self.manager.save_async(scenario_id)
        except EngineError as exc:
            raise _http_error(exc) from exc
        return {"scenario": scenario_id, "saved": saved_id}

    async def load(self, saved_id: str) -> JSONResponse:
        try:
            scenario_id = await self.manager.load_async(saved_id)
        except EngineError as exc:
            raise _http_error(exc) from exc
        return self._snapshot(scenario_id)

    async def saved(self) -> dict[str, list[str]]:
        return {"saved": self.manager.list_saved()}

    async def delete_saved(self, saved_id: str) -> Response:
        try:
            self.manager.delete_saved(saved_id)
        except EngineError as exc:
            raise _http_error(exc) from exc
        return Response(status_code=204)


def create_scenario_router(manager: ScenarioManager) -> APIRouter:
    controller = _ScenarioController(manager)
    router = APIRouter(prefix="/api/v1/scenario", tags=["scenario"])
    router.add_api_route("", controller.create, methods=["POST"])
    router.add_api_route("/saved", controller.saved, methods=["GET"])
    router.add_api_route("/saved/{saved_id}", controller.delete_saved, methods=["DELETE"], status_code=204)
    router.add_api_route("/sizing/{action}", controller.sizing, methods=["GET"])
    router.add_api_route("/load/{saved_id}", controller.load, methods=["POST"])
    router.add_api_route("/{scenario_id}", controller.get, methods=["GET"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/legal", controller.legal, methods=["GET"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/modify", controller.modify, methods=["POST"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/hero", controller.hero, methods=["POST"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/villain", controller.villain, methods=["POST"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/range", controller.link_range, methods=["PUT"])
    router.add_api_route("/{scenario_id}/nodes/{node_id}/stack", controller.stack, methods=["PUT"])
    router.add_api_route("/{scenario_id}/actions", controller.apply, methods=["POST"])
    router.add_api_route("/{scenario_id}/save", controller.save, methods=["POST"])
    return router
