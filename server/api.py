"""FastAPI server exposing capsule and combination endpoints."""

from dataclasses import asdict

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from capsule_app.app import CapsuleConciergeApp
from logic.exceptions import (
    CapsuleError,
    ExternalResponseInvalid,
    OwnershipViolation,
    PersistenceFailure,
    PreconditionNotMet,
)
from logic.validation import CapsuleCreate, CapsuleItemsAdd, GenerationResponse, WardrobeItemCreate
from models.capsule import GenerationResult

ERROR_STATUS = {
    PreconditionNotMet: 400,
    OwnershipViolation: 404,
    ExternalResponseInvalid: 502,
    PersistenceFailure: 500,
}

_APP: FastAPI | None = None


def _status_for(exc: CapsuleError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500


def _generation_response(result: GenerationResult) -> dict:
    return GenerationResponse(
        count=result.surviving_count,
        proposed=result.proposed_count,
        dropped=result.dropped_count,
        combinations=[asdict(draft) for draft in result.combinations],
    ).model_dump()


def create_app(concierge_app: CapsuleConciergeApp | None = None) -> FastAPI:
    """Build the FastAPI application around a concierge instance."""

    concierge = concierge_app or CapsuleConciergeApp()
    app = FastAPI(title="Capsule Concierge", version="0.1.0")
    app.state.concierge = concierge

    @app.exception_handler(CapsuleError)
    async def capsule_error_handler(_: Request, exc: CapsuleError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    @app.get("/healthz")
    async def healthcheck() -> dict:
        """Lightweight readiness probe."""

        return {
            "status": "ok",
            "service": "capsule-concierge",
            "environment": concierge.config.environment or "local",
            "model": concierge.config.model,
        }

    @app.post("/items", status_code=201)
    def add_item(request: WardrobeItemCreate, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.add_wardrobe_item(x_user_id, request.model_dump())

    @app.get("/items")
    def list_items(x_user_id: str = Header(...)) -> list:
        return concierge.capsules.list_wardrobe_items(x_user_id)

    @app.get("/capsules")
    def list_capsules(x_user_id: str = Header(...)) -> list:
        return concierge.capsules.list_capsules(x_user_id)

    @app.post("/capsules", status_code=201)
    def create_capsule(request: CapsuleCreate, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.create_capsule(
            x_user_id,
            name=request.name,
            description=request.description,
            occasion=request.occasion,
            season=request.season,
            color_palette=request.color_palette,
        )

    @app.get("/capsules/{capsule_id}")
    def get_capsule(capsule_id: int, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.get_capsule(x_user_id, capsule_id)

    @app.delete("/capsules/{capsule_id}")
    def delete_capsule(capsule_id: int, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.delete_capsule(x_user_id, capsule_id)

    @app.post("/capsules/{capsule_id}/items")
    def add_capsule_items(capsule_id: int, request: CapsuleItemsAdd, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.add_items(x_user_id, capsule_id, request.item_ids)

    @app.delete("/capsules/{capsule_id}/items/{item_id}")
    def remove_capsule_item(capsule_id: int, item_id: int, x_user_id: str = Header(...)) -> dict:
        return concierge.capsules.remove_item(x_user_id, capsule_id, item_id)

    @app.get("/capsules/{capsule_id}/combinations")
    def list_combinations(capsule_id: int, x_user_id: str = Header(...)) -> list:
        return concierge.capsules.get_combinations(x_user_id, capsule_id)

    @app.post("/capsules/{capsule_id}/combinations/generate")
    def generate_combinations(capsule_id: int, x_user_id: str = Header(...)) -> dict:
        return _generation_response(concierge.combinations.generate_combinations(x_user_id, capsule_id))

    @app.post("/capsules/{capsule_id}/combinations/ai-suggestions")
    def generate_ai_suggestions(capsule_id: int, x_user_id: str = Header(...)) -> dict:
        return _generation_response(concierge.combinations.generate_ai_suggestions(x_user_id, capsule_id))

    return app


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    global _APP
    if _APP is None:
        _APP = create_app()
    return _APP


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
