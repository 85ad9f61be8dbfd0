"""Entry point for the FastAPI-powered content service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .database import Database
from .models import CATEGORIES, Category, FilmItem, ItemPatch, SeriesItem
from .services.content_repository import ContentRepository
from .services.local_store import LocalStore
from .services.remote_store import RemoteStoreClient, RemoteStoreError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    remote_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(settings.remote_timeout_seconds or None))
    )
    database = Database(settings.database_url)
    await database.create_all()

    repository = ContentRepository(
        settings,
        RemoteStoreClient(settings, remote_http_client),
        LocalStore(database.session_factory),
    )
    result = await repository.load_catalog()
    logger.info(
        "Catalog ready (%s): %d films, %d series",
        result.status,
        len(result.catalog.films),
        len(result.catalog.series),
    )

    app.state.content_repository = repository
    app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Film and series catalog backed by a remote store with a local fallback",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_content_repository(app: FastAPI) -> ContentRepository:
    repository = getattr(app.state, "content_repository", None)
    if not isinstance(repository, ContentRepository):
        raise RuntimeError("Content repository not initialised")
    return repository


def register_routes(fastapi_app: FastAPI) -> None:
    def _category(value: str) -> Category:
        if value not in CATEGORIES:
            raise HTTPException(status_code=400, detail="Unsupported category")
        return value  # type: ignore[return-value]

    async def _json_object(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        return payload

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/content")
    async def list_content() -> dict[str, Any]:
        return get_content_repository(fastapi_app).get_catalog().to_payload()

    @fastapi_app.post("/api/content/reload")
    async def reload_content() -> dict[str, Any]:
        result = await get_content_repository(fastapi_app).load_catalog()
        return result.to_payload()

    @fastapi_app.get("/api/content/{category}/{item_id}")
    async def get_item(category: str, item_id: str) -> dict[str, Any]:
        repository = get_content_repository(fastapi_app)
        item = repository.get_item_by_id(_category(category), item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return item.to_payload()

    @fastapi_app.post("/api/content/{category}")
    async def create_item(category: str, request: Request) -> JSONResponse:
        repository = get_content_repository(fastapi_app)
        kind = _category(category)
        payload = await _json_object(request)
        model = FilmItem if kind == "film" else SeriesItem
        try:
            item = model.model_validate({**payload, "id": None})
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        try:
            created = await repository.add_item(kind, item)
        except RemoteStoreError as exc:
            raise HTTPException(status_code=502, detail=exc.body) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return JSONResponse(created.to_payload(), status_code=201)

    @fastapi_app.patch("/api/content/{category}/{item_id}")
    async def update_item(category: str, item_id: str, request: Request) -> dict[str, bool]:
        repository = get_content_repository(fastapi_app)
        kind = _category(category)
        payload = await _json_object(request)
        try:
            patch = ItemPatch.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        try:
            updated = await repository.update_item(kind, item_id, patch)
        except RemoteStoreError as exc:
            raise HTTPException(status_code=502, detail=exc.body) from exc
        except httpx.HTTPError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        if not updated:
            raise HTTPException(status_code=404, detail="Item not found")
        return {"updated": True}

    @fastapi_app.delete("/api/content/{category}/{item_id}", status_code=204)
    async def delete_item(category: str, item_id: str) -> Response:
        repository = get_content_repository(fastapi_app)
        try:
            await repository.delete_item(_category(category), item_id)
        except RemoteStoreError as exc:
            raise HTTPException(status_code=502, detail=exc.body) from exc
        except httpx.HTTPError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return Response(status_code=204)


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "novastream.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
