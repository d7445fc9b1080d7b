"""HTTP surface for the model catalog."""

from fastapi import APIRouter, Depends, FastAPI, Query

from ai_agent.catalog import ModelCatalog, default_catalog
from ai_agent.types import ModelsResponse

router = APIRouter()


def get_catalog() -> ModelCatalog:
    return default_catalog


@router.get("/api/ai/models", response_model=ModelsResponse, response_model_exclude_none=True)
async def list_models(
    provider: str = Query("openai"),
    api_key: str | None = Query(None, alias="apiKey"),
    catalog: ModelCatalog = Depends(get_catalog),
) -> ModelsResponse:
    """List models for a provider, served from cache when fresh"""
    return await catalog.get(provider or "openai", api_key)


def create_app() -> FastAPI:
    app = FastAPI(title="AI Agent")
    app.include_router(router)
    return app
