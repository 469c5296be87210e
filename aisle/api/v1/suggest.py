from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from aisle.api.v1.pantry import current_inventory, get_service, to_http_error
from aisle.core.models import RecipeRun, RecipeState
from aisle.core.search import filter_items, item_names
from aisle.services.exceptions import GenerationError, PersistenceError
from aisle.services.inventory import InventoryService
from aisle.services.llm import RecipePipeline

router = APIRouter(tags=["suggestions"])


class SuggestRequest(BaseModel):
    q: str = ""  # same search term as the pantry view


class SuggestResponse(BaseModel):
    html: str
    state: RecipeState

# ---- Dependencies ------------------------------------------------------------

def get_pipeline(request: Request) -> RecipePipeline:
    return request.app.state.recipe_pipeline

# ---- Routes ------------------------------------------------------------------

@router.post("/api/suggest_recipes", response_model=SuggestResponse)
async def suggest_recipes(
    request: Request,
    body: Optional[SuggestRequest] = None,
    pipeline: RecipePipeline = Depends(get_pipeline),
    service: InventoryService = Depends(get_service),
):
    body = body or SuggestRequest()
    try:
        inventory = await current_inventory(request, service)
    except PersistenceError as e:
        raise to_http_error(e)

    names = item_names(filter_items(inventory.items, body.q))
    try:
        html = await pipeline.generate_recipe(names)
    except GenerationError as e:
        # Upstream failure; the previous recipe stays available at /last
        raise HTTPException(status_code=502, detail=str(e))
    return SuggestResponse(html=html, state=pipeline.state)


@router.get("/api/suggest_recipes/last", response_model=RecipeRun)
def last_recipe(pipeline: RecipePipeline = Depends(get_pipeline)):
    return pipeline.snapshot()
