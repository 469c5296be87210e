from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from aisle.api.v1.pantry import router as pantry_router
from aisle.api.v1.suggest import router as suggest_router
from aisle.config import Settings
from aisle.core.models import Inventory
from aisle.logging_utils import setup_logging
from aisle.services.assets import ImageAssets
from aisle.services.inventory import InventoryService
from aisle.services.llm import RecipeGenerator, RecipePipeline
from aisle.services.metrics import MetricsLogger
from aisle.services.repo.json_repo import JSONInventoryRepo, LocalBlobStore
from aisle.services.repo.memory_repo import InMemoryBlobStore, InMemoryInventoryRepo

logger = logging.getLogger(__name__)


def build_inventory_service(settings: Settings) -> InventoryService:
    if settings.store_backend == "memory":
        return InventoryService(InMemoryInventoryRepo(), ImageAssets(InMemoryBlobStore()))
    return InventoryService(JSONInventoryRepo(settings), ImageAssets(LocalBlobStore(settings)))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure data dirs exist so the file-backed stores can write
    settings: Settings = app.state.settings
    os.makedirs(settings.data_dir, exist_ok=True)
    os.makedirs(settings.images_dir, exist_ok=True)
    logger.info("Pantry API starting with %s store", settings.store_backend)
    yield

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings)
    app = FastAPI(title="'AI'sle Pantry API", version="1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.inventory = Inventory()
    app.state.inventory_service = build_inventory_service(settings)
    app.state.recipe_pipeline = RecipePipeline(RecipeGenerator(settings), MetricsLogger(settings))

    # CORS (narrow it down in .env via CORS_ALLOW_ORIGINS if you want)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(pantry_router)
    app.include_router(suggest_router)
    if settings.store_backend == "json":
        app.mount("/images", StaticFiles(directory=settings.images_dir, check_dir=False), name="images")

    if settings.telemetry_enabled:
        from aisle.telemetry import setup_telemetry
        setup_telemetry(app, settings)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready", "inventory_loaded": app.state.inventory.loaded}

    return app

app = create_app()
