from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from aisle.core.merge import with_record, without_item
from aisle.core.models import ImageUpload, Inventory, InventoryItem
from aisle.core.search import filter_items
from aisle.services.exceptions import AssetError, PersistenceError, ServiceError, ValidationError
from aisle.services.inventory import InventoryService

router = APIRouter(tags=["pantry"])

# ---- DI helpers --------------------------------------------------------------

def get_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service


async def current_inventory(request: Request, service: InventoryService) -> Inventory:
    """The app-held Inventory, loaded wholesale from the store on first use."""
    inventory: Inventory = request.app.state.inventory
    if not inventory.loaded:
        inventory = await service.load()
        request.app.state.inventory = inventory
    return inventory


def to_http_error(e: ServiceError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, AssetError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))

# ---- Routes ------------------------------------------------------------------

@router.get("/api/pantry", response_model=Inventory)
async def get_pantry(request: Request, q: str = "", service: InventoryService = Depends(get_service)):
    try:
        inventory = await current_inventory(request, service)
    except PersistenceError as e:
        raise to_http_error(e)
    return Inventory(items=filter_items(inventory.items, q), loaded=True)


@router.post("/api/pantry/refresh", response_model=Inventory)
async def refresh_pantry(request: Request, service: InventoryService = Depends(get_service)):
    try:
        request.app.state.inventory = await service.load()
    except PersistenceError as e:
        raise to_http_error(e)
    return request.app.state.inventory


@router.post("/api/pantry/items", response_model=InventoryItem)
async def add_item(
    request: Request,
    name: str = Form(...),
    quantity: str = Form("0"),
    image: Optional[UploadFile] = File(None, description="Image file for the blob store"),
    image_data: Optional[str] = Form(None, description="Inline data: URL, e.g. a camera capture"),
    service: InventoryService = Depends(get_service),
):
    image_input = image_data or None
    if image is not None and image.filename:
        image_input = ImageUpload(
            filename=image.filename,
            content=await image.read(),
            content_type=image.content_type,
        )
    try:
        inventory = await current_inventory(request, service)
        item = await service.add_item(inventory, name, quantity, image_input)
    except ServiceError as e:
        raise to_http_error(e)
    # Fold into the view as it is now; other requests may have changed it meanwhile
    request.app.state.inventory = with_record(request.app.state.inventory, item)
    return item


@router.delete("/api/pantry/items/{item_id}")
async def delete_item(item_id: str, request: Request, service: InventoryService = Depends(get_service)):
    try:
        inventory = await current_inventory(request, service)
        await service.delete_item(inventory, item_id)
    except ValidationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ServiceError as e:
        raise to_http_error(e)
    request.app.state.inventory = without_item(request.app.state.inventory, item_id)
    return {"ok": True}
