from __future__ import annotations

import logging
from typing import Any

from aisle.core.merge import find_by_id, find_by_name, parse_quantity, validate_name
from aisle.core.models import ImageUpload, Inventory, InventoryItem
from aisle.services.assets import ImageAssets, ImageInput
from aisle.services.exceptions import AssetError, ServiceError, ValidationError
from aisle.services.repo.base import InventoryRepo

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Upsert-by-name over the document store.

    Operations read the caller's Inventory for lookups and return the record
    they persisted (or deleted). The caller folds that into whatever its view
    is when the call completes, via `with_record` / `without_item`, so
    overlapping operations never drop each other's results. On failure
    nothing is returned and the view stays as it was.

    Two concurrent adds of a brand-new name can both miss in their lookup and
    both insert: name uniqueness is best-effort, not enforced by the store.
    """

    def __init__(self, repo: InventoryRepo, assets: ImageAssets):
        self.repo = repo
        self.assets = assets

    async def load(self) -> Inventory:
        try:
            items = await self.repo.get_all()
        except ServiceError as e:
            logger.error("Loading inventory failed: %s", e)
            raise
        logger.info("Loaded %d inventory items", len(items))
        return Inventory(items=items, loaded=True)

    async def add_item(
        self,
        inventory: Inventory,
        name: str,
        quantity: Any,
        image: ImageInput = None,
    ) -> InventoryItem:
        """
        Add `quantity` of `name` and return the updated or created record.

        An existing record with exactly this name gets its quantity bumped
        (only the quantity field is written, and `image` is ignored). Otherwise
        the image is resolved first and a new record is inserted; if the insert
        fails, a blob uploaded by this call is removed again.
        Exactly one store write per call.
        """
        try:
            name = validate_name(name)
            qty = parse_quantity(quantity)

            existing = find_by_name(inventory, name)
            if existing is not None:
                total = existing.quantity + qty
                await self.repo.update(existing.id, {"quantity": total})
                logger.info("Merged %d into %r (now %d)", qty, name, total)
                return existing.model_copy(update={"quantity": total})

            image_ref = await self.assets.resolve_image(image)
            try:
                created = await self.repo.create(InventoryItem(name=name, quantity=qty, image=image_ref))
            except ServiceError:
                if isinstance(image, ImageUpload):
                    await self._discard_upload(image_ref)
                raise
            logger.info("Created %r x%d as %s", name, qty, created.id)
            return created
        except ServiceError as e:
            logger.error("Adding item %r failed: %s", name, e)
            raise

    async def _discard_upload(self, image_ref: str) -> None:
        try:
            await self.assets.release_image(image_ref)
        except AssetError as e:
            logger.warning("Insert failed and uploaded image %s could not be removed: %s", image_ref, e)

    async def delete_item(self, inventory: Inventory, item_id: str) -> InventoryItem:
        """
        Delete the record, then its image blob; returns the deleted record.

        If the blob delete fails the record is still gone and the blob is left
        orphaned; that is logged, not raised.
        """
        item = find_by_id(inventory, item_id)
        if item is None:
            logger.error("Deleting item %r failed: not in inventory", item_id)
            raise ValidationError(f"Unknown item id {item_id!r}")

        try:
            await self.repo.delete(item_id)
        except ServiceError as e:
            logger.error("Deleting item %r failed: %s", item_id, e)
            raise

        try:
            await self.assets.release_image(item.image)
        except AssetError as e:
            logger.warning("Item %r deleted but its image was orphaned: %s", item_id, e)

        logger.info("Deleted %r (%s)", item.name, item_id)
        return item
