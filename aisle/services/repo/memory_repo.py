from __future__ import annotations

import itertools
from typing import Dict, List, Optional

from aisle.core.models import InventoryItem
from aisle.services.exceptions import AssetError, PersistenceError
from aisle.services.repo.base import BlobStore, InventoryRepo


class InMemoryInventoryRepo(InventoryRepo):
    """Process-local document store; used by tests and STORE_BACKEND=memory."""

    def __init__(self, items: Optional[List[InventoryItem]] = None):
        self._ids = itertools.count(1)
        self.docs: Dict[str, dict] = {}
        self.writes: List[tuple] = []
        for it in items or []:
            self.docs[it.id or self._next_id()] = it.document()

    def _next_id(self) -> str:
        return f"item-{next(self._ids)}"

    async def get_all(self) -> List[InventoryItem]:
        return [InventoryItem(id=doc_id, **doc) for doc_id, doc in self.docs.items()]

    async def create(self, item: InventoryItem) -> InventoryItem:
        doc_id = self._next_id()
        self.docs[doc_id] = item.document()
        self.writes.append(("create", doc_id))
        return item.model_copy(update={"id": doc_id})

    async def update(self, item_id: str, fields: dict) -> None:
        if item_id not in self.docs:
            raise PersistenceError(f"No document {item_id!r} in inventory")
        self.docs[item_id].update(fields)
        self.writes.append(("update", item_id))

    async def delete(self, item_id: str) -> None:
        self.docs.pop(item_id, None)
        self.writes.append(("delete", item_id))


class InMemoryBlobStore(BlobStore):
    URL_PREFIX = "memory://"

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    def owns(self, reference: Optional[str]) -> bool:
        return bool(reference) and reference.startswith(self.URL_PREFIX)

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        self.blobs[path] = content
        return self.URL_PREFIX + path

    async def delete(self, url: str) -> None:
        path = url[len(self.URL_PREFIX):]
        if path not in self.blobs:
            raise AssetError(f"No blob at {path!r}")
        del self.blobs[path]
