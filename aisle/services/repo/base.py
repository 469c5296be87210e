from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional
from aisle.core.models import InventoryItem


class InventoryRepo(ABC):
    """Document store holding the `inventory` collection.

    Implementations raise PersistenceError for any store failure.
    """
    @abstractmethod
    async def get_all(self) -> List[InventoryItem]: ...
    @abstractmethod
    async def create(self, item: InventoryItem) -> InventoryItem:
        """Insert a new document and return it with the store-assigned id."""
    @abstractmethod
    async def update(self, item_id: str, fields: dict) -> None:
        """Patch only the given fields of an existing document."""
    @abstractmethod
    async def delete(self, item_id: str) -> None: ...


class BlobStore(ABC):
    """Object store for item images, addressed by path (e.g. ``images/apple.png``).

    Implementations raise AssetError for any store failure.
    """
    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Store `content` at `path` (overwriting) and return its durable URL."""
    @abstractmethod
    async def delete(self, url: str) -> None: ...
    @abstractmethod
    def owns(self, reference: Optional[str]) -> bool:
        """True if `reference` is a URL this store handed out."""
