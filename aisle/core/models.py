# aisle/core/models.py
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from aisle.services.exceptions import ValidationError


# ---------- Inventory ----------

class InventoryItem(BaseModel):
    """A single pantry record as persisted in the `inventory` collection."""
    id: Optional[str] = Field(None, description="Store-assigned identifier; None until persisted")
    name: str = Field(..., min_length=1, description="Display name, also the merge key (exact match)")
    quantity: int = Field(0, ge=0, description="Non-negative whole quantity")
    image: Optional[str] = Field(None, description="Inline data: URL or blob-store URL")

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_text_quantity(cls, v: Any) -> Any:
        # Older documents hold the raw form value, e.g. "3".
        if isinstance(v, str):
            from .merge import parse_quantity
            try:
                return parse_quantity(v)
            except ValidationError as e:
                raise ValueError(str(e)) from e
        return v

    def document(self) -> dict:
        """Fields written to the store (the id lives outside the document)."""
        return {"name": self.name, "image": self.image, "quantity": self.quantity}


class Inventory(BaseModel):
    """In-memory projection of the store, owned by the caller.

    Merge transitions return a new Inventory rather than mutating this one.
    """
    items: List[InventoryItem] = Field(default_factory=list)
    loaded: bool = False


class ImageUpload(BaseModel):
    """A raw image file headed for the blob store."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


# ---------- Recipe generation ----------

class RecipeState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RecipeRun(BaseModel):
    state: RecipeState = RecipeState.IDLE
    html: Optional[str] = None
    error: Optional[str] = None
