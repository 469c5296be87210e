# aisle/core/merge.py
from __future__ import annotations

import re
from typing import Any, Optional

from aisle.services.exceptions import ValidationError

from .models import Inventory, InventoryItem


_DIGITS = re.compile(r"^\+?[0-9]+$")


def parse_quantity(value: Any) -> int:
    """
    Coerce a user-supplied quantity to a non-negative base-10 integer.

    Accepts ints, integral floats and digit strings ("3", " +12 "). Anything
    else raises ValidationError instead of degrading to 0.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Quantity must be a whole number, got {value!r}")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"Quantity must be a whole number, got {value!r}")
        qty = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DIGITS.match(text):
            raise ValidationError(f"Quantity must be a whole number, got {value!r}")
        qty = int(text, 10)
    else:
        raise ValidationError(f"Quantity must be a whole number, got {value!r}")
    if qty < 0:
        raise ValidationError(f"Quantity cannot be negative, got {qty}")
    return qty


def validate_name(name: Optional[str]) -> str:
    """Reject blank names. The name is returned untouched: it is the merge key as typed."""
    if name is None or not name.strip():
        raise ValidationError("Item name cannot be blank")
    return name


def find_by_name(inventory: Inventory, name: str) -> Optional[InventoryItem]:
    """First record whose name matches exactly (case-sensitive, no trimming)."""
    return next((it for it in inventory.items if it.name == name), None)


def find_by_id(inventory: Inventory, item_id: str) -> Optional[InventoryItem]:
    return next((it for it in inventory.items if it.id == item_id), None)


def with_item(inventory: Inventory, item: InventoryItem) -> Inventory:
    """Return a new Inventory with `item` appended."""
    return inventory.model_copy(update={"items": [*inventory.items, item]})


def with_record(inventory: Inventory, item: InventoryItem) -> Inventory:
    """Fold a persisted record into `inventory`: replace it by id if present, else append."""
    if find_by_id(inventory, item.id) is None:
        return with_item(inventory, item)
    items = [item if it.id == item.id else it for it in inventory.items]
    return inventory.model_copy(update={"items": items})


def without_item(inventory: Inventory, item_id: str) -> Inventory:
    return inventory.model_copy(update={"items": [it for it in inventory.items if it.id != item_id]})
