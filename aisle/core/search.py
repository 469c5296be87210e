# aisle/core/search.py
from __future__ import annotations

from typing import List, Optional, Sequence

from .models import InventoryItem


def filter_items(items: Sequence[InventoryItem], term: Optional[str]) -> List[InventoryItem]:
    """
    Case-insensitive substring match on item names.

    Input order is preserved and nothing is mutated. An empty term returns
    every item.
    """
    if not term:
        return list(items)
    needle = term.lower()
    return [it for it in items if needle in it.name.lower()]


def item_names(items: Sequence[InventoryItem]) -> List[str]:
    return [it.name for it in items]
