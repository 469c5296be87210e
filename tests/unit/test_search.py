from aisle.core.models import InventoryItem
from aisle.core.search import filter_items, item_names


ITEMS = [
    InventoryItem(id="1", name="Apples", quantity=3),
    InventoryItem(id="2", name="Orange", quantity=1),
    InventoryItem(id="3", name="Pineapple", quantity=1),
]


def test_filter_matches_substring_case_insensitively():
    out = filter_items(ITEMS, "app")
    assert item_names(out) == ["Apples", "Pineapple"]


def test_filter_uppercase_term():
    assert item_names(filter_items(ITEMS, "ORA")) == ["Orange"]


def test_empty_term_returns_everything_in_order():
    assert filter_items(ITEMS, "") == ITEMS
    assert filter_items(ITEMS, None) == ITEMS


def test_filter_does_not_mutate_input():
    before = list(ITEMS)
    filter_items(ITEMS, "zzz")
    assert ITEMS == before


def test_no_match():
    assert filter_items(ITEMS, "kiwi") == []
