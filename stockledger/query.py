"""
Search, filter and sort over an inventory snapshot.
"""
from typing import Callable, Sequence

from stockledger.schemas.inventory import InventoryItem, InventoryQuery, SortField, SortOrder


def _sort_key(field: SortField) -> Callable[[InventoryItem], object]:
    if field in (SortField.NAME, SortField.CODE):
        # String fields compare case-insensitively
        return lambda row: getattr(row, field.value).casefold()
    return lambda row: getattr(row, field.value)


def matches(row: InventoryItem, criteria: InventoryQuery) -> bool:
    """True if the row passes every predicate of the criteria."""
    if criteria.search:
        needle = criteria.search.casefold()
        if needle not in row.name.casefold() and needle not in row.code.casefold():
            return False
    if criteria.category is not None and row.category != criteria.category:
        return False
    if criteria.low_stock_only and not row.is_low_stock:
        return False
    return True


def query_inventory(snapshot: Sequence[InventoryItem], criteria: InventoryQuery = None) -> list[InventoryItem]:
    """
    Produce a filtered, sorted view of the snapshot.

    The input sequence is never modified. Sorting is stable, so rows with
    equal keys keep their snapshot order in both directions.
    """
    criteria = criteria or InventoryQuery()
    view = [row for row in snapshot if matches(row, criteria)]
    return sorted(
        view,
        key=_sort_key(criteria.sort_by),
        reverse=criteria.sort_order == SortOrder.DESC,
    )
