from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from cgtledger.model import AcquisitionLot, InventoryItem


class InventorySource(Protocol):
    def vests_with_consumed(self) -> Iterable[tuple[AcquisitionLot, int]]:
        ...


def fifo_order_key(lot: AcquisitionLot) -> tuple:
    """Oldest vest first; equal dates fall back to the vest id."""
    return (lot.date, lot.id)


def remaining_inventory(
    rows: Iterable[tuple[AcquisitionLot, int]],
) -> list[InventoryItem]:
    items: list[InventoryItem] = []
    for lot, consumed in rows:
        remaining = lot.quantity - consumed
        if remaining > 0:
            items.append(InventoryItem(lot=lot, remaining=remaining))
    items.sort(key=lambda item: fifo_order_key(item.lot))
    return items


def resolve_inventory(source: InventorySource) -> list[InventoryItem]:
    """Vests that still hold unsold shares, ordered for FIFO matching."""
    return remaining_inventory(source.vests_with_consumed())
