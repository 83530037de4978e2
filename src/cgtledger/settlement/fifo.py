from __future__ import annotations

import logging
from collections.abc import Sequence

from cgtledger.model import InventoryItem, Match

from .errors import ValidationFailure

logger = logging.getLogger(__name__)


def match_fifo(
    quantity: int, inventory: Sequence[InventoryItem]
) -> tuple[list[Match], int]:
    """Match a sale quantity against inventory in the order given.

    Returns the matches and the unmatched remainder. A positive remainder means
    the inventory ran out; the caller must treat that as a failure.
    """
    if quantity <= 0:
        raise ValidationFailure("quantity to match must be positive")

    matches: list[Match] = []
    qty_remaining = quantity
    for item in inventory:
        if qty_remaining == 0:
            break
        if item.remaining <= 0:
            continue
        take = min(qty_remaining, item.remaining)
        matches.append(Match(lot=item.lot, quantity=take))
        qty_remaining -= take
        logger.debug(
            "Matched %d shares from vest %s (%s), %d left to match",
            take,
            item.lot.id,
            item.lot.date,
            qty_remaining,
        )

    return matches, qty_remaining
