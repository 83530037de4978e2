from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from cgtledger.model import InventoryItem, SettlementResult

logger = logging.getLogger(__name__)

TOTAL_KEYS = (
    "shares",
    "proceeds_usd",
    "cost_usd",
    "gain_usd",
    "cost_eur",
    "sale_eur",
    "gain_eur",
    "tax_due_eur",
    "net_proceeds_eur",
)


@dataclass
class ReportBuilder:
    """Collect settled chunks (optionally for one tax year) and aggregate them.

    Losses are carried through as negative gains and negative tax; nothing is
    netted or carried forward here.
    """

    year: int | None = None

    def __post_init__(self) -> None:
        self.results: list[SettlementResult] = []
        self.inventory: list[InventoryItem] = []
        self.totals: dict[str, Decimal] = {key: Decimal("0") for key in TOTAL_KEYS}
        self.symbol_totals: defaultdict[str, dict[str, Decimal]] = defaultdict(
            lambda: {key: Decimal("0") for key in TOTAL_KEYS}
        )

    def add_result(self, result: SettlementResult) -> bool:
        """Add one chunk; returns False if it falls outside the report year."""
        if self.year is not None and result.sale_date.year != self.year:
            return False
        self.results.append(result)
        for bucket in (self.totals, self.symbol_totals[result.ticker]):
            bucket["shares"] += result.num_shares
            bucket["proceeds_usd"] += result.gross_proceeds_usd
            bucket["cost_usd"] += result.book_value_usd
            bucket["gain_usd"] += result.gain_loss_usd
            bucket["cost_eur"] += result.cost_eur
            bucket["sale_eur"] += result.sale_eur
            bucket["gain_eur"] += result.gain_eur
            bucket["tax_due_eur"] += result.tax_due_eur
            bucket["net_proceeds_eur"] += result.net_proceeds_eur
        return True

    def add_results(self, results: Iterable[SettlementResult]) -> int:
        added = sum(1 for r in results if self.add_result(r))
        logger.debug("Report for %s: %d settled chunk(s)", self.year or "all years", added)
        return added

    def set_inventory(self, items: list[InventoryItem]) -> None:
        self.inventory = items
