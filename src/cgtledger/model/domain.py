from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal

METHOD_FIFO = "FIFO"
COMPLETED = "Y"


@dataclass(frozen=True)
class AcquisitionLot:
    """Shares received on a date (a vest). Immutable once recorded."""

    id: str
    date: dt.date
    symbol: str
    quantity: int  # whole shares
    unit_price_cents: int  # USD minor units per share
    rate: Decimal  # EUR per 1 USD on the effective rate date
    rate_date: dt.date | None = None


@dataclass(frozen=True)
class DisposalEvent:
    """Shares sold on a date. Only the settled flag ever changes."""

    id: str
    date: dt.date
    quantity: int
    unit_price_cents: int
    rate: Decimal
    settled: bool = False
    rate_date: dt.date | None = None


@dataclass(frozen=True)
class Allocation:
    disposal_id: str
    acquisition_id: str
    quantity: int


@dataclass(frozen=True)
class InventoryItem:
    lot: AcquisitionLot
    remaining: int  # quantity not yet allocated to any disposal


@dataclass(frozen=True)
class Match:
    lot: AcquisitionLot
    quantity: int


@dataclass(frozen=True)
class ChunkBreakdown:
    """Unrounded tax arithmetic for one matched chunk."""

    quantity: int
    gross_proceeds_usd: Decimal
    cost_basis_usd: Decimal
    gain_usd: Decimal
    cost_eur: Decimal
    disposal_eur: Decimal
    gain_eur: Decimal
    tax_due_eur: Decimal
    net_proceeds_eur: Decimal


@dataclass(frozen=True)
class SettlementResult:
    """Stored tax breakdown of one sale-to-vest chunk (money rounded to cents)."""

    disposal_id: str
    acquisition_id: str
    sale_date: dt.date
    ticker: str
    num_shares: int
    sale_price_usd: Decimal  # USD sale proceeds for the chunk
    gain_loss_usd: Decimal
    book_value_usd: Decimal  # USD cost basis for the chunk
    rate_at_vest: Decimal
    gross_proceeds_usd: Decimal
    vesting_value_usd: Decimal  # USD cost basis at acquisition
    rate_at_sale: Decimal
    cost_eur: Decimal
    sale_eur: Decimal
    gain_eur: Decimal
    tax_due_eur: Decimal  # negative for a loss; no floor at zero
    net_proceeds_eur: Decimal
    completed: str = COMPLETED
    method: str = METHOD_FIFO
