"""Test fixtures for lots, sales and rate sources.

Production code records vests and sales through Portfolio, which stamps the
rate looked up for the date. Pure engine tests need lightweight domain
objects and a rate source that never touches the network.
"""

from __future__ import annotations

import datetime as dt
import itertools
from decimal import Decimal

from cgtledger.model import AcquisitionLot, DisposalEvent, InventoryItem
from cgtledger.rates import RateQuote
from cgtledger.settlement.errors import RateUnavailable

DEFAULT_RATE = Decimal("0.92")


class StaticRates:
    """RateSource backed by a dict; unknown dates get ``default``."""

    def __init__(self, rates: dict[dt.date, Decimal] | None = None, default=DEFAULT_RATE):
        self.rates = dict(rates or {})
        self.default = default
        self.calls: list[dt.date] = []

    def rate_for(self, date: dt.date) -> RateQuote:
        self.calls.append(date)
        if date in self.rates:
            return RateQuote(rate=self.rates[date], effective_date=date)
        if self.default is None:
            raise RateUnavailable(f"no rate for {date}")
        return RateQuote(rate=self.default, effective_date=date)


def sequential_ids(prefix: str = "id"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter):04d}"


def make_lot(
    lot_id: str,
    date: dt.date,
    quantity: int,
    *,
    symbol: str = "GOOG",
    price_cents: int = 10000,
    rate: Decimal = DEFAULT_RATE,
) -> AcquisitionLot:
    return AcquisitionLot(
        id=lot_id,
        date=date,
        symbol=symbol,
        quantity=quantity,
        unit_price_cents=price_cents,
        rate=rate,
        rate_date=date,
    )


def make_sale(
    sale_id: str,
    date: dt.date,
    quantity: int,
    *,
    price_cents: int = 10500,
    rate: Decimal = DEFAULT_RATE,
    settled: bool = False,
) -> DisposalEvent:
    return DisposalEvent(
        id=sale_id,
        date=date,
        quantity=quantity,
        unit_price_cents=price_cents,
        rate=rate,
        settled=settled,
        rate_date=date,
    )


def inventory_of(*lots: AcquisitionLot, remaining: dict[str, int] | None = None):
    remaining = remaining or {}
    return [InventoryItem(lot=lot, remaining=remaining.get(lot.id, lot.quantity)) for lot in lots]


RELEASE_CSV = """\
Vest Date,Order Number,Plan,Type,Status,Price,Quantity,Net Cash Proceeds,Net Share Proceeds,Tax Payment Method
25-Nov-2025,RB9995EE17,GSU Class C,Release,Staged,$318.47,14,$0.00,7,Fractional Shares
25-Oct-2025,RB1234AB12,GSU Class C,Release,Staged,"$1,251.10",3,$0.00,2,Fractional Shares
"""

SALE_CSV = """\
Execution Date,Order Number,Plan,Type,Order Status,Price,Quantity,Net Amount,Net Share Proceeds,Tax Payment Method
18-Mar-2025,WBC8F81C195-1EE,Cash,Sale,Complete,$171.25,-179,"$30,653.05",0,N/A
"""
