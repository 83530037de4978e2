from __future__ import annotations

import bisect
import csv
import datetime as dt
import logging
from decimal import Decimal, DivisionByZero
from pathlib import Path

from cgtledger.conv import parse_date, to_dec_strict
from cgtledger.settlement.errors import RateUnavailable

from .base import RateQuote

logger = logging.getLogger(__name__)

# Rates before this many days of the requested date are considered stale.
MAX_FALLBACK_DAYS = 10


class FxTable:
    """Date-indexed USD reference rates loaded from CSV (base currency EUR).

    Accepted CSV schema, ECB convention:
      date,currency,rate            # rate = USD units per 1 EUR

    Rows for other currencies are ignored. Stored internally as EUR per 1 USD.
    """

    CURRENCY = "USD"

    def __init__(self, max_fallback_days: int = MAX_FALLBACK_DAYS):
        self.data: dict[str, Decimal] = {}
        self.date_index: list[str] = []
        self.max_fallback_days = max_fallback_days

    @classmethod
    def from_csv(cls, path: str | Path, **kwargs) -> FxTable:
        inst = cls(**kwargs)
        with open(path, encoding="utf-8", newline="") as fp:
            reader = csv.DictReader(fp)
            fields = set(reader.fieldnames or [])
            required = {"date", "currency", "rate"}
            if not required.issubset(fields):
                missing = required - fields
                raise ValueError(f"FX table missing columns: {sorted(missing)}")

            for line_no, row in enumerate(reader, start=2):
                try:
                    d = parse_date(row["date"] or "").isoformat()
                except ValueError as exc:
                    raise ValueError(f"FX table line {line_no}: {exc}") from exc
                ccy = row["currency"].strip().upper()
                if ccy != cls.CURRENCY:
                    continue

                usd_per_eur = to_dec_strict(row["rate"])  # e.g., 1 EUR = 1.08 USD
                if usd_per_eur <= 0:
                    raise ValueError(
                        f"Encountered non-positive FX rate {usd_per_eur} on {d}"
                    )
                try:
                    inst.data[d] = Decimal("1") / usd_per_eur
                except DivisionByZero as exc:
                    raise ValueError(f"Invalid zero FX rate on {d}") from exc

        inst.date_index = sorted(inst.data.keys())
        logger.info("Loaded %d USD reference rates from %s", len(inst.data), path)
        return inst

    def add_rate(self, date: dt.date, eur_per_usd: Decimal) -> None:
        if eur_per_usd <= 0:
            raise ValueError(f"Encountered non-positive FX rate {eur_per_usd} on {date}")
        d = date.isoformat()
        if d not in self.data:
            bisect.insort(self.date_index, d)
        self.data[d] = eur_per_usd

    def has_rate_exact(self, date: dt.date) -> bool:
        return date.isoformat() in self.data

    def get_rate(self, date: dt.date) -> Decimal | None:
        quote = self._lookup(date)
        return quote.rate if quote is not None else None

    def rate_for(self, date: dt.date) -> RateQuote:
        """Return the rate for ``date``.

        If the exact date isn't available, falls back to the nearest previous
        available date (weekends/holidays), up to ``max_fallback_days`` back.
        """
        quote = self._lookup(date)
        if quote is None:
            raise RateUnavailable(f"no USD/EUR rate on or before {date}")
        if quote.effective_date != date:
            logger.info(
                "No rate for %s; using rate from %s: %s",
                date,
                quote.effective_date,
                quote.rate,
            )
        return quote

    def _lookup(self, date: dt.date) -> RateQuote | None:
        d = date.isoformat()
        if d in self.data:
            return RateQuote(rate=self.data[d], effective_date=date)
        # Find the latest date <= d in sorted list
        pos = bisect.bisect_right(self.date_index, d)
        if pos == 0:
            return None
        found = self.date_index[pos - 1]
        effective = parse_date(found)
        if (date - effective).days > self.max_fallback_days:
            return None
        return RateQuote(rate=self.data[found], effective_date=effective)
