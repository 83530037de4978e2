from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class RateQuote:
    rate: Decimal  # EUR per 1 USD
    effective_date: dt.date  # trading day the rate was published for


class RateSource(Protocol):
    def rate_for(self, date: dt.date) -> RateQuote:  # pragma: no cover - protocol
        ...
