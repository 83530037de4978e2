"""ECB reference rates via the public Frankfurter API.

API documentation: https://www.frankfurter.app/docs/
"""

from __future__ import annotations

import datetime as dt
import logging
import time
from collections.abc import Callable
from decimal import Decimal

import requests

from cgtledger.conv import parse_date
from cgtledger.settlement.errors import RateUnavailable

from .base import RateQuote

logger = logging.getLogger(__name__)

BASE_URL = "https://api.frankfurter.app"
MAX_ATTEMPTS = 5
RETRY_DELAY_S = 0.5
REQUEST_TIMEOUT_S = 10


class FrankfurterClient:
    """USD->EUR rate lookup that backs off to earlier days on non-trading days."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        *,
        session: requests.Session | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._cache: dict[dt.date, RateQuote] = {}

    def rate_for(self, date: dt.date) -> RateQuote:
        if date in self._cache:
            return self._cache[date]

        target = date
        for _ in range(self.max_attempts):
            url = f"{self.base_url}/{target.isoformat()}"
            try:
                response = self.session.get(
                    url,
                    params={"from": "USD", "to": "EUR"},
                    timeout=REQUEST_TIMEOUT_S,
                )
            except requests.RequestException as exc:
                logger.warning("Rate request for %s failed: %s; retrying", target, exc)
                self._sleep(RETRY_DELAY_S)
                continue

            # 404 means no publication for that day (weekend/holiday).
            if response.status_code == 404:
                target -= dt.timedelta(days=1)
                continue
            if response.status_code != 200:
                raise RateUnavailable(
                    f"rate API error for {date}: HTTP {response.status_code}"
                )

            try:
                payload = response.json(parse_float=Decimal)
            except ValueError as e:
                raise RateUnavailable(f"bad rate payload for {date}") from e
            if not isinstance(payload, dict):
                raise RateUnavailable(f"bad rate payload for {date}")
            rate = (payload.get("rates") or {}).get("EUR")
            if rate is None:
                target -= dt.timedelta(days=1)
                continue

            effective = parse_date(payload.get("date") or target.isoformat())
            quote = RateQuote(rate=Decimal(rate), effective_date=effective)
            if effective != date:
                logger.info(
                    "No rate for %s. Used rate from %s: %s", date, effective, quote.rate
                )
            self._cache[date] = quote
            return quote

        raise RateUnavailable(
            f"could not find an ECB rate for {date} within {self.max_attempts} attempts"
        )
