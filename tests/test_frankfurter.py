import datetime as dt
import json
from decimal import Decimal

import pytest
import requests

from cgtledger.rates import FrankfurterClient
from cgtledger.settlement.errors import RateUnavailable


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._body = json.dumps(payload or {})

    def json(self, **kwargs):
        return json.loads(self._body, **kwargs)


class FakeSession:
    """Replays queued responses (or exceptions) and records requested URLs."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.urls = []
        self.headers = {}

    def get(self, url, params=None, timeout=None):
        self.urls.append(url)
        assert params == {"from": "USD", "to": "EUR"}
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _ok(date, rate):
    return FakeResponse(200, {"amount": 1.0, "base": "USD", "date": date, "rates": {"EUR": rate}})


def _client(responses, **kwargs):
    session = FakeSession(responses)
    sleeps = []
    client = FrankfurterClient(
        "https://rates.test/", session=session, sleep=sleeps.append, **kwargs
    )
    return client, session, sleeps


def test_rate_for_returns_decimal_rate_and_effective_date():
    client, session, _ = _client([_ok("2023-06-09", 0.91)])

    quote = client.rate_for(dt.date(2023, 6, 9))

    assert quote.rate == Decimal("0.91")
    assert quote.effective_date == dt.date(2023, 6, 9)
    assert session.urls == ["https://rates.test/2023-06-09"]


def test_rate_for_steps_back_on_404_and_missing_eur():
    client, session, _ = _client(
        [
            FakeResponse(404),
            FakeResponse(200, {"date": "2023-06-10", "rates": {}}),
            _ok("2023-06-09", 0.9234),
        ]
    )

    quote = client.rate_for(dt.date(2023, 6, 11))

    assert quote.rate == Decimal("0.9234")
    assert quote.effective_date == dt.date(2023, 6, 9)
    assert session.urls[-1] == "https://rates.test/2023-06-09"


def test_rate_for_uses_payload_date_when_api_returns_earlier_day():
    client, _, _ = _client([_ok("2023-06-09", 0.91)])
    quote = client.rate_for(dt.date(2023, 6, 10))
    assert quote.effective_date == dt.date(2023, 6, 9)


def test_network_errors_are_retried_after_a_pause():
    client, session, sleeps = _client(
        [requests.ConnectionError("reset"), _ok("2023-06-09", 0.91)]
    )

    quote = client.rate_for(dt.date(2023, 6, 9))

    assert quote.rate == Decimal("0.91")
    assert len(sleeps) == 1
    assert session.urls == ["https://rates.test/2023-06-09"] * 2


def test_server_error_raises_rate_unavailable():
    client, _, _ = _client([FakeResponse(500)])
    with pytest.raises(RateUnavailable):
        client.rate_for(dt.date(2023, 6, 9))


def test_gives_up_after_max_attempts():
    client, session, _ = _client([FakeResponse(404)] * 3, max_attempts=3)
    with pytest.raises(RateUnavailable):
        client.rate_for(dt.date(2023, 6, 9))
    assert len(session.urls) == 3


def test_quotes_are_cached_per_requested_date():
    client, session, _ = _client([_ok("2023-06-09", 0.91)])
    first = client.rate_for(dt.date(2023, 6, 9))
    second = client.rate_for(dt.date(2023, 6, 9))
    assert first == second
    assert len(session.urls) == 1


class UndecodableResponse(FakeResponse):
    def json(self, **kwargs):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_undecodable_body_raises_rate_unavailable():
    client, _, _ = _client([UndecodableResponse(200)])
    with pytest.raises(RateUnavailable, match="bad rate payload"):
        client.rate_for(dt.date(2023, 6, 9))


def test_non_object_payload_raises_rate_unavailable():
    response = FakeResponse(200)
    response._body = "[]"
    client, _, _ = _client([response])
    with pytest.raises(RateUnavailable):
        client.rate_for(dt.date(2023, 6, 9))
