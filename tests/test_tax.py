import datetime as dt
from decimal import Decimal

import pytest

from cgtledger.settlement.errors import ValidationFailure
from cgtledger.settlement.tax import compute_breakdown, compute_chunk
from fixtures import make_lot, make_sale


def _historical_cost_case():
    lot = make_lot(
        "v1", dt.date(2023, 1, 10), 10, price_cents=10000, rate=Decimal("0.93")
    )
    sale = make_sale(
        "s1", dt.date(2023, 6, 9), 10, price_cents=10500, rate=Decimal("0.91")
    )
    return sale, lot


def test_breakdown_uses_vest_rate_for_cost_and_sale_rate_for_proceeds():
    sale, lot = _historical_cost_case()
    b = compute_breakdown(sale, lot, 10)

    assert b.cost_basis_usd == Decimal("1000")
    assert b.gross_proceeds_usd == Decimal("1050")
    assert b.gain_usd == Decimal("50")
    assert b.cost_eur == Decimal("930")
    assert b.disposal_eur == Decimal("955.5")
    assert b.gain_eur == Decimal("25.5")
    assert b.tax_due_eur == Decimal("8.415")
    assert b.net_proceeds_eur == Decimal("947.085")


def test_chunk_result_is_rounded_half_even_from_rounded_legs():
    sale, lot = _historical_cost_case()
    r = compute_chunk(sale, lot, 10)

    assert r.cost_eur == Decimal("930.00")
    assert r.sale_eur == Decimal("955.50")
    assert r.gain_eur == Decimal("25.50")
    assert r.tax_due_eur == Decimal("8.42")
    assert r.net_proceeds_eur == Decimal("947.08")
    assert r.sale_eur - r.tax_due_eur == r.net_proceeds_eur


def test_chunk_result_carries_usd_figures_rates_and_markers():
    sale, lot = _historical_cost_case()
    r = compute_chunk(sale, lot, 4)

    assert r.disposal_id == "s1"
    assert r.acquisition_id == "v1"
    assert r.sale_date == dt.date(2023, 6, 9)
    assert r.ticker == "GOOG"
    assert r.num_shares == 4
    assert r.sale_price_usd == Decimal("420.00")
    assert r.gross_proceeds_usd == Decimal("420.00")
    assert r.book_value_usd == Decimal("400.00")
    assert r.vesting_value_usd == Decimal("400.00")
    assert r.gain_loss_usd == Decimal("20.00")
    assert r.rate_at_vest == Decimal("0.93")
    assert r.rate_at_sale == Decimal("0.91")
    assert r.completed == "Y"
    assert r.method == "FIFO"


def test_loss_yields_negative_tax_without_floor():
    lot = make_lot("v1", dt.date(2023, 1, 10), 10, price_cents=10000, rate=Decimal("0.93"))
    sale = make_sale("s1", dt.date(2023, 6, 9), 10, price_cents=9000, rate=Decimal("0.91"))

    r = compute_chunk(sale, lot, 10)

    # 900 * 0.91 = 819.00 ; 1000 * 0.93 = 930.00
    assert r.gain_loss_usd == Decimal("-100.00")
    assert r.gain_eur == Decimal("-111.00")
    assert r.tax_due_eur == Decimal("-36.63")
    assert r.net_proceeds_eur == Decimal("855.63")


def test_currency_move_can_turn_usd_gain_into_eur_loss():
    lot = make_lot("v1", dt.date(2022, 9, 1), 10, price_cents=10000, rate=Decimal("1.00"))
    sale = make_sale("s1", dt.date(2023, 6, 9), 10, price_cents=10500, rate=Decimal("0.90"))

    r = compute_chunk(sale, lot, 10)

    assert r.gain_loss_usd > 0
    assert r.gain_eur == Decimal("-55.00")


def test_custom_tax_rate():
    sale, lot = _historical_cost_case()
    r = compute_chunk(sale, lot, 10, tax_rate=Decimal("0.40"))
    assert r.tax_due_eur == Decimal("10.20")


def test_chunk_rejects_missing_rate_and_bad_quantity():
    sale, lot = _historical_cost_case()
    with pytest.raises(ValidationFailure):
        compute_chunk(sale, lot, 0)
    no_rate = make_lot("v2", dt.date(2023, 1, 10), 10, rate=Decimal("0"))
    with pytest.raises(ValidationFailure):
        compute_chunk(sale, no_rate, 1)
