"""Per-chunk capital gains arithmetic.

The acquisition leg is converted at the rate frozen onto the vest and the
disposal leg at the rate frozen onto the sale, regardless of when settlement
runs.
"""

from __future__ import annotations

from decimal import Decimal

from cgtledger.model import (
    AcquisitionLot,
    ChunkBreakdown,
    DisposalEvent,
    SettlementResult,
)
from cgtledger.money import cents_to_units, convert, quantize_money

from .errors import ValidationFailure

DEFAULT_TAX_RATE = Decimal("0.33")


def _check_inputs(disposal: DisposalEvent, lot: AcquisitionLot, quantity: int) -> None:
    if quantity <= 0:
        raise ValidationFailure("matched quantity must be positive")
    if lot.rate is None or lot.rate <= 0:
        raise ValidationFailure(f"vest {lot.id} has no usable exchange rate")
    if disposal.rate is None or disposal.rate <= 0:
        raise ValidationFailure(f"sale {disposal.id} has no usable exchange rate")


def compute_breakdown(
    disposal: DisposalEvent,
    lot: AcquisitionLot,
    quantity: int,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> ChunkBreakdown:
    """Exact (unrounded) figures for one chunk."""
    _check_inputs(disposal, lot, quantity)
    gross_usd = cents_to_units(disposal.unit_price_cents * quantity)
    cost_usd = cents_to_units(lot.unit_price_cents * quantity)
    cost_eur = convert(cost_usd, lot.rate)
    disposal_eur = convert(gross_usd, disposal.rate)
    gain_eur = disposal_eur - cost_eur
    tax_due = gain_eur * tax_rate
    return ChunkBreakdown(
        quantity=quantity,
        gross_proceeds_usd=gross_usd,
        cost_basis_usd=cost_usd,
        gain_usd=gross_usd - cost_usd,
        cost_eur=cost_eur,
        disposal_eur=disposal_eur,
        gain_eur=gain_eur,
        tax_due_eur=tax_due,
        net_proceeds_eur=disposal_eur - tax_due,
    )


def compute_chunk(
    disposal: DisposalEvent,
    lot: AcquisitionLot,
    quantity: int,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> SettlementResult:
    """Rounded, storable result for one chunk.

    Both currency legs are rounded to cents first; gain, tax and net are then
    derived from the rounded legs so a row always adds up.
    """
    _check_inputs(disposal, lot, quantity)
    gross_usd = cents_to_units(disposal.unit_price_cents * quantity)
    cost_usd = cents_to_units(lot.unit_price_cents * quantity)

    cost_eur = quantize_money(convert(cost_usd, lot.rate))
    sale_eur = quantize_money(convert(gross_usd, disposal.rate))
    gain_eur = sale_eur - cost_eur
    tax_due = quantize_money(gain_eur * tax_rate)

    return SettlementResult(
        disposal_id=disposal.id,
        acquisition_id=lot.id,
        sale_date=disposal.date,
        ticker=lot.symbol,
        num_shares=quantity,
        sale_price_usd=quantize_money(gross_usd),
        gain_loss_usd=quantize_money(gross_usd - cost_usd),
        book_value_usd=quantize_money(cost_usd),
        rate_at_vest=lot.rate,
        gross_proceeds_usd=quantize_money(gross_usd),
        vesting_value_usd=quantize_money(cost_usd),
        rate_at_sale=disposal.rate,
        cost_eur=cost_eur,
        sale_eur=sale_eur,
        gain_eur=gain_eur,
        tax_due_eur=tax_due,
        net_proceeds_eur=sale_eur - tax_due,
    )
