"""SQLAlchemy tables backing the ledger.

Vests and sales are append-only. ``sale_lots`` links a sale to the vests it
consumed, keyed by the (sale_id, vest_id) pair. ``settled_sales`` holds one
tax breakdown row per link.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from cgtledger.model import (
    AcquisitionLot,
    Allocation,
    DisposalEvent,
    SettlementResult,
)
from cgtledger.money import cents_to_units, units_to_cents


def new_id() -> str:
    return str(uuid4())


class DecimalString(TypeDecorator):
    """Decimal stored as its text form so rates survive SQLite without float loss."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return Decimal(value)
        return None


class Cents(TypeDecorator):
    """Decimal currency units stored as integer minor units."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return units_to_cents(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return cents_to_units(value)
        return None


class Base(DeclarativeBase):
    pass


class VestRow(Base):
    __tablename__ = "vests"
    __table_args__ = (
        Index("idx_vests_fifo", "date", "id"),
        CheckConstraint("quantity > 0", name="ck_vests_quantity_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    strike_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    ecb_rate: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)
    rate_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)

    def to_domain(self) -> AcquisitionLot:
        return AcquisitionLot(
            id=self.id,
            date=self.date,
            symbol=self.symbol,
            quantity=self.quantity,
            unit_price_cents=self.strike_price_cents,
            rate=self.ecb_rate,
            rate_date=self.rate_date,
        )

    @classmethod
    def from_domain(cls, lot: AcquisitionLot) -> VestRow:
        return cls(
            id=lot.id,
            date=lot.date,
            symbol=lot.symbol,
            quantity=lot.quantity,
            strike_price_cents=lot.unit_price_cents,
            ecb_rate=lot.rate,
            rate_date=lot.rate_date,
        )


class SaleRow(Base):
    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    ecb_rate: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)
    rate_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    is_settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_domain(self) -> DisposalEvent:
        return DisposalEvent(
            id=self.id,
            date=self.date,
            quantity=self.quantity,
            unit_price_cents=self.price_cents,
            rate=self.ecb_rate,
            settled=self.is_settled,
            rate_date=self.rate_date,
        )

    @classmethod
    def from_domain(cls, disposal: DisposalEvent) -> SaleRow:
        return cls(
            id=disposal.id,
            date=disposal.date,
            quantity=disposal.quantity,
            price_cents=disposal.unit_price_cents,
            ecb_rate=disposal.rate,
            rate_date=disposal.rate_date,
            is_settled=disposal.settled,
        )


class SaleLotRow(Base):
    __tablename__ = "sale_lots"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_lots_quantity_positive"),
        Index("idx_sale_lots_vest", "vest_id"),
    )

    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id"), primary_key=True
    )
    vest_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vests.id"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_domain(self) -> Allocation:
        return Allocation(
            disposal_id=self.sale_id,
            acquisition_id=self.vest_id,
            quantity=self.quantity,
        )


class SettledSaleRow(Base):
    __tablename__ = "settled_sales"
    __table_args__ = (Index("idx_settled_sales_date", "sale_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id"), nullable=False
    )
    vest_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vests.id"), nullable=False
    )
    sale_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    ticker: Mapped[str] = mapped_column(String(16), nullable=False)
    num_shares: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_price_usd: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    gain_loss_usd: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    book_value_usd: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    exchange_rate_at_vest: Mapped[Decimal] = mapped_column(
        DecimalString(), nullable=False
    )
    gross_proceed_usd: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    vesting_value_usd: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    exchange_rate_at_sale: Mapped[Decimal] = mapped_column(
        DecimalString(), nullable=False
    )
    euro_cost_eur: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    euro_sale_eur: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    euro_gain_eur: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    cgt_tax_due_eur: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    completed: Mapped[str] = mapped_column(String(1), nullable=False)
    net_proceeds_eur: Mapped[Decimal] = mapped_column(Cents(), nullable=False)
    type: Mapped[str] = mapped_column(String(8), nullable=False)

    def to_domain(self) -> SettlementResult:
        return SettlementResult(
            disposal_id=self.sale_id,
            acquisition_id=self.vest_id,
            sale_date=self.sale_date,
            ticker=self.ticker,
            num_shares=self.num_shares,
            sale_price_usd=self.sale_price_usd,
            gain_loss_usd=self.gain_loss_usd,
            book_value_usd=self.book_value_usd,
            rate_at_vest=self.exchange_rate_at_vest,
            gross_proceeds_usd=self.gross_proceed_usd,
            vesting_value_usd=self.vesting_value_usd,
            rate_at_sale=self.exchange_rate_at_sale,
            cost_eur=self.euro_cost_eur,
            sale_eur=self.euro_sale_eur,
            gain_eur=self.euro_gain_eur,
            tax_due_eur=self.cgt_tax_due_eur,
            net_proceeds_eur=self.net_proceeds_eur,
            completed=self.completed,
            method=self.type,
        )

    @classmethod
    def from_domain(cls, result: SettlementResult) -> SettledSaleRow:
        return cls(
            sale_id=result.disposal_id,
            vest_id=result.acquisition_id,
            sale_date=result.sale_date,
            ticker=result.ticker,
            num_shares=result.num_shares,
            sale_price_usd=result.sale_price_usd,
            gain_loss_usd=result.gain_loss_usd,
            book_value_usd=result.book_value_usd,
            exchange_rate_at_vest=result.rate_at_vest,
            gross_proceed_usd=result.gross_proceeds_usd,
            vesting_value_usd=result.vesting_value_usd,
            exchange_rate_at_sale=result.rate_at_sale,
            euro_cost_eur=result.cost_eur,
            euro_sale_eur=result.sale_eur,
            euro_gain_eur=result.gain_eur,
            cgt_tax_due_eur=result.tax_due_eur,
            completed=result.completed,
            net_proceeds_eur=result.net_proceeds_eur,
            type=result.method,
        )
