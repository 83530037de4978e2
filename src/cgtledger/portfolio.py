from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Sequence
from decimal import Decimal
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cgtledger.importers import read_sale_file, read_vest_file
from cgtledger.ledger import LedgerDatabase, LedgerStore
from cgtledger.ledger.orm import new_id
from cgtledger.model import (
    AcquisitionLot,
    Allocation,
    DisposalEvent,
    InventoryItem,
    SettlementResult,
)
from cgtledger.rates import RateSource
from cgtledger.settlement import (
    DEFAULT_TAX_RATE,
    SettlementOrchestrator,
    StoreFailure,
    ValidationFailure,
    resolve_inventory,
)

logger = logging.getLogger(__name__)


def _check_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure(f"{name} must be a whole number, got {value!r}")
    if value <= 0:
        raise ValidationFailure(f"{name} must be positive, got {value}")


class Portfolio:
    """Record vests and sales, settle sales FIFO, and read the ledger back."""

    def __init__(
        self,
        database: LedgerDatabase,
        rates: RateSource,
        *,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.database = database
        self.rates = rates
        self.settlement = SettlementOrchestrator(database, tax_rate=tax_rate)
        self._new_id = id_factory

    # -- recording -----------------------------------------------------------

    def _build_vest(
        self, date: dt.date, symbol: str, quantity: int, unit_price_cents: int
    ) -> AcquisitionLot:
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValidationFailure("vest symbol is required")
        _check_positive("quantity", quantity)
        _check_positive("unit price (cents)", unit_price_cents)
        quote = self.rates.rate_for(date)
        if quote.rate <= 0:
            raise ValidationFailure(f"non-positive exchange rate for {date}")
        return AcquisitionLot(
            id=self._new_id(),
            date=date,
            symbol=symbol,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            rate=quote.rate,
            rate_date=quote.effective_date,
        )

    def _build_sale(
        self, date: dt.date, quantity: int, unit_price_cents: int
    ) -> DisposalEvent:
        _check_positive("quantity", quantity)
        _check_positive("unit price (cents)", unit_price_cents)
        quote = self.rates.rate_for(date)
        if quote.rate <= 0:
            raise ValidationFailure(f"non-positive exchange rate for {date}")
        return DisposalEvent(
            id=self._new_id(),
            date=date,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            rate=quote.rate,
            settled=False,
            rate_date=quote.effective_date,
        )

    def _write(self, writer: Callable[[LedgerStore], None]) -> None:
        try:
            with self.database.session_scope() as session:
                writer(LedgerStore(session))
        except SQLAlchemyError as exc:
            raise StoreFailure("ledger store failure while recording") from exc

    def record_acquisition(
        self, date: dt.date, symbol: str, quantity: int, unit_price_cents: int
    ) -> AcquisitionLot:
        lot = self._build_vest(date, symbol, quantity, unit_price_cents)
        self._write(lambda store: store.add_vest(lot))
        logger.info(
            "Vest recorded: %d shares of %s on %s @ %s EUR/USD",
            lot.quantity,
            lot.symbol,
            lot.date,
            lot.rate,
        )
        return lot

    def record_disposal(
        self, date: dt.date, quantity: int, unit_price_cents: int
    ) -> DisposalEvent:
        sale = self._build_sale(date, quantity, unit_price_cents)
        self._write(lambda store: store.add_sale(sale))
        logger.info(
            "Sale recorded: %d shares on %s @ %s EUR/USD",
            sale.quantity,
            sale.date,
            sale.rate,
        )
        return sale

    def import_acquisitions(self, path: str | Path, symbol: str) -> list[AcquisitionLot]:
        """Record every vest in a release CSV in one transaction."""
        lots = [
            self._build_vest(row.date, symbol, row.quantity, row.price_cents)
            for row in read_vest_file(path)
        ]

        def add_all(store: LedgerStore) -> None:
            for lot in lots:
                store.add_vest(lot)

        self._write(add_all)
        logger.info("Imported %d vest(s) of %s from %s", len(lots), symbol, path)
        return lots

    def import_disposals(self, path: str | Path) -> list[DisposalEvent]:
        """Record every sale in a sale CSV in one transaction."""
        sales = [
            self._build_sale(row.date, row.quantity, row.price_cents)
            for row in read_sale_file(path)
        ]

        def add_all(store: LedgerStore) -> None:
            for sale in sales:
                store.add_sale(sale)

        self._write(add_all)
        logger.info("Imported %d sale(s) from %s", len(sales), path)
        return sales

    # -- settlement ----------------------------------------------------------

    def settle(self, disposal_id: str) -> list[SettlementResult]:
        return self.settlement.settle(disposal_id)

    def settle_all(self) -> list[SettlementResult]:
        """Settle every unsettled sale, oldest first; stops at the first failure."""
        pending = self._read(lambda store: store.list_sales(unsettled_only=True))
        results: list[SettlementResult] = []
        for sale in pending:
            results.extend(self.settle(sale.id))
        return results

    # -- queries -------------------------------------------------------------

    def _read(self, reader):
        try:
            with self.database.session_scope() as session:
                return reader(LedgerStore(session))
        except SQLAlchemyError as exc:
            raise StoreFailure("ledger store failure while reading") from exc

    def current_inventory(self) -> list[InventoryItem]:
        return self._read(resolve_inventory)

    def settlement_history(self) -> list[SettlementResult]:
        return self._read(lambda store: store.list_results())

    def disposals(self) -> list[DisposalEvent]:
        return self._read(lambda store: store.list_sales())

    def acquisitions(self) -> list[AcquisitionLot]:
        return self._read(lambda store: store.list_vests())

    def allocations(self, disposal_id: str | None = None) -> Sequence[Allocation]:
        return self._read(lambda store: store.list_allocations(disposal_id))
