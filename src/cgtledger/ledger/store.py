from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from cgtledger.model import (
    AcquisitionLot,
    Allocation,
    DisposalEvent,
    SettlementResult,
)

from .orm import SaleLotRow, SaleRow, SettledSaleRow, VestRow


class LedgerStore:
    """Read/write primitives over one session. No business rules live here."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- vests ---------------------------------------------------------------

    def add_vest(self, lot: AcquisitionLot) -> None:
        self.session.add(VestRow.from_domain(lot))

    def lock_vests(self) -> None:
        """Row-lock every vest for the rest of the transaction (FOR UPDATE)."""
        self.session.execute(
            select(VestRow.id).order_by(VestRow.date, VestRow.id).with_for_update()
        ).all()

    def vests_with_consumed(self) -> list[tuple[AcquisitionLot, int]]:
        """Every vest with the quantity already allocated to sales, FIFO ordered."""
        consumed = func.coalesce(func.sum(SaleLotRow.quantity), 0)
        stmt = (
            select(VestRow, consumed)
            .outerjoin(SaleLotRow, SaleLotRow.vest_id == VestRow.id)
            .group_by(VestRow.id)
            .order_by(VestRow.date, VestRow.id)
        )
        return [
            (row.to_domain(), int(used)) for row, used in self.session.execute(stmt)
        ]

    def list_vests(self) -> list[AcquisitionLot]:
        stmt = select(VestRow).order_by(VestRow.date, VestRow.id)
        return [row.to_domain() for row in self.session.scalars(stmt)]

    # -- sales ---------------------------------------------------------------

    def add_sale(self, disposal: DisposalEvent) -> None:
        self.session.add(SaleRow.from_domain(disposal))

    def get_sale(self, sale_id: str, *, lock: bool = False) -> DisposalEvent | None:
        stmt = select(SaleRow).where(SaleRow.id == sale_id)
        if lock:
            stmt = stmt.with_for_update()
        row = self.session.scalars(stmt).one_or_none()
        return row.to_domain() if row is not None else None

    def list_sales(self, *, unsettled_only: bool = False) -> list[DisposalEvent]:
        stmt = select(SaleRow)
        if unsettled_only:
            stmt = stmt.where(SaleRow.is_settled.is_(False)).order_by(
                SaleRow.date, SaleRow.id
            )
        else:
            stmt = stmt.order_by(SaleRow.date.desc(), SaleRow.id)
        return [row.to_domain() for row in self.session.scalars(stmt)]

    def mark_settled(self, sale_id: str) -> bool:
        """Flip is_settled only if it is still false. Returns whether it flipped."""
        result = self.session.execute(
            update(SaleRow)
            .where(SaleRow.id == sale_id, SaleRow.is_settled.is_(False))
            .values(is_settled=True)
        )
        return result.rowcount == 1

    # -- allocations and results ---------------------------------------------

    def add_allocation(self, allocation: Allocation) -> None:
        self.session.add(
            SaleLotRow(
                sale_id=allocation.disposal_id,
                vest_id=allocation.acquisition_id,
                quantity=allocation.quantity,
            )
        )

    def list_allocations(self, sale_id: str | None = None) -> list[Allocation]:
        stmt = select(SaleLotRow).order_by(SaleLotRow.sale_id, SaleLotRow.vest_id)
        if sale_id is not None:
            stmt = stmt.where(SaleLotRow.sale_id == sale_id)
        return [row.to_domain() for row in self.session.scalars(stmt)]

    def add_result(self, result: SettlementResult) -> None:
        self.session.add(SettledSaleRow.from_domain(result))

    def list_results(self) -> list[SettlementResult]:
        stmt = select(SettledSaleRow).order_by(
            SettledSaleRow.sale_date.desc(), SettledSaleRow.id
        )
        return [row.to_domain() for row in self.session.scalars(stmt)]

    def flush(self) -> None:
        self.session.flush()
