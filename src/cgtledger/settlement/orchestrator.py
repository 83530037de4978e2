from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from cgtledger.ledger import LedgerDatabase, LedgerStore
from cgtledger.model import Allocation, DisposalEvent, SettlementResult
from cgtledger.money import quantize_money

from .errors import (
    AlreadySettled,
    DisposalNotFound,
    InsufficientInventory,
    SettlementError,
    StoreFailure,
    ValidationFailure,
)
from .fifo import match_fifo
from .inventory import resolve_inventory
from .tax import DEFAULT_TAX_RATE, compute_chunk

logger = logging.getLogger(__name__)


def validate_disposal(disposal: DisposalEvent) -> None:
    if disposal.quantity <= 0:
        raise ValidationFailure(f"sale {disposal.id} has non-positive quantity")
    if disposal.unit_price_cents <= 0:
        raise ValidationFailure(f"sale {disposal.id} has non-positive price")
    if disposal.rate is None or disposal.rate <= 0:
        raise ValidationFailure(f"sale {disposal.id} has no usable exchange rate")


class SettlementOrchestrator:
    """Settle one sale against the oldest remaining vests in a single transaction.

    Either every allocation, every result row and the settled flag are written
    together, or nothing is.
    """

    def __init__(
        self, database: LedgerDatabase, *, tax_rate: Decimal = DEFAULT_TAX_RATE
    ) -> None:
        self.database = database
        self.tax_rate = tax_rate

    def settle(self, disposal_id: str) -> list[SettlementResult]:
        try:
            with self.database.session_scope() as session:
                results = self._settle(LedgerStore(session), disposal_id)
        except SettlementError as exc:
            logger.error("Settlement of sale %s failed: %s", disposal_id, exc)
            raise
        except SQLAlchemyError as exc:
            logger.error("Settlement of sale %s aborted by store: %s", disposal_id, exc)
            raise StoreFailure(f"ledger store failure settling {disposal_id}") from exc

        self._log_summary(results)
        return results

    def _settle(self, store: LedgerStore, disposal_id: str) -> list[SettlementResult]:
        disposal = store.get_sale(disposal_id, lock=True)
        if disposal is None:
            raise DisposalNotFound(disposal_id)
        if disposal.settled:
            raise AlreadySettled(disposal_id)
        validate_disposal(disposal)

        logger.info(
            "Processing sale %s: %d shares on %s", disposal.id, disposal.quantity, disposal.date
        )

        store.lock_vests()
        inventory = resolve_inventory(store)
        matches, short_by = match_fifo(disposal.quantity, inventory)
        if short_by > 0:
            raise InsufficientInventory(disposal.id, disposal.quantity, short_by)

        results = [
            compute_chunk(disposal, m.lot, m.quantity, self.tax_rate) for m in matches
        ]
        for m, result in zip(matches, results):
            store.add_allocation(
                Allocation(
                    disposal_id=disposal.id,
                    acquisition_id=m.lot.id,
                    quantity=m.quantity,
                )
            )
            store.add_result(result)
            logger.debug(
                "Allocated %d shares of vest %s (%s, rate %s) to sale %s",
                m.quantity,
                m.lot.id,
                m.lot.date,
                m.lot.rate,
                disposal.id,
            )
        store.flush()

        if not store.mark_settled(disposal.id):
            # Another transaction flipped the flag first.
            raise AlreadySettled(disposal.id)
        return results

    @staticmethod
    def _log_summary(results: list[SettlementResult]) -> None:
        if not results:
            return
        disposal_eur = sum((r.sale_eur for r in results), Decimal("0"))
        cost_eur = sum((r.cost_eur for r in results), Decimal("0"))
        tax_eur = sum((r.tax_due_eur for r in results), Decimal("0"))
        logger.info(
            "Settled sale %s on %s across %d vest(s): disposal EUR %s, cost EUR %s, "
            "gain EUR %s, tax due EUR %s",
            results[0].disposal_id,
            results[0].sale_date,
            len(results),
            quantize_money(disposal_eur),
            quantize_money(cost_eur),
            quantize_money(disposal_eur - cost_eur),
            quantize_money(tax_eur),
        )
