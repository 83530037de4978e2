from __future__ import annotations


class SettlementError(Exception):
    """Base class for every failure surfaced by the settlement engine."""


class ValidationFailure(SettlementError, ValueError):
    """Input rejected before any inventory resolution (bad quantity, price, rate)."""


class DisposalNotFound(SettlementError, LookupError):
    def __init__(self, disposal_id: str) -> None:
        super().__init__(f"sale {disposal_id} does not exist")
        self.disposal_id = disposal_id


class AlreadySettled(SettlementError):
    def __init__(self, disposal_id: str) -> None:
        super().__init__(f"sale {disposal_id} is already settled")
        self.disposal_id = disposal_id


class InsufficientInventory(SettlementError):
    """Remaining vested shares cannot cover the sale; nothing was written."""

    def __init__(self, disposal_id: str, requested: int, short_by: int) -> None:
        super().__init__(
            f"insufficient vest inventory to cover sale {disposal_id} of "
            f"{requested} shares (short by {short_by})"
        )
        self.disposal_id = disposal_id
        self.requested = requested
        self.short_by = short_by


class StoreFailure(SettlementError):
    """Ledger read/write failed; the transaction was rolled back and may be retried."""


class RateUnavailable(ValidationFailure):
    """No USD->EUR reference rate could be found for a date."""
