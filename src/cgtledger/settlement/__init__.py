from .errors import (
    AlreadySettled,
    DisposalNotFound,
    InsufficientInventory,
    RateUnavailable,
    SettlementError,
    StoreFailure,
    ValidationFailure,
)
from .fifo import match_fifo
from .inventory import resolve_inventory
from .orchestrator import SettlementOrchestrator, validate_disposal
from .tax import DEFAULT_TAX_RATE, compute_breakdown, compute_chunk

__all__ = [
    "AlreadySettled",
    "DisposalNotFound",
    "InsufficientInventory",
    "RateUnavailable",
    "SettlementError",
    "StoreFailure",
    "ValidationFailure",
    "match_fifo",
    "resolve_inventory",
    "SettlementOrchestrator",
    "validate_disposal",
    "DEFAULT_TAX_RATE",
    "compute_breakdown",
    "compute_chunk",
]
