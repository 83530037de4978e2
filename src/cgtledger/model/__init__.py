from .domain import (
    AcquisitionLot,
    Allocation,
    ChunkBreakdown,
    DisposalEvent,
    InventoryItem,
    Match,
    SettlementResult,
)

__all__ = [
    "AcquisitionLot",
    "Allocation",
    "ChunkBreakdown",
    "DisposalEvent",
    "InventoryItem",
    "Match",
    "SettlementResult",
]
