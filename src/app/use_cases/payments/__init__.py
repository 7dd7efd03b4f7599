"""Payment detection and sweep use cases"""
from .watch_payments import WatchPayments
from .sweep_invoice import SweepInvoice
from .sweep_strategies import (
    SWEEP_STRATEGIES,
    NativeSweepStrategy,
    TokenSweepStrategy,
    SweepContext,
    SweepExecution,
    SweepStrategy,
)
from .dtos import WatchCycleResultDTO, SweepOutcome, SweepResultDTO, SweepBatchResultDTO

__all__ = [
    "WatchPayments",
    "SweepInvoice",
    "SWEEP_STRATEGIES",
    "NativeSweepStrategy",
    "TokenSweepStrategy",
    "SweepContext",
    "SweepExecution",
    "SweepStrategy",
    "WatchCycleResultDTO",
    "SweepOutcome",
    "SweepResultDTO",
    "SweepBatchResultDTO",
]
