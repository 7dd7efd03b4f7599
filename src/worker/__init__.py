"""Background workers for payment detection and treasury sweeps"""
from .payment_watcher import PaymentWatcherWorker
from .sweeper import SweeperWorker

__all__ = ["PaymentWatcherWorker", "SweeperWorker"]
