from .invoice_repository import InvoiceRepository
from .derivation_counter_repository import DerivationCounterRepository
from .invoice_event_repository import InvoiceEventRepository

__all__ = [
    "InvoiceRepository",
    "DerivationCounterRepository",
    "InvoiceEventRepository",
]
