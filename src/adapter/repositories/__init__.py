from .invoice_repository import SqlAlchemyInvoiceRepository
from .invoice_event_repository import SqlAlchemyInvoiceEventRepository
from .derivation_counter_repository import SqlAlchemyDerivationCounterRepository

__all__ = [
    "SqlAlchemyInvoiceRepository",
    "SqlAlchemyInvoiceEventRepository",
    "SqlAlchemyDerivationCounterRepository",
]
