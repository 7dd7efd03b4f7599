"""Invoice administration use cases"""
from .issue_invoice import IssueInvoice
from .get_invoice import GetInvoice
from .list_invoices import ListInvoices
from .update_invoice_status import UpdateInvoiceStatus
from .delete_invoice import DeleteInvoice
from .redeliver_paid_event import RedeliverPaidEvent
from .dtos import (
    IssueInvoiceCommandDTO,
    PaymentDescriptorDTO,
    InvoiceResponseDTO,
    ListInvoicesResponseDTO,
    UpdateInvoiceStatusCommandDTO,
    DeleteInvoiceResponseDTO,
    RedeliverResponseDTO,
)

__all__ = [
    "IssueInvoice",
    "GetInvoice",
    "ListInvoices",
    "UpdateInvoiceStatus",
    "DeleteInvoice",
    "RedeliverPaidEvent",
    "IssueInvoiceCommandDTO",
    "PaymentDescriptorDTO",
    "InvoiceResponseDTO",
    "ListInvoicesResponseDTO",
    "UpdateInvoiceStatusCommandDTO",
    "DeleteInvoiceResponseDTO",
    "RedeliverResponseDTO",
]
