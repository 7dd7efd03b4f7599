from .base import BaseModel, generate_uuid
from .asset import AssetFamily, AssetParams, Chain
from .invoice import Invoice, InvoiceStatus
from .derivation_counter import DerivationCounter
from .invoice_event import InvoiceEvent, InvoiceEventType
from .invoice_lifecycle import LifecycleActor

__all__ = [
    "BaseModel",
    "generate_uuid",
    "AssetFamily",
    "AssetParams",
    "Chain",
    "Invoice",
    "InvoiceStatus",
    "DerivationCounter",
    "InvoiceEvent",
    "InvoiceEventType",
    "LifecycleActor",
]
