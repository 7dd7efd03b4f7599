from .unit_of_work import UnitOfWork
from .notification_service import NotificationService
from .chain_adapter import ChainAdapter, FeeEstimate, TxReference
from .secret_store import SecretStore

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "ChainAdapter",
    "FeeEstimate",
    "TxReference",
    "SecretStore",
]
