"""Domain and chain error hierarchy"""

from typing import Optional


class InvoicingError(Exception):
    """Base class for errors raised by the invoicing core"""


class InvalidSeedError(InvoicingError):
    """Seed material is malformed (e.g. invalid BIP-39 mnemonic)"""


class DuplicateInvoiceError(InvoicingError):
    """
    An invoice with the same identifier or address already exists

    field names the colliding column ("id" or "address") when it is known
    before anything was written; None when the database rejected the flush.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidTransitionError(InvoicingError):
    """Requested status transition is not in the lifecycle table"""

    def __init__(self, current: str, target: str, actor: Optional[str] = None):
        self.current = current
        self.target = target
        self.actor = actor
        by = f" by {actor}" if actor else ""
        super().__init__(f"Invalid status transition{by}: cannot change from '{current}' to '{target}'")


# ---------------------------------------------------------------------------
# Chain errors
# ---------------------------------------------------------------------------


class ChainError(InvoicingError):
    """Base exception for chain adapter operations"""

    retryable = False


class RpcUnavailableError(ChainError):
    """Node unreachable or returned a transport-level failure (retryable)"""

    retryable = True


class AccountNotFoundError(ChainError):
    """Account (e.g. a token account) does not exist on chain yet"""


class InsufficientFundsError(ChainError):
    """Signer cannot cover amount plus fee"""


class SubmissionRejectedError(ChainError):
    """Node rejected the transaction, or it failed on chain"""


class ChainTimeoutError(ChainError):
    """Confirmation not observed within the bounded wait (retryable)"""

    retryable = True


class WalletMismatchError(InvoicingError):
    """Re-derived wallet does not match the stored invoice address or chain"""
