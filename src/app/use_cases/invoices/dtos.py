"""Data Transfer Objects for Invoice Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from src.domain.asset import AssetFamily, Chain
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.payment_descriptor import build_payment_descriptor


class IssueInvoiceCommandDTO(BaseModel):
    """
    Command DTO for issuing an invoice

    Used as input to IssueInvoice use case. Token decimals are not accepted
    here; they are read from the chain whenever a payment is checked.
    """

    asset_family: AssetFamily = Field(
        default=AssetFamily.NATIVE,
        description="Requested asset family (native, token)"
    )

    requested_amount: str = Field(
        ...,
        description="Amount to receive, decimal string in whole units"
    )

    token_identifier: Optional[str] = Field(
        default=None,
        description="Token contract address or mint (required for token invoices)"
    )

    token_symbol: Optional[str] = Field(
        default=None,
        description="Display symbol"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "asset_family": "token",
                "requested_amount": "5.00",
                "token_identifier": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
                "token_symbol": "USDC"
            }
        }


class PaymentDescriptorDTO(BaseModel):
    """Payment details a payer's wallet can consume"""

    address: str = Field(..., description="Deposit address")
    amount: str = Field(..., description="Requested amount in whole units")
    asset_family: str = Field(..., description="native or token")
    token_identifier: Optional[str] = Field(default=None, description="Token reference")
    uri: str = Field(..., description="Payment URI")


class InvoiceResponseDTO(BaseModel):
    """
    Response DTO for invoice operations

    Returned by IssueInvoice, GetInvoice, UpdateInvoiceStatus, etc.
    """

    invoice_id: str = Field(..., description="Invoice ID")
    chain: str = Field(..., description="Chain family")
    derivation_index: int = Field(..., description="HD derivation index")
    derivation_path: str = Field(..., description="HD derivation path")
    address: str = Field(..., description="Deposit address")
    asset_family: str = Field(..., description="native or token")
    token_identifier: Optional[str] = Field(default=None, description="Token reference")
    token_symbol: Optional[str] = Field(default=None, description="Display symbol")
    requested_amount: str = Field(..., description="Requested amount")
    status: str = Field(..., description="Invoice status")
    payment: PaymentDescriptorDTO = Field(..., description="Payment descriptor")
    created_at: datetime = Field(..., description="Creation timestamp")
    paid_at: Optional[datetime] = Field(default=None, description="Payment detection timestamp")
    swept_at: Optional[datetime] = Field(default=None, description="Sweep timestamp")
    updated_at: datetime = Field(..., description="Latest transition timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_id": "5b0f6f0e-1d7c-4d0b-9b59-8c3f8d3b2a11",
                "chain": "evm",
                "derivation_index": 0,
                "derivation_path": "m/44'/60'/0'/0/0",
                "address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
                "asset_family": "native",
                "token_identifier": None,
                "token_symbol": "ETH",
                "requested_amount": "0.01",
                "status": "pending",
                "payment": {
                    "address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
                    "amount": "0.01",
                    "asset_family": "native",
                    "token_identifier": None,
                    "uri": "ethereum:0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266?amount=0.01"
                },
                "created_at": "2024-01-31T00:00:00Z",
                "paid_at": None,
                "swept_at": None,
                "updated_at": "2024-01-31T00:00:00Z"
            }
        }


class ListInvoicesResponseDTO(BaseModel):
    """Paginated invoice list"""

    invoices: List[InvoiceResponseDTO] = Field(default_factory=list)
    total: int = Field(..., description="Total invoices matching the filter")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Page offset")
    has_more: bool = Field(..., description="True if more invoices follow")


class UpdateInvoiceStatusCommandDTO(BaseModel):
    """Command DTO for an administrative status change"""

    invoice_id: str = Field(..., description="Invoice ID")
    status: InvoiceStatus = Field(..., description="Requested status")


class DeleteInvoiceResponseDTO(BaseModel):
    invoice_id: str
    message: str


class RedeliverResponseDTO(BaseModel):
    """Response for re-queuing a paid invoice for sweeping"""

    invoice_id: str
    event_id: int
    status: str


def to_invoice_response(invoice: Invoice) -> InvoiceResponseDTO:
    descriptor = build_payment_descriptor(invoice)
    return InvoiceResponseDTO(
        invoice_id=invoice.id,
        chain=Chain(invoice.chain).value,
        derivation_index=invoice.derivation_index,
        derivation_path=invoice.derivation_path,
        address=invoice.address,
        asset_family=AssetFamily(invoice.asset_family).value,
        token_identifier=invoice.token_identifier,
        token_symbol=invoice.token_symbol,
        requested_amount=invoice.requested_amount,
        status=InvoiceStatus(invoice.status).value,
        payment=PaymentDescriptorDTO(
            address=descriptor.address,
            amount=descriptor.amount,
            asset_family=AssetFamily(descriptor.asset_family).value,
            token_identifier=descriptor.token_identifier,
            uri=descriptor.uri,
        ),
        created_at=invoice.created_at,
        paid_at=invoice.paid_at,
        swept_at=invoice.swept_at,
        updated_at=invoice.updated_at,
    )
