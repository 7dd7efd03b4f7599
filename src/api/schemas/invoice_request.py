"""Request schemas for Invoice API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field
from src.domain.asset import AssetFamily
from src.domain.invoice import InvoiceStatus


class IssueInvoiceRequestSchema(BaseModel):
    """
    Request schema for issuing an invoice

    Used for POST /invoices endpoint.
    """

    asset_family: AssetFamily = Field(
        default=AssetFamily.NATIVE,
        description="Asset family to be paid in (native, token)"
    )

    requested_amount: str = Field(
        ...,
        min_length=1,
        description="Amount in whole units as a decimal string (must be > 0)"
    )

    token_identifier: Optional[str] = Field(
        default=None,
        description="Token contract address (EVM) or mint (Solana); required for token invoices"
    )

    token_symbol: Optional[str] = Field(
        default=None,
        max_length=16,
        description="Display symbol, e.g. USDC"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "asset_family": "native",
                "requested_amount": "0.05"
            }
        }


class UpdateInvoiceStatusRequestSchema(BaseModel):
    """Request schema for PUT /invoices/{invoice_id}/status"""

    status: InvoiceStatus = Field(..., description="Target status (pending or cancelled)")

    class Config:
        json_schema_extra = {"example": {"status": "cancelled"}}
