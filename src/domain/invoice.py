"""Invoice Domain Entity

A request for payment to a deposit address derived from the master seed.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, String, UniqueConstraint
from src.domain.base import BaseModel, generate_uuid
from src.domain.asset import AssetFamily, AssetParams, Chain


class InvoiceStatus(str, Enum):
    """Invoice status types"""
    PENDING = "pending"
    PAID = "paid"
    SWEPT = "swept"
    CANCELLED = "cancelled"


class Invoice(BaseModel, table=True):
    """
    Invoice - Payment request backed by a derived deposit address

    Domain Rules:
    - derivation_index is unique per chain and never reused
    - address is reproducible from (seed, derivation_index, chain)
    - Status transitions follow src.domain.invoice_lifecycle
    - paid_at and swept_at are set once, by the transition that enters the state
    - Paid and swept invoices are only mutated by the paid -> swept transition
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("chain", "derivation_index", name="uq_invoices_chain_derivation_index"),
        Index("ix_invoices_status", "status"),
        Index("ix_invoices_address", "address", unique=True),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique invoice identifier (uuid4)"
    )

    chain: Chain = Field(
        description="Chain family the deposit address lives on"
    )

    derivation_index: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Sequential HD derivation index"
    )

    derivation_path: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Hierarchical derivation path encoding derivation_index"
    )

    address: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Deposit address (public lookup key, not secret)"
    )

    asset_family: AssetFamily = Field(
        description="Requested asset family (native, token)"
    )

    token_identifier: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Token contract address or mint (token invoices only)"
    )

    token_symbol: Optional[str] = Field(
        default=None,
        sa_column=Column(String(16), nullable=True),
        description="Display symbol, informational only"
    )

    requested_amount: str = Field(
        sa_column=Column(String(78), nullable=False),
        description="Requested amount as a decimal string in whole units"
    )

    status: InvoiceStatus = Field(
        default=InvoiceStatus.PENDING,
        description="Invoice status (pending, paid, swept, cancelled)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Invoice creation timestamp"
    )

    paid_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when payment was detected"
    )

    swept_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when funds were swept to treasury"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Timestamp of the latest transition"
    )

    @property
    def asset(self) -> AssetParams:
        return AssetParams(
            family=AssetFamily(self.asset_family),
            token_identifier=self.token_identifier,
            symbol=self.token_symbol,
        )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "5b0f6f0e-1d7c-4d0b-9b59-8c3f8d3b2a11",
                "chain": "evm",
                "derivation_index": 0,
                "derivation_path": "m/44'/60'/0'/0/0",
                "address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
                "asset_family": "native",
                "token_identifier": None,
                "token_symbol": "ETH",
                "requested_amount": "0.01",
                "status": "pending",
                "created_at": "2024-01-31T00:00:00Z",
                "paid_at": None,
                "swept_at": None,
                "updated_at": "2024-01-31T00:00:00Z"
            }
        }
