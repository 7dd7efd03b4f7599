"""Invoice Event Domain Entity

Change feed of invoice writes. An event row is appended in the same
transaction as every insert or update of an invoice, so consumers see each
committed state change at least once.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, Integer, JSON, String, Text
from src.domain.base import BaseModel
from src.domain.invoice import InvoiceStatus


class InvoiceEventType(str, Enum):
    """Kind of write that produced the event"""
    INSERT = "insert"
    MODIFY = "modify"


class InvoiceEvent(BaseModel, table=True):
    """
    Invoice Event - One committed change to an invoice

    Domain Rules:
    - status and snapshot reflect the invoice after the change
    - delivered_at is set once a consumer acknowledged the event
    - attempts counts failed deliveries
    """

    __tablename__ = "invoice_events"
    __table_args__ = (
        Index("ix_invoice_events_status_delivered", "status", "delivered_at"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Feed position (auto-increment)"
    )

    invoice_id: str = Field(
        sa_column=Column(String(36), nullable=False, index=True),
        description="Invoice the event belongs to"
    )

    event_type: InvoiceEventType = Field(
        description="insert or modify"
    )

    status: InvoiceStatus = Field(
        description="Invoice status after the change"
    )

    snapshot: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Invoice record after the change"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Event timestamp"
    )

    delivered_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp of successful consumption"
    )

    attempts: int = Field(
        default=0,
        description="Number of failed delivery attempts"
    )

    last_error: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Error from the latest failed delivery"
    )
