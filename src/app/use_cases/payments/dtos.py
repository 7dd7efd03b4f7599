"""Data Transfer Objects for Payment Use Cases

Results of payment-watch cycles and sweeps.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class WatchCycleResultDTO(BaseModel):
    """
    Result of one payment-watch cycle

    Returned by WatchPayments use case.
    """

    checked_count: int = Field(..., description="Pending invoices examined")
    processed_ids: List[str] = Field(default_factory=list, description="Invoices marked paid")
    failed_ids: List[str] = Field(default_factory=list, description="Invoices whose check raised")
    errors: Dict[str, str] = Field(default_factory=dict, description="Error message per failed invoice")
    cycle_time: datetime = Field(..., description="Cycle start timestamp")
    execution_time_ms: int = Field(..., description="Cycle duration in milliseconds")

    class Config:
        json_schema_extra = {
            "example": {
                "checked_count": 3,
                "processed_ids": ["5b0f6f0e-1d7c-4d0b-9b59-8c3f8d3b2a11"],
                "failed_ids": ["0c9d1f7a-2b57-4a44-8a4e-1f0f3a3c8e90"],
                "errors": {"0c9d1f7a-2b57-4a44-8a4e-1f0f3a3c8e90": "RPC unavailable"},
                "cycle_time": "2024-01-01T00:00:00Z",
                "execution_time_ms": 420
            }
        }


class SweepOutcome(str, Enum):
    """What a sweep attempt did"""
    SWEPT = "swept"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    SKIPPED_NOT_PAID = "skipped_not_paid"
    SKIPPED_INSUFFICIENT_FUNDS = "skipped_insufficient_funds"
    SKIPPED_EMPTY = "skipped_empty"


class SweepResultDTO(BaseModel):
    """
    Result of one sweep attempt

    Returned by SweepInvoice use case.
    """

    invoice_id: str = Field(..., description="Invoice ID")
    outcome: SweepOutcome = Field(..., description="Sweep outcome")
    status: Optional[str] = Field(default=None, description="Invoice status after the attempt")
    swept_amount: int = Field(default=0, description="Amount moved to treasury, base units")
    tx_references: List[str] = Field(default_factory=list, description="Confirmed transactions, in order")

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_id": "5b0f6f0e-1d7c-4d0b-9b59-8c3f8d3b2a11",
                "outcome": "swept",
                "status": "swept",
                "swept_amount": 5000000,
                "tx_references": ["0x3f...topup", "0x9a...sweep"]
            }
        }


class SweepBatchResultDTO(BaseModel):
    """
    Result of one sweeper poll over undelivered paid events

    Returned by SweeperWorker.run_once.
    """

    events_seen: int = Field(default=0, description="Paid events picked up")
    swept_ids: List[str] = Field(default_factory=list, description="Invoices moved to swept")
    skipped_ids: List[str] = Field(default_factory=list, description="Invoices left unchanged (already swept, no funds)")
    failed_ids: List[str] = Field(default_factory=list, description="Invoices whose sweep failed")
    execution_time_ms: int = Field(default=0, description="Batch duration in milliseconds")
