"""Derivation Counter Domain Entity

One monotonically increasing counter per chain. The counter value is the
number of derivation indices handed out so far.
"""

from sqlmodel import Field, Column
from sqlalchemy import BigInteger, CheckConstraint
from src.domain.base import BaseModel
from src.domain.asset import Chain


class DerivationCounter(BaseModel, table=True):
    """
    Derivation Counter - Source of unique HD derivation indices

    Domain Rules:
    - One row per chain
    - value only increases; an index is never handed out twice
    """

    __tablename__ = "derivation_counters"
    __table_args__ = (
        CheckConstraint("value >= 0", name="derivation_counter_non_negative"),
    )

    chain: Chain = Field(
        primary_key=True,
        description="Chain family the counter belongs to"
    )

    value: int = Field(
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Number of indices issued so far"
    )
