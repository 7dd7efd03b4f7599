"""Base model shared by all domain entities"""

import uuid
from sqlmodel import SQLModel


class BaseModel(SQLModel):
    """Common base for SQLModel entities"""


def generate_uuid() -> str:
    """Generate a random identifier for new entities"""
    return str(uuid.uuid4())
