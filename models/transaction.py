"""
Transaction model - an immutable buy/sell event against one asset.
"""

from enum import Enum
from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Transaction(SQLModel, table=True):
    """Represents a buy/sell transaction for an asset."""
    id: Optional[int] = Field(default=None, primary_key=True)
    asset_id: int = Field(foreign_key="asset.id", index=True)
    transaction_date: date = Field(index=True)
    transaction_type: str  # TransactionType value
    quantity: int
    price: float  # Price per unit at transaction time
    commission: float = Field(default=0.0)
    profit: float = Field(default=0.0)  # realized P/L of this event, always 0 for BUY
    memo: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.now)
