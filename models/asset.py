"""
Asset model - a tracked holding (physical collectible or financial instrument).
"""

from enum import Enum
from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class ProductClass(str, Enum):
    """Partition used by the aggregate views."""
    PHYSICAL = "physical"
    FINANCIAL = "financial"


class Asset(SQLModel, table=True):
    """
    Represents a holding and its average-cost accounting state.

    ``cost_basis`` is the total carrying cost of the units currently held, not a
    per-unit figure. The cumulative_* fields are the running fold of this asset's
    SELL transactions, stored here so list screens never replay the ledger.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    product_class: str = Field(index=True)  # ProductClass value
    name: str = Field(index=True)
    category: str = Field(default="")
    condition: str = Field(default="")

    # Reference quotes, informational only
    sale_price: float = Field(default=0.0)
    buy_price: float = Field(default=0.0)

    # Holding state
    quantity: int = Field(default=0)
    cost_basis: float = Field(default=0.0)
    purchase_date: Optional[date] = Field(default=None, index=True)
    closing_date: Optional[date] = Field(default=None, index=True)  # set when quantity reaches 0

    # Opening position, the starting point for ledger replay.
    # Set at registration, rebased by corrective edits.
    initial_quantity: int = Field(default=0)
    initial_cost_basis: float = Field(default=0.0)
    initial_closing_date: Optional[date] = Field(default=None)
    initial_sold_amount: float = Field(default=0.0)
    initial_sold_commission: float = Field(default=0.0)
    initial_realized_profit: float = Field(default=0.0)

    # Cumulative realized figures
    cumulative_sold_amount: float = Field(default=0.0)
    cumulative_sold_commission: float = Field(default=0.0)
    cumulative_realized_profit: float = Field(default=0.0)

    memo: str = Field(default="")
    estimated_flag: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def average_unit_cost(self) -> float:
        """Current blended unit cost, 0 when nothing is held."""
        return self.cost_basis / self.quantity if self.quantity > 0 else 0.0
