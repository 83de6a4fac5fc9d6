"""
Average-cost accounting engine.

All held units of an asset share one blended unit cost. A BUY adds its full
cost (price * quantity + commission) to the carrying value; a SELL removes the
proportional share of that value and realizes the difference as profit.

The engine is pure: it reads an asset's holding state and returns a new
Position plus an unsaved Transaction. Persisting both atomically is the
caller's job (see services.ledger).
"""

import math
import logging
from dataclasses import dataclass, field, replace, fields
from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple

from models import Transaction, TransactionType
from services.common import coerce_date
from services.errors import InvalidInput, InsufficientHoldings, LedgerError

logger = logging.getLogger(__name__)

# Float residue tolerated when cost basis is drawn down to zero
COST_EPSILON = 1e-6

# Position field -> Asset column holding its value at registration (the replay starting point)
OPENING_COLUMNS = {
    "quantity": "initial_quantity",
    "cost_basis": "initial_cost_basis",
    "closing_date": "initial_closing_date",
    "cumulative_sold_amount": "initial_sold_amount",
    "cumulative_sold_commission": "initial_sold_commission",
    "cumulative_realized_profit": "initial_realized_profit",
}


@dataclass(frozen=True)
class Position:
    """Holding state of one asset, the part of the record the engine owns."""
    quantity: int = 0
    cost_basis: float = 0.0
    purchase_date: Optional[date] = None
    closing_date: Optional[date] = None
    cumulative_sold_amount: float = 0.0
    cumulative_sold_commission: float = 0.0
    cumulative_realized_profit: float = 0.0

    @classmethod
    def from_asset(cls, asset: Any) -> "Position":
        """Snapshot the holding fields of an Asset (or another Position)."""
        return cls(**{f.name: getattr(asset, f.name) for f in fields(cls)})

    @property
    def average_unit_cost(self) -> float:
        return self.cost_basis / self.quantity if self.quantity > 0 else 0.0

    def apply_to(self, asset: Any) -> Any:
        """Write this position onto an Asset record in place."""
        for f in fields(self):
            setattr(asset, f.name, getattr(self, f.name))
        return asset

    def apply_as_opening(self, asset: Any) -> Any:
        """Store this position as the asset's opening position."""
        for name, column in OPENING_COLUMNS.items():
            setattr(asset, column, getattr(self, name))
        return asset


def opening_position(asset: Any) -> Position:
    """The position an asset held before its first recorded transaction."""
    values = {name: getattr(asset, column) for name, column in OPENING_COLUMNS.items()}
    return Position(purchase_date=asset.purchase_date, **values)


def _validate(transaction_type, transaction_date, quantity, unit_price, commission) -> TransactionType:
    try:
        tx_type = TransactionType(transaction_type)
    except ValueError:
        raise InvalidInput(f"Transaction type must be BUY or SELL, got {transaction_type!r}")

    if not isinstance(transaction_date, date):
        raise InvalidInput(f"Transaction date must be a date, got {transaction_date!r}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput(f"Quantity must be a whole number greater than zero, got {quantity!r}")
    if not isinstance(unit_price, (int, float)) or not math.isfinite(unit_price) or unit_price <= 0:
        raise InvalidInput(f"Unit price must be greater than zero, got {unit_price!r}")
    if not isinstance(commission, (int, float)) or not math.isfinite(commission) or commission < 0:
        raise InvalidInput(f"Commission must be zero or more, got {commission!r}")
    return tx_type


def apply_transaction(
    asset: Any,
    transaction_type: str,
    transaction_date: date,
    quantity: int,
    unit_price: float,
    commission: float = 0.0,
    memo: str = ""
) -> Tuple[Position, Transaction]:
    """
    Apply a BUY or SELL to an asset under average-cost rules.

    Args:
        asset: Asset record (or Position) providing the current holding state
        transaction_type: "BUY" or "SELL"
        transaction_date: Date the trade happened
        quantity: Units traded, > 0
        unit_price: Price per unit, > 0
        commission: Fee paid on the trade, >= 0
        memo: Free text stored on the transaction

    Returns:
        Tuple of (updated Position, new unsaved Transaction)

    Raises:
        InvalidInput: on non-positive quantity/price or malformed arguments
        InsufficientHoldings: if a SELL exceeds the units held
    """
    tx_type = _validate(transaction_type, transaction_date, quantity, unit_price, commission)
    position = Position.from_asset(asset)
    unit_price = float(unit_price)
    commission = float(commission)

    if tx_type == TransactionType.BUY:
        added_cost = unit_price * quantity + commission
        updated = replace(
            position,
            quantity=position.quantity + quantity,
            cost_basis=position.cost_basis + added_cost,
            purchase_date=position.purchase_date or transaction_date,
        )
        profit = 0.0
    else:
        if quantity > position.quantity:
            raise InsufficientHoldings(requested=quantity, available=position.quantity)

        cost_of_sale = position.average_unit_cost * quantity
        sale_amount = unit_price * quantity
        profit = sale_amount - cost_of_sale - commission

        remaining_quantity = position.quantity - quantity
        remaining_cost = position.cost_basis - cost_of_sale
        if remaining_quantity == 0:
            remaining_cost = 0.0
        elif remaining_cost < 0:
            if remaining_cost < -COST_EPSILON:
                logger.warning(f"Cost basis went negative ({remaining_cost}) on partial sell; clamping to 0")
            remaining_cost = 0.0

        updated = replace(
            position,
            quantity=remaining_quantity,
            cost_basis=remaining_cost,
            cumulative_sold_amount=position.cumulative_sold_amount + sale_amount,
            cumulative_sold_commission=position.cumulative_sold_commission + commission,
            cumulative_realized_profit=position.cumulative_realized_profit + profit,
            closing_date=transaction_date if remaining_quantity == 0 else position.closing_date,
        )

    transaction = Transaction(
        asset_id=getattr(asset, "id", None),
        transaction_date=transaction_date,
        transaction_type=tx_type.value,
        quantity=quantity,
        price=unit_price,
        commission=commission,
        profit=profit,
        memo=memo or "",
    )
    return updated, transaction


def replay_ledger(transactions: Iterable[Transaction], opening: Optional[Position] = None) -> Position:
    """
    Recompute a holding from its full ledger, in the order it was recorded.

    Stored figures are built one recorded trade at a time, whatever date each
    trade carries, so the replay follows transaction ids too. Unsaved
    transactions (no id yet) keep the order they are given in.

    Args:
        transactions: The asset's Transaction records
        opening: What the asset held at registration, before any recorded transaction
    """
    ordered = sorted(transactions, key=lambda tx: tx.id or 0)
    position = opening or Position()
    for tx in ordered:
        position, _ = apply_transaction(
            position,
            tx.transaction_type,
            coerce_date(tx.transaction_date),
            tx.quantity,
            tx.price,
            tx.commission,
        )
    return position


def rebase_opening(target: Position, transactions: Iterable[Transaction],
                   current_opening: Optional[Position] = None) -> Optional[Position]:
    """
    Find the opening position from which a replay of ``transactions`` ends at ``target``.

    Replayed cost basis and realized profit are linear in the opening cost
    basis, so two replays (opening cost 0 and 1) pin it down; the cumulative
    figures are then offset by whatever the ledger does not account for.
    When the ledger zeroes the holding on the way, the opening cost no longer
    shows in the final cost basis and the one from ``current_opening`` is kept.

    Returns:
        The opening Position, or None if no opening reproduces ``target``
    """
    ledger = list(transactions)
    if not ledger:
        return target

    bought = sum(tx.quantity for tx in ledger if tx.transaction_type == TransactionType.BUY)
    sold = sum(tx.quantity for tx in ledger if tx.transaction_type == TransactionType.SELL)
    opening_quantity = target.quantity - bought + sold
    if opening_quantity < 0:
        return None

    try:
        zero = replay_ledger(ledger, Position(quantity=opening_quantity))
        slope = 0.0
        if opening_quantity > 0:
            slope = replay_ledger(ledger, Position(quantity=opening_quantity, cost_basis=1.0)).cost_basis - zero.cost_basis

        if slope > COST_EPSILON:
            opening_cost = (target.cost_basis - zero.cost_basis) / slope
            if opening_cost < -COST_EPSILON:
                return None
            opening_cost = max(opening_cost, 0.0)
        else:
            opening_cost = current_opening.cost_basis if current_opening and opening_quantity > 0 else 0.0

        base = replay_ledger(ledger, Position(quantity=opening_quantity, cost_basis=opening_cost))
    except LedgerError as e:
        logger.warning(f"Ledger cannot be replayed: {e}")
        return None

    if not _same(base.cost_basis, target.cost_basis):
        return None

    return Position(
        quantity=opening_quantity,
        cost_basis=opening_cost,
        purchase_date=target.purchase_date,
        closing_date=target.closing_date,
        cumulative_sold_amount=target.cumulative_sold_amount - base.cumulative_sold_amount,
        cumulative_sold_commission=target.cumulative_sold_commission - base.cumulative_sold_commission,
        cumulative_realized_profit=target.cumulative_realized_profit - base.cumulative_realized_profit,
    )


# Fields compared by reconcile; purchase_date is user-maintained and not derived from the ledger
RECONCILED_FIELDS = (
    "quantity",
    "cost_basis",
    "closing_date",
    "cumulative_sold_amount",
    "cumulative_sold_commission",
    "cumulative_realized_profit",
)


@dataclass
class ReconciliationReport:
    """Stored asset projection compared with a replay of its ledger."""
    asset_id: Optional[int]
    expected: Position
    discrepancies: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies


def _same(stored: Any, expected: Any) -> bool:
    if isinstance(stored, float) or isinstance(expected, float):
        return math.isclose(float(stored or 0.0), float(expected or 0.0), rel_tol=1e-9, abs_tol=COST_EPSILON)
    return stored == expected


def reconcile(asset: Any, transactions: Iterable[Transaction]) -> ReconciliationReport:
    """
    Replay an asset's ledger from its opening position and report every
    stored field that disagrees with the replay.
    """
    expected = replay_ledger(transactions, opening_position(asset))
    expected = replace(expected, purchase_date=asset.purchase_date)

    report = ReconciliationReport(asset_id=getattr(asset, "id", None), expected=expected)
    for name in RECONCILED_FIELDS:
        stored_value = getattr(asset, name)
        expected_value = getattr(expected, name)
        if not _same(stored_value, expected_value):
            report.discrepancies[name] = (stored_value, expected_value)

    if report.discrepancies:
        logger.warning(f"Asset {report.asset_id} differs from its ledger: {sorted(report.discrepancies)}")
    return report
