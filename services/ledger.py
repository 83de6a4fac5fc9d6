"""
Ledger service - the write side of the asset ledger.

Every BUY/SELL runs through the accounting engine and is stored as one unit:
the updated asset and its new transaction are committed together or not at
all. Input arrives as loosely typed form values and is parsed here, before any
state is read.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from db_engine import get_session
from models import Asset, Memo, ProductClass, Transaction, TransactionType
from repositories import AssetRepository, TransactionRepository, MemoRepository
from services.accounting import (
    Position,
    RECONCILED_FIELDS,
    ReconciliationReport,
    apply_transaction,
    opening_position,
    rebase_opening,
    reconcile,
)
from services.common import parse_amount, parse_date, parse_quantity
from services.errors import AssetNotFoundError, InvalidInput, QuoteLookupFailure, StoreFailure
from services.quotes import QuoteSource, RakutenQuoteSource, YahooFinanceQuoteSource

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str):
    """Translate persistence errors into StoreFailure."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store failure while trying to {action}: {e}")
        raise StoreFailure(f"Could not {action}: {e}") from e


def _parse_product_class(value: Any) -> str:
    try:
        return ProductClass(value).value
    except ValueError:
        raise InvalidInput(f"Product class must be one of {[c.value for c in ProductClass]}, got {value!r}")


def _parse_name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise InvalidInput("Name is required")
    return name


def _parse_text(value: Any) -> str:
    return "" if value is None else str(value)


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("", "0", "false", "no"):
            return False
        if text in ("1", "true", "yes"):
            return True
        raise InvalidInput(f"Flag must be true or false, got {value!r}")
    return bool(value)


# Fields a corrective edit may change, with the parser applied to each
EDITABLE_FIELDS: Dict[str, Callable[[Any], Any]] = {
    "product_class": _parse_product_class,
    "name": _parse_name,
    "category": _parse_text,
    "condition": _parse_text,
    "memo": _parse_text,
    "sale_price": parse_amount,
    "buy_price": parse_amount,
    "quantity": lambda v: parse_quantity(v, allow_zero=True),
    "cost_basis": parse_amount,
    "purchase_date": parse_date,
    "closing_date": parse_date,
    "cumulative_sold_amount": parse_amount,
    "cumulative_sold_commission": parse_amount,
    "cumulative_realized_profit": lambda v: parse_amount(v, allow_negative=True),
    "estimated_flag": _parse_flag,
}


@dataclass
class QuoteRefresh:
    """Outcome of a quote refresh; a failed lookup sets ``warning`` instead of raising."""
    asset: Asset
    price: Optional[float] = None
    warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.warning is None


class LedgerService:
    """
    Service for registering assets and recording their transactions.
    """

    @staticmethod
    def register_asset(
        product_class: str,
        name: str,
        category: str = "",
        condition: str = "",
        sale_price: Any = 0.0,
        buy_price: Any = 0.0,
        quantity: Any = 0,
        cost_basis: Any = 0.0,
        purchase_date: Any = None,
        memo: str = "",
        estimated_flag: Any = False
    ) -> Asset:
        """
        Register a new asset with its opening position and no transactions.

        Returns:
            The stored Asset

        Raises:
            InvalidInput: on malformed or negative values
            StoreFailure: if the asset could not be stored
        """
        opening_quantity = parse_quantity(quantity, allow_zero=True)
        opening_cost = parse_amount(cost_basis)
        asset = Asset(
            product_class=_parse_product_class(product_class),
            name=_parse_name(name),
            category=_parse_text(category),
            condition=_parse_text(condition),
            sale_price=parse_amount(sale_price),
            buy_price=parse_amount(buy_price),
            quantity=opening_quantity,
            cost_basis=opening_cost,
            initial_quantity=opening_quantity,
            initial_cost_basis=opening_cost,
            purchase_date=parse_date(purchase_date),
            memo=_parse_text(memo),
            estimated_flag=_parse_flag(estimated_flag),
        )
        with _store_errors("register asset"):
            asset = AssetRepository.add(asset)
        logger.info(f"Registered {asset.product_class} asset {asset.id} ({asset.name})")
        return asset

    @staticmethod
    def get_asset(asset_id: int) -> Asset:
        """Fetch an asset or raise AssetNotFoundError."""
        with _store_errors("load asset"):
            asset = AssetRepository.get_by_id(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    @staticmethod
    def record_transaction(
        asset_id: int,
        transaction_type: str,
        quantity: Any,
        unit_price: Any,
        commission: Any = 0.0,
        transaction_date: Any = None,
        memo: str = ""
    ) -> Tuple[Asset, Transaction]:
        """
        Record a BUY or SELL against an asset.

        Args:
            asset_id: Asset to trade
            transaction_type: "BUY" or "SELL"
            quantity: Units, whole number > 0
            unit_price: Price per unit, > 0
            commission: Fee, >= 0; blank means 0
            transaction_date: ISO date or date; blank means today
            memo: Free text stored on the transaction

        Returns:
            Tuple of (updated Asset, stored Transaction)

        Raises:
            InvalidInput: on bad input, before anything is read or written
            InsufficientHoldings: if a SELL exceeds the units held
            AssetNotFoundError: if the asset does not exist
            StoreFailure: if the write failed; nothing was committed
        """
        units = parse_quantity(quantity)
        price = parse_amount(unit_price, allow_zero=False)
        fee = parse_amount(commission)
        trade_date = parse_date(transaction_date, default=date.today())

        with _store_errors("record transaction"):
            with get_session() as session:
                asset = AssetRepository.get_by_id(asset_id, session=session)
                if asset is None:
                    raise AssetNotFoundError(asset_id)

                position, transaction = apply_transaction(
                    asset, transaction_type, trade_date, units, price, fee, _parse_text(memo)
                )
                try:
                    position.apply_to(asset)
                    AssetRepository.save(asset, session=session)
                    TransactionRepository.add(transaction, session=session)
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
                session.refresh(asset)
                session.refresh(transaction)

        logger.info(
            f"Recorded {transaction.transaction_type} of {units} @ {price} on asset {asset_id} "
            f"(profit {transaction.profit:.2f}, holding {asset.quantity})"
        )
        return asset, transaction

    @staticmethod
    def record_buy(asset_id: int, quantity: Any, unit_price: Any, commission: Any = 0.0,
                   transaction_date: Any = None, memo: str = "") -> Tuple[Asset, Transaction]:
        """Record an additional purchase."""
        return LedgerService.record_transaction(
            asset_id, TransactionType.BUY, quantity, unit_price, commission, transaction_date, memo
        )

    @staticmethod
    def record_sell(asset_id: int, quantity: Any, unit_price: Any, commission: Any = 0.0,
                    transaction_date: Any = None, memo: str = "") -> Tuple[Asset, Transaction]:
        """Record a partial or full sale."""
        return LedgerService.record_transaction(
            asset_id, TransactionType.SELL, quantity, unit_price, commission, transaction_date, memo
        )

    @staticmethod
    def edit_asset(asset_id: int, **changes: Any) -> Asset:
        """
        Corrective edit of an asset's fields. No transaction is written.

        When the edit touches a ledger-derived figure (quantity, cost basis,
        closing date or a cumulative field), the opening position is rebased
        so that a replay of the ledger ends at the edited figures, and a later
        reconcile/repair keeps the correction. If the ledger cannot reach the
        edited figures from any opening position the edit is still stored and
        reconcile will report it.

        Raises:
            InvalidInput: on an unknown field or a malformed value
            AssetNotFoundError: if the asset does not exist
            StoreFailure: if the update failed
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInput(f"Fields cannot be edited: {sorted(unknown)}")
        parsed = {name: EDITABLE_FIELDS[name](value) for name, value in changes.items()}

        with _store_errors("update asset"):
            with get_session() as session:
                asset = AssetRepository.get_by_id(asset_id, session=session)
                if asset is None:
                    raise AssetNotFoundError(asset_id)

                current_opening = opening_position(asset)
                for name, value in parsed.items():
                    setattr(asset, name, value)

                if set(parsed) & set(RECONCILED_FIELDS):
                    transactions = TransactionRepository.get_by_asset(asset_id, session=session)
                    opening = rebase_opening(Position.from_asset(asset), transactions, current_opening)
                    if opening is None:
                        logger.warning(f"Edited figures of asset {asset_id} cannot be reached from its ledger")
                    else:
                        opening.apply_as_opening(asset)

                try:
                    AssetRepository.save(asset, session=session)
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
                session.refresh(asset)

        logger.info(f"Edited asset {asset_id}: {sorted(parsed)}")
        return asset

    @staticmethod
    def delete_asset(asset_id: int) -> None:
        """Delete an asset together with its transactions."""
        with _store_errors("delete asset"):
            deleted = AssetRepository.delete(asset_id)
        if not deleted:
            raise AssetNotFoundError(asset_id)
        logger.info(f"Deleted asset {asset_id} and its transactions")

    @staticmethod
    def get_history(asset_id: int) -> List[Transaction]:
        """Transactions of one asset, most recent first."""
        with _store_errors("load transactions"):
            return TransactionRepository.get_by_asset(asset_id)

    @staticmethod
    def set_memo(memo_date: Any, text: str) -> Memo:
        """Save the memo for a date, replacing the previous one."""
        day = parse_date(memo_date)
        if day is None:
            raise InvalidInput("A memo date is required")
        with _store_errors("save memo"):
            memo = MemoRepository.set(day, _parse_text(text))
        logger.info(f"Saved memo for {day}")
        return memo

    @staticmethod
    def get_memo(memo_date: Any) -> str:
        """Memo text for a date, or an empty string."""
        day = parse_date(memo_date)
        if day is None:
            raise InvalidInput("A memo date is required")
        with _store_errors("load memo"):
            return MemoRepository.get(day)

    @staticmethod
    def list_memos() -> List[Memo]:
        with _store_errors("load memos"):
            return MemoRepository.get_all()

    @staticmethod
    def default_quote_source(asset: Asset) -> QuoteSource:
        """Stock codes for financial assets, product names for physical ones."""
        if asset.product_class == ProductClass.FINANCIAL:
            return YahooFinanceQuoteSource()
        return RakutenQuoteSource()

    @staticmethod
    def refresh_quote(asset_id: int, source: Optional[QuoteSource] = None,
                      query: Optional[str] = None) -> QuoteRefresh:
        """
        Update an asset's sale price from a quote source.

        A failed lookup leaves the stored prices untouched and is returned as a
        warning on the result rather than raised.

        Args:
            asset_id: Asset to refresh
            source: Quote source; defaults by product class
            query: Lookup text; defaults to the asset name
        """
        asset = LedgerService.get_asset(asset_id)
        source = source or LedgerService.default_quote_source(asset)
        lookup = query or asset.name

        try:
            price = source.lookup_price(lookup)
        except QuoteLookupFailure as e:
            logger.warning(f"Quote refresh for asset {asset_id} skipped: {e}")
            return QuoteRefresh(asset=asset, warning=str(e))

        with _store_errors("store quote"):
            asset = AssetRepository.update(asset_id, {"sale_price": price})
        if asset is None:
            raise AssetNotFoundError(asset_id)
        logger.info(f"Asset {asset_id} sale price set to {price} from {source.name}")
        return QuoteRefresh(asset=asset, price=price)

    @staticmethod
    def reconcile_asset(asset_id: int, repair: bool = False) -> ReconciliationReport:
        """
        Compare an asset's stored totals with a replay of its ledger.

        Args:
            asset_id: Asset to check
            repair: Write the replayed figures back when they differ

        Returns:
            ReconciliationReport listing each disagreeing field as (stored, expected)
        """
        with _store_errors("reconcile asset"):
            with get_session() as session:
                asset = AssetRepository.get_by_id(asset_id, session=session)
                if asset is None:
                    raise AssetNotFoundError(asset_id)
                transactions = TransactionRepository.get_by_asset(asset_id, session=session)
                report = reconcile(asset, transactions)

                if repair and not report.is_consistent:
                    report.expected.apply_to(asset)
                    AssetRepository.save(asset, session=session)
                    session.commit()
                    logger.info(f"Repaired asset {asset_id}: {sorted(report.discrepancies)}")
        return report
