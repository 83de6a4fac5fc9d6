"""
Realized-profit aggregation.

Profit is settled from two sources:
- physical assets: the asset's cumulative realized profit, dated at its closing date
- financial assets: every SELL transaction, dated at the transaction date

Transactions whose asset is not in the supplied collection are ignored, as are
SELLs of physical assets (those settle through the asset record). Records with
a missing or unparseable date are left out of the date-bucketed figures.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, Iterator, Tuple

from models import ProductClass, TransactionType
from services.common import coerce_date, parse_date
from services.errors import InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfitStats:
    """Realized profit in the year, month and day of a reference date."""
    yearly: float = 0.0
    monthly: float = 0.0
    daily: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def iter_profit_events(assets: Iterable[Any], transactions: Iterable[Any]) -> Iterator[Tuple[date, float]]:
    """
    Yield (settlement date, profit) for every profit-bearing event.

    Args:
        assets: Live Asset records
        transactions: Transaction records, any order

    Yields:
        Tuples of settlement date and realized profit
    """
    assets = list(assets)
    class_by_asset = {asset.id: asset.product_class for asset in assets}
    skipped = 0

    for asset in assets:
        if asset.product_class != ProductClass.PHYSICAL or not asset.closing_date:
            continue
        settled_on = coerce_date(asset.closing_date)
        if settled_on is None:
            skipped += 1
            continue
        yield settled_on, float(asset.cumulative_realized_profit or 0.0)

    for tx in transactions:
        if tx.transaction_type != TransactionType.SELL:
            continue
        product_class = class_by_asset.get(tx.asset_id)
        if product_class is None or product_class == ProductClass.PHYSICAL:
            continue
        settled_on = coerce_date(tx.transaction_date)
        if settled_on is None:
            skipped += 1
            continue
        yield settled_on, float(tx.profit or 0.0)

    if skipped:
        logger.warning(f"Excluded {skipped} record(s) with an unreadable date from profit figures")


def compute_profit_stats(assets: Iterable[Any], transactions: Iterable[Any], reference_date: Any) -> ProfitStats:
    """
    Sum realized profit for the reference date's year, month and day.

    An event counts toward ``yearly`` when its year matches, toward ``monthly``
    when year and month match, and toward ``daily`` on an exact date match.

    Raises:
        InvalidInput: if the reference date is missing or malformed
    """
    reference = parse_date(reference_date)
    if reference is None:
        raise InvalidInput("A reference date is required")

    yearly = monthly = daily = 0.0
    for settled_on, profit in iter_profit_events(assets, transactions):
        if settled_on.year != reference.year:
            continue
        yearly += profit
        if settled_on.month != reference.month:
            continue
        monthly += profit
        if settled_on.day == reference.day:
            daily += profit

    return ProfitStats(yearly=yearly, monthly=monthly, daily=daily)


def profit_by_date(assets: Iterable[Any], transactions: Iterable[Any]) -> Dict[date, float]:
    """Net realized profit per settlement date."""
    totals: Dict[date, float] = {}
    for settled_on, profit in iter_profit_events(assets, transactions):
        totals[settled_on] = totals.get(settled_on, 0.0) + profit
    return totals
