"""Tests for realized-profit aggregation."""

from datetime import date

import pytest

from models import ProductClass, TransactionType
from services.errors import InvalidInput
from services.profit import ProfitStats, compute_profit_stats, profit_by_date
from tests.helpers import make_asset, make_transaction

REFERENCE = date(2024, 5, 15)


def test_nested_year_month_day_buckets() -> None:
    """An event in the same year but another month counts toward yearly only."""
    asset = make_asset(asset_id=1)
    ledger = [
        make_transaction(1, date(2024, 5, 15), profit=100.0, tx_id=1),
        make_transaction(1, date(2024, 5, 2), profit=-30.0, tx_id=2),
        make_transaction(1, date(2024, 1, 15), profit=50.0, tx_id=3),
        make_transaction(1, date(2023, 5, 15), profit=999.0, tx_id=4),
    ]

    stats = compute_profit_stats([asset], ledger, REFERENCE)

    assert stats == ProfitStats(yearly=120.0, monthly=70.0, daily=100.0)
    assert stats.to_dict() == {"yearly": 120.0, "monthly": 70.0, "daily": 100.0}


def test_same_day_of_other_month_is_not_daily() -> None:
    asset = make_asset(asset_id=1)
    ledger = [make_transaction(1, date(2024, 4, 15), profit=10.0, tx_id=1)]
    stats = compute_profit_stats([asset], ledger, REFERENCE)
    assert stats.daily == 0.0
    assert stats.monthly == 0.0
    assert stats.yearly == 10.0


def test_repeated_calls_give_same_result() -> None:
    asset = make_asset(asset_id=1)
    ledger = [make_transaction(1, REFERENCE, profit=42.0, tx_id=1)]
    first = compute_profit_stats([asset], ledger, REFERENCE)
    second = compute_profit_stats([asset], ledger, REFERENCE)
    assert first == second


def test_buys_contribute_nothing() -> None:
    asset = make_asset(asset_id=1)
    ledger = [make_transaction(1, REFERENCE, TransactionType.BUY, profit=0.0, tx_id=1)]
    assert compute_profit_stats([asset], ledger, REFERENCE) == ProfitStats()


def test_physical_asset_settles_on_closing_date() -> None:
    """Physical assets count their cumulative profit once, at the closing date."""
    physical = make_asset(
        asset_id=1,
        product_class=ProductClass.PHYSICAL,
        closing_date=REFERENCE,
        cumulative_realized_profit=250.0,
    )
    open_physical = make_asset(asset_id=2, product_class=ProductClass.PHYSICAL, cumulative_realized_profit=75.0)
    # SELL rows of a physical asset must not be counted a second time
    ledger = [make_transaction(1, REFERENCE, profit=250.0, tx_id=1)]

    stats = compute_profit_stats([physical, open_physical], ledger, REFERENCE)
    assert stats == ProfitStats(yearly=250.0, monthly=250.0, daily=250.0)


def test_transactions_of_missing_assets_are_ignored() -> None:
    ledger = [make_transaction(99, REFERENCE, profit=500.0, tx_id=1)]
    assert compute_profit_stats([make_asset(asset_id=1)], ledger, REFERENCE) == ProfitStats()


def test_unreadable_dates_are_excluded(caplog) -> None:
    asset = make_asset(asset_id=1)
    broken = make_transaction(1, REFERENCE, profit=10.0, tx_id=1)
    broken.transaction_date = "not-a-date"
    ledger = [broken, make_transaction(1, REFERENCE, profit=5.0, tx_id=2)]

    stats = compute_profit_stats([asset], ledger, REFERENCE)

    assert stats.daily == 5.0
    assert "unreadable date" in caplog.text


def test_reference_date_accepts_iso_text() -> None:
    asset = make_asset(asset_id=1)
    ledger = [make_transaction(1, REFERENCE, profit=5.0, tx_id=1)]
    assert compute_profit_stats([asset], ledger, "2024-05-15").daily == 5.0


@pytest.mark.parametrize("reference", [None, "", "2024-13-01"])
def test_missing_or_bad_reference_date_raises(reference) -> None:
    with pytest.raises(InvalidInput):
        compute_profit_stats([], [], reference)


def test_profit_by_date_nets_each_day() -> None:
    asset = make_asset(asset_id=1)
    ledger = [
        make_transaction(1, REFERENCE, profit=50.0, tx_id=1),
        make_transaction(1, REFERENCE, profit=-80.0, tx_id=2),
    ]
    assert profit_by_date([asset], ledger) == {REFERENCE: -30.0}
