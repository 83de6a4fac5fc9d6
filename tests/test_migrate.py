"""Tests for importing the legacy mobile-app database."""

import sqlite3
from datetime import date

import pytest

from migrate import import_legacy_database
from models import ProductClass, TransactionType
from repositories import AssetRepository, MemoRepository, TransactionRepository
from services.ledger import LedgerService
from services.portfolio import PortfolioService

LEGACY_SCHEMA = """
CREATE TABLE assets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id TEXT, name TEXT, category TEXT, condition TEXT,
    sale_price REAL, buy_price REAL, purchase_date TEXT, selling_date TEXT,
    quantity INTEGER, estimated_flag INTEGER, memo TEXT,
    cost_price REAL, sold_price REAL, sold_commission REAL, trade_profit REAL
);
CREATE TABLE transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    asset_id INTEGER, trans_date TEXT, trans_type TEXT,
    quantity INTEGER, price REAL, commission REAL, profit REAL, memo TEXT
);
CREATE TABLE memos (date TEXT PRIMARY KEY, memo TEXT);
"""


@pytest.fixture
def legacy_db(tmp_path):
    path = tmp_path / "myassets.db"
    conn = sqlite3.connect(path)
    conn.executescript(LEGACY_SCHEMA)
    conn.executemany(
        "INSERT INTO assets VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, '1', 'Charizard holo', 'Pokemon', 'Mint', 6000, 3500, '2023-12-01', '2024-02-01',
             0, 0, '', 0, 5000, 500, 1500),
            (5, '2', '7203', 'Auto', '', 120, 100, '2024-01-01', '',
             6, 0, 'core', 600, 480, 0, 80),
            (7, '', 'Mystery box', '', '', 0, 0, 'garbage', None,
             1, 1, '', 100, 0, 0, 0),
            (9, '2', '6758', 'Electronics', '', 210, 150, '2023-06-01', '',
             8, 0, '', 1300, 0, 0, 0),
        ],
    )
    conn.executemany(
        "INSERT INTO transactions VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, 5, '2024-01-01', 'BUY', 10, 100, 0, 0, ''),
            (2, 5, '2024-02-01', 'SELL', 4, 120, 0, 80, 'trim'),
            (3, 42, '2024-02-01', 'SELL', 1, 10, 0, 5, 'orphan'),
            (4, 9, '2024-03-01', 'BUY', 5, 200, 0, 0, ''),
        ],
    )
    conn.execute("INSERT INTO memos VALUES ('2024-02-01', 'sold the card')")
    conn.commit()
    conn.close()
    return str(path)


def test_import_counts(legacy_db) -> None:
    counts = import_legacy_database(legacy_db)
    assert counts == {'assets': 4, 'transactions': 3, 'memos': 1}


def test_import_maps_legacy_columns(legacy_db, caplog) -> None:
    import_legacy_database(legacy_db)
    by_name = {asset.name: asset for asset in AssetRepository.get_all()}

    card = by_name['Charizard holo']
    assert card.product_class == ProductClass.PHYSICAL.value
    assert card.closing_date == date(2024, 2, 1)
    assert card.cumulative_sold_amount == 5000.0
    assert card.cumulative_realized_profit == 1500.0

    stock = by_name['7203']
    assert stock.product_class == ProductClass.FINANCIAL.value
    assert stock.closing_date is None
    assert stock.cost_basis == 600.0

    mystery = by_name['Mystery box']
    assert mystery.product_class == ProductClass.PHYSICAL.value
    assert mystery.purchase_date is None
    assert mystery.estimated_flag is True
    assert "Unreadable date 'garbage'" in caplog.text


def test_imported_ledger_reconciles(legacy_db) -> None:
    import_legacy_database(legacy_db)
    stock = AssetRepository.search(text="7203")[0]

    history = TransactionRepository.get_by_asset(stock.id)
    assert [tx.transaction_type for tx in history] == ["SELL", "BUY"]
    assert stock.initial_quantity == 0
    assert LedgerService.reconcile_asset(stock.id).is_consistent


def test_imported_data_feeds_dashboard(legacy_db) -> None:
    import_legacy_database(legacy_db)
    dashboard = PortfolioService.get_dashboard("2024-02-01")

    assert dashboard['profit']['daily'] == 1580.0
    assert dashboard['memo'] == "sold the card"
    assert MemoRepository.get(date(2024, 2, 1)) == "sold the card"


def test_opening_position_is_worked_back_from_history(legacy_db) -> None:
    """8 units costing 1300 after buying 5 @ 200 were 3 units costing 300 before."""
    import_legacy_database(legacy_db)
    sony = AssetRepository.search(text="6758")[0]

    assert [tx.transaction_type for tx in TransactionRepository.get_by_asset(sony.id)] == [TransactionType.BUY.value]
    assert sony.quantity == 8
    assert sony.initial_quantity == 3
    assert sony.initial_cost_basis == pytest.approx(300.0)
    assert LedgerService.reconcile_asset(sony.id).is_consistent
