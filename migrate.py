"""
Legacy data import for the asset ledger.
Copies assets, transactions and memos out of the mobile app's SQLite file
(myassets.db) into the current schema.

Usage:
    python migrate.py path/to/myassets.db
"""

import logging
import sqlite3
import sys
from typing import Dict, List, Optional

from config import get_settings
from db_engine import init_db, get_session
from models import Asset, Memo, ProductClass, Transaction, TransactionType
from repositories import AssetRepository, TransactionRepository
from services.accounting import Position, rebase_opening
from services.common import coerce_date

logger = logging.getLogger(__name__)

# Legacy product_id -> product class
LEGACY_PRODUCT_CLASSES = {
    "1": ProductClass.PHYSICAL.value,
    "2": ProductClass.FINANCIAL.value,
}


def _table_exists(cursor: sqlite3.Cursor, table: str) -> bool:
    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def _legacy_date(value, context: str):
    if value is None or not str(value).strip():
        return None
    parsed = coerce_date(value)
    if parsed is None:
        logger.warning(f"Unreadable date {value!r} in {context}; left empty")
    return parsed


def import_legacy_database(legacy_path: str) -> Dict[str, int]:
    """
    Import a legacy database into the configured store in one commit.

    Args:
        legacy_path: Path to the legacy SQLite file

    Returns:
        Counts of imported assets, transactions and memos
    """
    conn = sqlite3.connect(legacy_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        legacy_assets = cursor.execute("SELECT * FROM assets ORDER BY id").fetchall()
        legacy_transactions = []
        if _table_exists(cursor, "transactions"):
            legacy_transactions = cursor.execute("SELECT * FROM transactions ORDER BY id").fetchall()
        legacy_memos = []
        if _table_exists(cursor, "memos"):
            legacy_memos = cursor.execute("SELECT * FROM memos").fetchall()
    finally:
        conn.close()

    counts = {"assets": 0, "transactions": 0, "memos": 0}
    with get_session() as session:
        id_map: Dict[int, int] = {}
        transactions_by_legacy_asset: Dict[int, List[Transaction]] = {}
        for row in legacy_transactions:
            trade_date = _legacy_date(row["trans_date"], f"transaction {row['id']}")
            trade_type = str(row["trans_type"] or "").upper()
            if trade_date is None or trade_type not in (TransactionType.BUY, TransactionType.SELL):
                logger.warning(f"Skipping legacy transaction {row['id']}: no usable date or type")
                continue
            transactions_by_legacy_asset.setdefault(row["asset_id"], []).append(Transaction(
                asset_id=0,
                transaction_date=trade_date,
                transaction_type=trade_type,
                quantity=int(row["quantity"] or 0),
                price=float(row["price"] or 0.0),
                commission=float(row["commission"] or 0.0),
                profit=float(row["profit"] or 0.0),
                memo=row["memo"] or "",
            ))

        for row in legacy_assets:
            product_id = str(row["product_id"] or "").strip()
            product_class = LEGACY_PRODUCT_CLASSES.get(product_id)
            if product_class is None:
                logger.warning(f"Legacy asset {row['id']} has product_id {product_id!r}; importing as physical")
                product_class = ProductClass.PHYSICAL.value

            held = Position(
                quantity=int(row["quantity"] or 0),
                cost_basis=float(row["cost_price"] or 0.0),
                purchase_date=_legacy_date(row["purchase_date"], f"asset {row['id']}"),
                closing_date=_legacy_date(row["selling_date"], f"asset {row['id']}"),
                cumulative_sold_amount=float(row["sold_price"] or 0.0),
                cumulative_sold_commission=float(row["sold_commission"] or 0.0),
                cumulative_realized_profit=float(row["trade_profit"] or 0.0),
            )
            history = transactions_by_legacy_asset.get(row["id"], [])
            opening = rebase_opening(held, history)
            if opening is None:
                logger.warning(f"Legacy asset {row['id']} does not match its transactions; opening position left at its totals")
                opening = held

            asset = Asset(
                product_class=product_class,
                name=row["name"] or "",
                category=row["category"] or "",
                condition=row["condition"] or "",
                sale_price=float(row["sale_price"] or 0.0),
                buy_price=float(row["buy_price"] or 0.0),
                memo=row["memo"] or "",
                estimated_flag=bool(row["estimated_flag"]),
            )
            held.apply_to(asset)
            opening.apply_as_opening(asset)
            asset = AssetRepository.add(asset, session=session)
            id_map[row["id"]] = asset.id
            counts["assets"] += 1

        for legacy_asset_id, history in transactions_by_legacy_asset.items():
            new_asset_id: Optional[int] = id_map.get(legacy_asset_id)
            if new_asset_id is None:
                logger.warning(f"Dropping {len(history)} legacy transaction(s) of missing asset {legacy_asset_id}")
                continue
            for tx in history:
                tx.asset_id = new_asset_id
                TransactionRepository.add(tx, session=session)
                counts["transactions"] += 1

        for row in legacy_memos:
            memo_date = _legacy_date(row["date"], "memos")
            if memo_date is None:
                continue
            session.merge(Memo(memo_date=memo_date, text=row["memo"] or ""))
            counts["memos"] += 1

        session.commit()

    logger.info(f"Imported legacy data from {legacy_path}: {counts}")
    return counts


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    init_db()
    result = import_legacy_database(sys.argv[1])
    print("=" * 60)
    print(f"Imported {result['assets']} assets, {result['transactions']} transactions, "
          f"{result['memos']} memos")
    print("=" * 60)
