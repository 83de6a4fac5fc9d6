"""Record builders shared by the in-memory tests."""

from datetime import date

from models import Asset, ProductClass, Transaction, TransactionType


def make_asset(asset_id=None, product_class=ProductClass.FINANCIAL, **fields) -> Asset:
    """Unsaved Asset with sensible defaults."""
    values = {"name": "Test asset", "product_class": product_class.value}
    values.update(fields)
    return Asset(id=asset_id, **values)


def make_transaction(asset_id, on, transaction_type=TransactionType.SELL, profit=0.0, tx_id=None,
                     quantity=1, price=100.0) -> Transaction:
    return Transaction(
        id=tx_id,
        asset_id=asset_id,
        transaction_date=on,
        transaction_type=transaction_type.value,
        quantity=quantity,
        price=price,
        profit=profit,
    )
