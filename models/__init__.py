"""
Database models for the asset ledger.
All SQLModel table definitions are centralized here.
"""

from models.asset import Asset, ProductClass
from models.transaction import Transaction, TransactionType
from models.memo import Memo

__all__ = [
    'Asset',
    'ProductClass',
    'Transaction',
    'TransactionType',
    'Memo',
]
