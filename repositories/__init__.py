"""
Repositories package for the asset ledger.
Provides the data access layer (the ledger store) for all database operations.
"""

from repositories.asset_repository import AssetRepository, AssetSort
from repositories.transaction_repository import TransactionRepository
from repositories.memo_repository import MemoRepository

__all__ = [
    'AssetRepository',
    'AssetSort',
    'TransactionRepository',
    'MemoRepository',
]
