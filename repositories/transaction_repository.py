"""
Transaction Repository - data access layer for Transaction model.
Transactions are append-only: there is no update, and they are only deleted
together with their asset.
"""

from typing import Optional, List
from sqlmodel import Session, select, col

from models import Transaction
from repositories.base import run_in_session, finish_write


class TransactionRepository:
    """Repository for Transaction operations."""

    @staticmethod
    def add(transaction: Transaction, session: Optional[Session] = None) -> Transaction:
        """
        Append a transaction to the ledger.

        Args:
            transaction: Unsaved Transaction (asset_id must be set)
            session: Optional existing session; the caller then commits

        Returns:
            The stored Transaction
        """
        def _add(sess: Session, owns_session: bool) -> Transaction:
            sess.add(transaction)
            finish_write(sess, owns_session, transaction)
            return transaction

        return run_in_session(_add, session)

    @staticmethod
    def get_by_asset(asset_id: int, session: Optional[Session] = None) -> List[Transaction]:
        """
        Retrieve all transactions for a specific asset, most recent first.

        Args:
            asset_id: Asset ID to look up
            session: Optional existing session for transaction reuse

        Returns:
            List of Transaction objects
        """
        def _get_by_asset(sess: Session, owns_session: bool) -> List[Transaction]:
            statement = (
                select(Transaction)
                .where(Transaction.asset_id == asset_id)
                .order_by(col(Transaction.transaction_date).desc(), col(Transaction.id).desc())
            )
            return list(sess.exec(statement).all())

        return run_in_session(_get_by_asset, session)

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Transaction]:
        """Retrieve all transactions from the database."""
        def _get_all(sess: Session, owns_session: bool) -> List[Transaction]:
            return list(sess.exec(select(Transaction).order_by(Transaction.id)).all())

        return run_in_session(_get_all, session)
