"""
Asset Repository - data access layer for Asset model.
Optional session parameter lets callers group writes into one transaction.
"""

from enum import Enum
from typing import Any, Dict, Optional, List
from sqlmodel import Session, select, col, or_

from models import Asset, Transaction
from repositories.base import run_in_session, finish_write


class AssetSort(str, Enum):
    """List orderings offered by the asset screens."""
    NEWEST = "newest"  # purchase date, most recent first
    OLDEST = "oldest"
    PRICE_ASC = "price_asc"  # sale price
    PRICE_DESC = "price_desc"


class AssetRepository:
    """Repository for Asset CRUD operations."""

    @staticmethod
    def add(asset: Asset, session: Optional[Session] = None) -> Asset:
        """
        Insert a new asset.

        Args:
            asset: Unsaved Asset record
            session: Optional existing session; the caller then commits

        Returns:
            The stored Asset with its id assigned
        """
        def _add(sess: Session, owns_session: bool) -> Asset:
            sess.add(asset)
            finish_write(sess, owns_session, asset)
            return asset

        return run_in_session(_add, session)

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Asset]:
        """Retrieve all assets from the database."""
        def _get_all(sess: Session, owns_session: bool) -> List[Asset]:
            return list(sess.exec(select(Asset).order_by(Asset.id)).all())

        return run_in_session(_get_all, session)

    @staticmethod
    def get_by_id(asset_id: int, session: Optional[Session] = None) -> Optional[Asset]:
        """Retrieve an asset by its ID, or None if not found."""
        def _get_by_id(sess: Session, owns_session: bool) -> Optional[Asset]:
            return sess.get(Asset, asset_id)

        return run_in_session(_get_by_id, session)

    @staticmethod
    def save(asset: Asset, session: Optional[Session] = None) -> Asset:
        """Persist changes made to an asset record."""
        def _save(sess: Session, owns_session: bool) -> Asset:
            sess.add(asset)
            finish_write(sess, owns_session, asset)
            return asset

        return run_in_session(_save, session)

    @staticmethod
    def update(asset_id: int, changes: Dict[str, Any], session: Optional[Session] = None) -> Optional[Asset]:
        """
        Update the given fields of an asset.

        Args:
            asset_id: Asset ID to update
            changes: Field name -> new value
            session: Optional existing session; the caller then commits

        Returns:
            Updated Asset object or None if not found

        Raises:
            ValueError: if a field name is not an Asset column
        """
        editable = set(Asset.model_fields) - {"id"}
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Cannot update asset fields: {sorted(unknown)}")

        def _update(sess: Session, owns_session: bool) -> Optional[Asset]:
            asset = sess.get(Asset, asset_id)
            if asset is None:
                return None
            for name, value in changes.items():
                setattr(asset, name, value)
            sess.add(asset)
            finish_write(sess, owns_session, asset)
            return asset

        return run_in_session(_update, session)

    @staticmethod
    def delete(asset_id: int, session: Optional[Session] = None) -> bool:
        """
        Delete an asset and all its transactions.
        Transactions go first so no orphan outlives its asset.

        Returns:
            True if the asset existed and was deleted
        """
        def _delete(sess: Session, owns_session: bool) -> bool:
            asset = sess.get(Asset, asset_id)
            if asset is None:
                return False
            transactions = sess.exec(select(Transaction).where(Transaction.asset_id == asset_id)).all()
            for tx in transactions:
                sess.delete(tx)
            sess.flush()
            sess.delete(asset)
            finish_write(sess, owns_session)
            return True

        return run_in_session(_delete, session)

    @staticmethod
    def search(
        product_class: Optional[str] = None,
        text: str = "",
        category: Optional[str] = None,
        condition: Optional[str] = None,
        sort: AssetSort = AssetSort.NEWEST,
        session: Optional[Session] = None
    ) -> List[Asset]:
        """
        List assets for the asset screens.

        Args:
            product_class: Restrict to one ProductClass value
            text: Case-insensitive substring matched against name, category and condition
            category: Exact category filter
            condition: Exact condition filter
            sort: Ordering, see AssetSort
            session: Optional existing session for transaction reuse

        Returns:
            Matching Asset objects in the requested order
        """
        def _search(sess: Session, owns_session: bool) -> List[Asset]:
            statement = select(Asset)
            if product_class:
                statement = statement.where(Asset.product_class == product_class)
            if text and text.strip():
                pattern = f"%{text.strip()}%"
                statement = statement.where(or_(
                    col(Asset.name).ilike(pattern),
                    col(Asset.category).ilike(pattern),
                    col(Asset.condition).ilike(pattern),
                ))
            if category:
                statement = statement.where(Asset.category == category)
            if condition:
                statement = statement.where(Asset.condition == condition)

            order = AssetSort(sort)
            if order == AssetSort.NEWEST:
                statement = statement.order_by(col(Asset.purchase_date).desc().nulls_last(), col(Asset.id).desc())
            elif order == AssetSort.OLDEST:
                statement = statement.order_by(col(Asset.purchase_date).asc().nulls_last(), col(Asset.id).asc())
            elif order == AssetSort.PRICE_ASC:
                statement = statement.order_by(col(Asset.sale_price).asc(), col(Asset.id).asc())
            else:
                statement = statement.order_by(col(Asset.sale_price).desc(), col(Asset.id).asc())
            return list(sess.exec(statement).all())

        return run_in_session(_search, session)
