"""
Memo Repository - one free-text memo per calendar date.
"""

from datetime import date
from typing import Optional, List
from sqlmodel import Session, select

from models import Memo
from repositories.base import run_in_session, finish_write


class MemoRepository:
    """Repository for date-keyed memos."""

    @staticmethod
    def set(memo_date: date, text: str, session: Optional[Session] = None) -> Memo:
        """Save the memo for a date, replacing any existing one."""
        def _set(sess: Session, owns_session: bool) -> Memo:
            memo = sess.get(Memo, memo_date)
            if memo:
                memo.text = text
            else:
                memo = Memo(memo_date=memo_date, text=text)
            sess.add(memo)
            finish_write(sess, owns_session, memo)
            return memo

        return run_in_session(_set, session)

    @staticmethod
    def get(memo_date: date, session: Optional[Session] = None) -> str:
        """Memo text for a date, or an empty string."""
        def _get(sess: Session, owns_session: bool) -> str:
            memo = sess.get(Memo, memo_date)
            return memo.text if memo else ""

        return run_in_session(_get, session)

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Memo]:
        """All memos, oldest date first."""
        def _get_all(sess: Session, owns_session: bool) -> List[Memo]:
            return list(sess.exec(select(Memo).order_by(Memo.memo_date)).all())

        return run_in_session(_get_all, session)
