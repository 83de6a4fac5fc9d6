"""
Session handling shared by the repositories.

Every repository method accepts an optional session. Without one, the method
opens its own session and commits. With one, it only flushes: the caller owns
the unit of work and decides when to commit or roll back, which is how the
ledger service writes an asset update and its transaction together.
"""

from typing import Callable, Optional, TypeVar
from sqlmodel import Session

from db_engine import get_engine

T = TypeVar("T")


def run_in_session(work: Callable[[Session, bool], T], session: Optional[Session] = None) -> T:
    """Run ``work(session, owns_session)`` in the given or a fresh session."""
    if session is not None:
        return work(session, False)
    with Session(get_engine()) as own_session:
        return work(own_session, True)


def finish_write(sess: Session, owns_session: bool, *instances) -> None:
    """Commit and refresh when the session is ours, otherwise flush for the caller."""
    if not owns_session:
        sess.flush()
        return
    try:
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    for instance in instances:
        sess.refresh(instance)
