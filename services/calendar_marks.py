"""
Calendar marks: per-date profit sign and memo presence.
Recomputed in full on every call; there is no incremental path.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List

from services.common import coerce_date
from services.profit import profit_by_date


class ProfitSign(str, Enum):
    NONE = "none"
    PROFIT = "profit"
    LOSS = "loss"


@dataclass
class CalendarMark:
    """Markers for one calendar date."""
    profit_sign: ProfitSign = ProfitSign.NONE
    has_memo: bool = False
    total_profit: float = 0.0

    @property
    def marker_keys(self) -> List[str]:
        """Marker keys in display order, e.g. ['loss', 'memo']."""
        keys = []
        if self.profit_sign != ProfitSign.NONE:
            keys.append(self.profit_sign.value)
        if self.has_memo:
            keys.append("memo")
        return keys


def classify_profit(total: float) -> ProfitSign:
    if total > 0:
        return ProfitSign.PROFIT
    if total < 0:
        return ProfitSign.LOSS
    return ProfitSign.NONE


def _memo_items(memos: Any) -> Iterable:
    if hasattr(memos, "items"):
        return memos.items()
    return ((memo.memo_date, memo.text) for memo in memos)


def compute_calendar_marks(assets: Iterable[Any], transactions: Iterable[Any], memos: Any) -> Dict[date, CalendarMark]:
    """
    Build date -> CalendarMark from the current records.

    Profit events on the same date are netted before the sign is taken, so a
    +50 and a -80 sale on one day give a single loss mark. Any date whose memo
    has non-blank text gets ``has_memo``, with or without profit events.

    Args:
        assets: Live Asset records
        transactions: Transaction records
        memos: Memo records, or a mapping of date -> text
    """
    marks: Dict[date, CalendarMark] = {}

    for settled_on, total in profit_by_date(assets, transactions).items():
        marks[settled_on] = CalendarMark(profit_sign=classify_profit(total), total_profit=total)

    for memo_date, text in _memo_items(memos):
        memo_day = coerce_date(memo_date)
        if memo_day is None or not (text or "").strip():
            continue
        marks.setdefault(memo_day, CalendarMark()).has_memo = True

    return marks
