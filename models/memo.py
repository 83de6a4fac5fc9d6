"""
Memo model - free text keyed by calendar date, one per date.
"""

from datetime import date
from sqlmodel import SQLModel, Field


class Memo(SQLModel, table=True):
    memo_date: date = Field(primary_key=True)
    text: str = Field(default="")
