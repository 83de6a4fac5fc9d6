"""Tests for input parsing and symbol normalization."""

from datetime import date, datetime

import pytest

from services.common import coerce_date, normalize_symbol, parse_amount, parse_date, parse_quantity
from services.errors import InvalidInput


@pytest.mark.parametrize("symbol,market,expected", [
    ("7203", "JP", "7203.T"),
    (" 7203.t ", "JP", "7203.T"),
    ("nvda", "US", "NVDA"),
    ("0700", "HK", "0700.HK"),
    ("600519", "CN", "600519.SS"),
    ("000001.SZ", "CN", "000001.SZ"),
    ("ABC", "XX", "ABC"),
])
def test_normalize_symbol(symbol, market, expected) -> None:
    assert normalize_symbol(symbol, market) == expected


def test_parse_quantity_accepts_whole_numbers() -> None:
    assert parse_quantity("3") == 3
    assert parse_quantity(" 4.0 ") == 4
    assert parse_quantity(5) == 5
    assert parse_quantity("0", allow_zero=True) == 0


@pytest.mark.parametrize("value", ["", None, "abc", "1.5", "0", "-2", True, "inf"])
def test_parse_quantity_rejects(value) -> None:
    with pytest.raises(InvalidInput):
        parse_quantity(value)


def test_parse_amount() -> None:
    assert parse_amount("") == 0.0
    assert parse_amount(None) == 0.0
    assert parse_amount("1,250.5") == 1250.5
    assert parse_amount(-3, allow_negative=True) == -3.0


@pytest.mark.parametrize("kwargs", [
    {"value": "x"},
    {"value": "-1"},
    {"value": "nan"},
    {"value": "0", "allow_zero": False},
    {"value": "", "allow_zero": False},
])
def test_parse_amount_rejects(kwargs) -> None:
    with pytest.raises(InvalidInput):
        parse_amount(**kwargs)


def test_parse_date() -> None:
    today = date(2024, 1, 1)
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_date("  ", default=today) == today
    assert parse_date(None) is None
    with pytest.raises(InvalidInput):
        parse_date("2023-02-29")


def test_coerce_date_is_lenient() -> None:
    assert coerce_date(datetime(2024, 3, 1, 12, 30)) == date(2024, 3, 1)
    assert coerce_date("2024-03-01T09:00:00") == date(2024, 3, 1)
    assert coerce_date("03/01/2024") is None
    assert coerce_date(20240301) is None
