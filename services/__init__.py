"""
Services package for the asset ledger.
Provides core business logic separated from presentation and data layers.
"""

from services.errors import (
    LedgerError,
    InvalidInput,
    InsufficientHoldings,
    AssetNotFoundError,
    StoreFailure,
    QuoteLookupFailure,
)
from services.common import (
    normalize_symbol,
    parse_quantity,
    parse_amount,
    parse_date,
    coerce_date,
)
from services.accounting import (
    Position,
    ReconciliationReport,
    apply_transaction,
    opening_position,
    rebase_opening,
    replay_ledger,
    reconcile,
)
from services.profit import ProfitStats, compute_profit_stats, profit_by_date
from services.calendar_marks import CalendarMark, ProfitSign, compute_calendar_marks
from services.quotes import QuoteSource, YahooFinanceQuoteSource, RakutenQuoteSource
from services.ledger import LedgerService, QuoteRefresh
from services.portfolio import PortfolioService

__all__ = [
    # Errors
    'LedgerError',
    'InvalidInput',
    'InsufficientHoldings',
    'AssetNotFoundError',
    'StoreFailure',
    'QuoteLookupFailure',
    # Common utilities
    'normalize_symbol',
    'parse_quantity',
    'parse_amount',
    'parse_date',
    'coerce_date',
    # Accounting
    'Position',
    'ReconciliationReport',
    'apply_transaction',
    'opening_position',
    'rebase_opening',
    'replay_ledger',
    'reconcile',
    # Aggregation
    'ProfitStats',
    'compute_profit_stats',
    'profit_by_date',
    'CalendarMark',
    'ProfitSign',
    'compute_calendar_marks',
    # Services
    'QuoteSource',
    'YahooFinanceQuoteSource',
    'RakutenQuoteSource',
    'LedgerService',
    'QuoteRefresh',
    'PortfolioService',
]
