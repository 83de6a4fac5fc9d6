"""Ledger-specific exceptions.

Validation errors (InvalidInput, InsufficientHoldings) are raised before any
state is touched. StoreFailure wraps persistence errors, QuoteLookupFailure
wraps price-source errors.
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""


class InvalidInput(LedgerError):
    """Non-positive quantity/price or otherwise unparseable input."""


class InsufficientHoldings(LedgerError):
    """SELL quantity exceeds the units currently held."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"Cannot sell {requested} units, only {available} held")


class AssetNotFoundError(LedgerError):
    """Asset not found in the store."""

    def __init__(self, asset_id: int):
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")


class StoreFailure(LedgerError):
    """The ledger store failed; nothing from the operation was committed."""


class QuoteLookupFailure(LedgerError):
    """A quote source failed or found no price."""

    def __init__(self, source: str, query: str, reason: str):
        self.source = source
        self.query = query
        self.reason = reason
        super().__init__(f"{source} lookup for '{query}' failed: {reason}")
