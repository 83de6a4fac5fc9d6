"""
Portfolio service for valuation summaries and the dashboard snapshot.
Valuation uses the reference quotes stored on each asset (sale/buy price) and is
informational only; realized profit always comes from the accounting fields.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from db_engine import get_session
from models import ProductClass
from repositories import AssetRepository, TransactionRepository, MemoRepository
from services.calendar_marks import compute_calendar_marks
from services.common import parse_date
from services.errors import InvalidInput
from services.profit import compute_profit_stats

logger = logging.getLogger(__name__)


class PortfolioService:
    """
    Service for portfolio valuation and dashboard aggregation.
    """

    @staticmethod
    def get_asset_holding(asset) -> Dict:
        """
        Valuation of a single asset from its reference quote.

        Args:
            asset: Asset record

        Returns:
            Dictionary with market value, average cost and unrealized/realized PnL
        """
        quantity = asset.quantity or 0
        market_value = (asset.sale_price or 0.0) * quantity
        cost_basis = asset.cost_basis or 0.0
        avg_cost = cost_basis / quantity if quantity > 0 else 0.0
        unrealized = market_value - cost_basis if quantity > 0 else 0.0
        unrealized_pct = (unrealized / cost_basis * 100) if cost_basis > 0 else 0.0

        return {
            'asset_id': asset.id,
            'name': asset.name,
            'product_class': asset.product_class,
            'category': asset.category,
            'quantity': quantity,
            'sale_price': round(asset.sale_price or 0.0, 2),
            'buy_price': round(asset.buy_price or 0.0, 2),
            'market_value': round(market_value, 2),
            'buy_value': round((asset.buy_price or 0.0) * quantity, 2),
            'avg_cost': round(avg_cost, 2),
            'cost_basis': round(cost_basis, 2),
            'unrealized_pnl': round(unrealized, 2),
            'unrealized_pnl_pct': round(unrealized_pct, 2),
            'realized_profit': round(asset.cumulative_realized_profit or 0.0, 2),
            'closing_date': asset.closing_date,
        }

    @staticmethod
    def summarize(assets: Iterable) -> Dict:
        """
        Calculate portfolio totals from a collection of assets.

        Returns:
            Dictionary with total/physical/financial market value, the highest
            valued asset, buy-price breakdown, cost and PnL totals, and holdings
        """
        holdings = [PortfolioService.get_asset_holding(asset) for asset in assets]

        def _total(key: str, product_class: Optional[str] = None) -> float:
            return round(sum(
                h[key] for h in holdings
                if product_class is None or h['product_class'] == product_class
            ), 2)

        highest: Optional[Dict] = None
        for h in holdings:
            if h['market_value'] > 0 and (highest is None or h['market_value'] > highest['market_value']):
                highest = h

        return {
            'total_market_value': _total('market_value'),
            'physical_market_value': _total('market_value', ProductClass.PHYSICAL),
            'financial_market_value': _total('market_value', ProductClass.FINANCIAL),
            'total_buy_value': _total('buy_value'),
            'buy_value_breakdown': [
                {'asset_id': h['asset_id'], 'name': h['name'], 'buy_value': h['buy_value']}
                for h in holdings
            ],
            'highest_asset': (
                {'asset_id': highest['asset_id'], 'name': highest['name'], 'market_value': highest['market_value']}
                if highest else None
            ),
            'total_cost_basis': _total('cost_basis'),
            'total_unrealized_pnl': _total('unrealized_pnl'),
            'total_realized_profit': _total('realized_profit'),
            'holdings': holdings,
        }

    @staticmethod
    def get_portfolio_summary() -> Dict:
        """Portfolio totals over every stored asset."""
        return PortfolioService.summarize(AssetRepository.get_all())

    @staticmethod
    def get_top_holdings(limit: int = 5) -> List[Dict]:
        """Get top holdings by market value."""
        holdings = PortfolioService.get_portfolio_summary()['holdings']
        holdings.sort(key=lambda x: x['market_value'], reverse=True)
        return holdings[:limit]

    @staticmethod
    def get_dashboard(reference_date: Any = None) -> Dict[str, Any]:
        """
        Everything the dashboard shows for one selected date.

        Assets, transactions and memos are read in a single session so the
        figures come from one committed snapshot.

        Args:
            reference_date: Selected date (date or ISO text); defaults to today

        Returns:
            Dictionary with profit stats, calendar marks, the date's memo and
            the portfolio summary
        """
        reference = parse_date(reference_date, default=date.today())
        if reference is None:
            raise InvalidInput("A reference date is required")

        with get_session() as session:
            assets = AssetRepository.get_all(session=session)
            transactions = TransactionRepository.get_all(session=session)
            memos = MemoRepository.get_all(session=session)

        memo_text = next((m.text for m in memos if m.memo_date == reference), "")
        stats = compute_profit_stats(assets, transactions, reference)
        logger.debug(f"Dashboard for {reference}: {len(assets)} assets, {len(transactions)} transactions")

        return {
            'reference_date': reference,
            'profit': stats.to_dict(),
            'calendar_marks': compute_calendar_marks(assets, transactions, memos),
            'memo': memo_text,
            'portfolio': PortfolioService.summarize(assets),
        }
