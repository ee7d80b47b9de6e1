"""
Portfolio analysis: valuation summary, per-symbol view and sector allocation.
Every result is cached under a CacheKeys key and evicted by the unit of work
that changes the underlying positions.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

import pandas as pd

from exceptions import StockNotFoundError
from models import AccountScope, Portfolio, Stock, TransactionType
from repositories import PortfolioRepository, StockRepository, TransactionRepository
from services.cache import CacheKeys, get_portfolio_cache
from services.common import ZERO, percent, round_money, to_decimal
from services.lot_ledger import LotLedger
from services.market_data import MarketDataService

logger = logging.getLogger(__name__)


class AnalysisService:
    """Read-side aggregates over positions and realized results."""

    @staticmethod
    def _prices_for(stocks: List[Stock]) -> Dict[str, Optional[Decimal]]:
        raw = MarketDataService.get_current_prices_batch([(s.symbol, s.market_type) for s in stocks])
        return {symbol: (to_decimal(price) if price else None) for symbol, price in raw.items()}

    @staticmethod
    def _holding_row(portfolio: Portfolio, stock: Stock, price: Optional[Decimal]) -> Dict:
        quantity = to_decimal(portfolio.quantity)
        investment = to_decimal(portfolio.total_investment)
        market_value = quantity * price if price is not None else None
        unrealized = market_value - investment if market_value is not None else None
        fifo_cost = LotLedger.held(AccountScope.of(portfolio.account_id), stock.id).remaining_cost()
        return {
            'account_id': portfolio.account_id,
            'stock_id': stock.id,
            'symbol': stock.symbol,
            'name': stock.name,
            'sector': stock.sector.value if stock.sector else None,
            'quantity': quantity,
            'average_price': portfolio.average_price,
            'total_investment': round_money(investment),
            'fifo_remaining_cost': round_money(fifo_cost),
            'current_price': round_money(price) if price is not None else None,
            'market_value': round_money(market_value) if market_value is not None else None,
            'unrealized_pnl': round_money(unrealized) if unrealized is not None else None,
            'unrealized_pnl_pct': percent(unrealized, investment) if unrealized is not None else None,
        }

    @staticmethod
    def get_portfolio_summary(account_id: Optional[int] = None) -> Dict:
        """
        Valuation of all open positions.

        Args:
            account_id: Restrict to one account (None = every account)

        Returns:
            Dict with 'holdings' and totals: investment, market value,
            unrealized and realized P&L. Positions without a current price
            are valued at cost. fifo_remaining_cost is the cost of the unsold
            lots, which reconciles the average-cost investment with realized P&L.
        """
        key = CacheKeys.PORTFOLIO_SUMMARY if account_id is None else CacheKeys.account_summary(account_id)
        return get_portfolio_cache().get_or_load(key, lambda: AnalysisService._build_summary(account_id))

    @staticmethod
    def _build_summary(account_id: Optional[int]) -> Dict:
        positions = PortfolioRepository.get_all(account_id=account_id)
        stocks = {p.stock_id: StockRepository.get_by_id(p.stock_id) for p in positions}
        prices = AnalysisService._prices_for(list(stocks.values()))

        holdings = [AnalysisService._holding_row(p, stocks[p.stock_id], prices.get(stocks[p.stock_id].symbol))
                    for p in positions]

        total_investment = sum((to_decimal(p.total_investment) for p in positions), ZERO)
        fifo_cost = sum((h['fifo_remaining_cost'] for h in holdings), ZERO)
        total_value = sum(
            (h['market_value'] if h['market_value'] is not None else h['total_investment'] for h in holdings),
            ZERO
        )
        unrealized = total_value - total_investment

        sells = TransactionRepository.find(account_id=account_id, transaction_type=TransactionType.SELL)
        realized = sum((to_decimal(tx.realized_pnl) for tx in sells), ZERO)

        return {
            'account_id': account_id,
            'holdings': holdings,
            'position_count': len(holdings),
            'total_investment': round_money(total_investment),
            'total_fifo_remaining_cost': round_money(fifo_cost),
            'total_market_value': round_money(total_value),
            'total_unrealized_pnl': round_money(unrealized),
            'total_unrealized_pnl_pct': percent(unrealized, total_investment),
            'total_realized_pnl': round_money(realized),
        }

    @staticmethod
    def get_symbol_position(symbol: str) -> Dict:
        """
        One symbol across every account: held quantity, carrying cost,
        realized P&L and the per-account positions.
        """
        stock = StockRepository.get_by_symbol(symbol)
        if stock is None:
            raise StockNotFoundError(symbol, f"Stock not found with symbol: {symbol}")
        return get_portfolio_cache().get_or_load(
            CacheKeys.symbol(stock.symbol), lambda: AnalysisService._build_symbol_position(stock)
        )

    @staticmethod
    def _build_symbol_position(stock: Stock) -> Dict:
        positions = [p for p in PortfolioRepository.get_all() if p.stock_id == stock.id]
        quantity = sum((to_decimal(p.quantity) for p in positions), ZERO)
        investment = sum((to_decimal(p.total_investment) for p in positions), ZERO)

        sells = TransactionRepository.find(symbol=stock.symbol, transaction_type=TransactionType.SELL)
        realized = sum((to_decimal(tx.realized_pnl) for tx in sells), ZERO)

        return {
            'symbol': stock.symbol,
            'name': stock.name,
            'quantity': quantity,
            'total_investment': round_money(investment),
            'average_price': round_money(investment / quantity) if quantity > 0 else None,
            'realized_pnl': round_money(realized),
            'positions': [
                {
                    'account_id': p.account_id,
                    'quantity': to_decimal(p.quantity),
                    'average_price': p.average_price,
                    'total_investment': round_money(p.total_investment),
                }
                for p in positions
            ],
        }

    @staticmethod
    def get_sector_allocation() -> List[Dict]:
        """
        Weight of each sector in the portfolio, by cost and by market value.
        Stocks without a sector are grouped under OTHER.
        """
        return get_portfolio_cache().get_or_load(CacheKeys.SECTOR_ALLOCATION, AnalysisService._build_sector_allocation)

    @staticmethod
    def _build_sector_allocation() -> List[Dict]:
        positions = PortfolioRepository.get_all()
        if not positions:
            return []

        stocks = {p.stock_id: StockRepository.get_by_id(p.stock_id) for p in positions}
        prices = AnalysisService._prices_for(list(stocks.values()))

        rows = []
        for p in positions:
            stock = stocks[p.stock_id]
            investment = float(p.total_investment)
            price = prices.get(stock.symbol)
            rows.append({
                'sector': stock.sector.value if stock.sector else "OTHER",
                'symbol': stock.symbol,
                'cost': investment,
                'value': float(to_decimal(p.quantity) * price) if price is not None else investment,
            })

        df = pd.DataFrame(rows)
        grouped = df.groupby('sector').agg(
            cost=('cost', 'sum'),
            value=('value', 'sum'),
            symbols=('symbol', lambda s: sorted(set(s))),
        )
        total_cost = df['cost'].sum()
        total_value = df['value'].sum()
        grouped['cost_weight_pct'] = grouped['cost'] / total_cost * 100 if total_cost else 0.0
        grouped['value_weight_pct'] = grouped['value'] / total_value * 100 if total_value else 0.0
        grouped = grouped.sort_values('value', ascending=False)

        allocation = []
        for sector, row in grouped.iterrows():
            allocation.append({
                'sector': sector,
                'symbols': row['symbols'],
                'total_cost': round_money(row['cost']),
                'market_value': round_money(row['value']),
                'cost_weight_pct': round_money(row['cost_weight_pct']),
                'value_weight_pct': round_money(row['value_weight_pct']),
            })

        logger.debug(f"Sector allocation over {len(positions)} positions: {len(allocation)} sectors")
        return allocation
