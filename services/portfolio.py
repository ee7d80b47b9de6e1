"""
Portfolio aggregator: the running position (quantity, total investment,
average price) of each (account, stock) pair.

The same PositionState.apply() is used when a transaction is applied
incrementally and when a whole history is replayed, so both paths produce
identical rows. A position row exists only while quantity > 0.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from models import AccountScope, Portfolio, Transaction
from repositories import PortfolioRepository, StockRepository
from services.cache import CacheKeys
from services.common import ZERO, quantize_internal, round_money, to_decimal
from services.fifo import replay_order
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class PositionState:
    """Quantity and carrying cost of a position between transactions."""
    quantity: Decimal = ZERO
    total_investment: Decimal = ZERO

    @classmethod
    def from_portfolio(cls, portfolio: Optional[Portfolio]) -> "PositionState":
        if portfolio is None:
            return cls()
        return cls(quantity=to_decimal(portfolio.quantity), total_investment=to_decimal(portfolio.total_investment))

    @classmethod
    def replay(cls, transactions: Iterable[Transaction]) -> "PositionState":
        """Final state after applying every transaction in (date, id) order."""
        state = cls()
        for tx in replay_order(transactions):
            state.apply(tx)
        return state

    @property
    def is_open(self) -> bool:
        return self.quantity > 0

    @property
    def average_price(self) -> Optional[Decimal]:
        if not self.is_open:
            return None
        return round_money(self.total_investment / self.quantity)

    def apply(self, transaction: Transaction) -> None:
        """
        Apply one BUY or SELL.

        BUY adds price x quantity + commission to the investment. SELL removes
        the sold share of the investment using a ratio kept at 6 dp; selling
        everything (or more) closes the position and drops any remainder.
        """
        quantity = to_decimal(transaction.quantity)
        if transaction.is_buy:
            cost = to_decimal(transaction.price) * quantity + to_decimal(transaction.commission)
            self.quantity = quantize_internal(self.quantity + quantity)
            self.total_investment = quantize_internal(self.total_investment + cost)
            return

        if self.quantity - quantity <= 0:
            self.quantity = ZERO
            self.total_investment = ZERO
            return

        sold_ratio = quantize_internal(quantity / self.quantity)
        sold_investment = quantize_internal(self.total_investment * sold_ratio)
        self.total_investment = quantize_internal(self.total_investment - sold_investment)
        self.quantity = quantize_internal(self.quantity - quantity)


class PortfolioService:
    """Maintains Portfolio rows from transactions."""

    @staticmethod
    def update_portfolio(transaction: Transaction, uow: UnitOfWork) -> Optional[Portfolio]:
        """
        Apply one new transaction to its position.

        Args:
            transaction: Persisted BUY or SELL (after FIFO for a SELL)
            uow: Active unit of work

        Returns:
            The position row, or None if the position was closed
        """
        scope = AccountScope.of(transaction.account_id)
        portfolio = PortfolioRepository.get_by_scope_and_stock(
            scope, transaction.stock_id, session=uow.session, for_update=True
        )
        state = PositionState.from_portfolio(portfolio)
        state.apply(transaction)
        return PortfolioService.write_position(state, scope, transaction.stock_id, uow)

    @staticmethod
    def write_position(state: PositionState, scope: AccountScope, stock_id: int,
                       uow: UnitOfWork) -> Optional[Portfolio]:
        """
        Store a position state: upsert while open, delete the row once closed.
        Registers the affected cache keys on the unit of work.
        """
        session = uow.session
        portfolio = PortfolioRepository.get_by_scope_and_stock(scope, stock_id, session=session, for_update=True)

        stock = StockRepository.get_by_id(stock_id, session=session)
        uow.invalidate(*CacheKeys.for_position(stock.symbol if stock else None, scope.account_id))

        if not state.is_open:
            if portfolio is not None:
                PortfolioRepository.delete(portfolio, session=session)
                logger.info(f"Closed position in stock {stock_id} ({scope})")
            return None

        average_price = state.average_price
        if portfolio is None:
            portfolio = Portfolio(
                account_id=scope.account_id,
                stock_id=stock_id,
                quantity=state.quantity,
                average_price=average_price,
                total_investment=state.total_investment,
            )
        elif (portfolio.quantity != state.quantity
              or portfolio.total_investment != state.total_investment
              or portfolio.average_price != average_price):
            portfolio.quantity = state.quantity
            portfolio.total_investment = state.total_investment
            portfolio.average_price = average_price
            portfolio.updated_at = datetime.now()
        else:
            return portfolio

        PortfolioRepository.save(portfolio, session=session)
        logger.debug(
            f"Position stock {stock_id} ({scope}): qty {state.quantity}, "
            f"investment {state.total_investment}, avg {average_price}"
        )
        return portfolio

    @staticmethod
    def get_position(stock_id: int, account_id: Optional[int] = None) -> Optional[Portfolio]:
        """Position of one stock in an account (None = the no-account scope)."""
        return PortfolioRepository.get_by_scope_and_stock(AccountScope.of(account_id), stock_id)

    @staticmethod
    def list_positions(account_id: Optional[int] = None) -> List[Portfolio]:
        """All open positions, optionally restricted to one account."""
        return PortfolioRepository.get_all(account_id=account_id)
