"""
Recalculation engine: rebuilds FIFO lot state and the position of one
(account, stock) pair from its complete transaction history.

Used whenever history changes (edit, delete, back-dated entry). The result
depends only on the stored transactions, never on previously derived values.
"""

import logging
from typing import Optional

from models import AccountScope, Portfolio
from repositories import PortfolioRepository, TransactionRepository
from services.fifo import FifoMatcher
from services.portfolio import PortfolioService, PositionState
from services.risk import apply_risk_fields
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class RecalculationEngine:
    """Full-history replay for one pair or for every pair."""

    @staticmethod
    def recalculate(scope: AccountScope, stock_id: int, uow: UnitOfWork) -> Optional[Portfolio]:
        """
        Replay every transaction of a pair and overwrite the derived state.

        Every BUY gets its replayed remaining_quantity, every SELL its
        realized_pnl, cost_basis and r_multiple, and the position row is
        rewritten (or deleted when nothing is held).

        Args:
            scope: Account scope of the pair
            stock_id: Stock of the pair
            uow: Active unit of work; nothing is committed here

        Returns:
            The rebuilt position row, or None if the position is closed

        Raises:
            InsufficientLotsError: If some SELL is no longer covered by earlier BUYs
        """
        session = uow.session
        transactions = TransactionRepository.find_by_scope_and_stock(
            scope, stock_id, session=session, for_update=True
        )

        fifo = FifoMatcher.replay(transactions)

        for tx in transactions:
            apply_risk_fields(tx)
            if tx.is_buy:
                tx.remaining_quantity = fifo.remaining[tx.id]
                tx.realized_pnl = None
                tx.cost_basis = None
                tx.r_multiple = None
            else:
                result = fifo.results[tx.id]
                tx.remaining_quantity = None
                tx.realized_pnl = result.realized_pnl
                tx.cost_basis = result.cost_basis
                tx.r_multiple = result.r_multiple
            session.add(tx)
        session.flush()

        state = PositionState.replay(transactions)
        portfolio = PortfolioService.write_position(state, scope, stock_id, uow)

        logger.info(
            f"Recalculated stock {stock_id} ({scope}): {len(transactions)} transactions, "
            f"{len(fifo.results)} sells, position qty {state.quantity}"
        )
        return portfolio

    @staticmethod
    def recalculate_all(uow: UnitOfWork) -> int:
        """
        Rebuild every pair that has transactions or a position row.

        Returns:
            Number of pairs recalculated
        """
        pairs = set(TransactionRepository.distinct_pairs(session=uow.session))
        for portfolio in PortfolioRepository.get_all(session=uow.session):
            pairs.add((portfolio.account_id, portfolio.stock_id))

        ordered = sorted(pairs, key=lambda pair: (pair[0] is not None, pair[0] or 0, pair[1]))
        for account_id, stock_id in ordered:
            RecalculationEngine.recalculate(AccountScope.of(account_id), stock_id, uow)

        logger.info(f"Recalculated {len(ordered)} account/stock pairs")
        return len(ordered)
