"""
FIFO matcher: attributes the cost of the oldest open lots to each SELL.

Cost basis of a sale is the sum of the consumed lots' costs (buy commission
is part of lot cost); realized P&L is proceeds minus sell commission minus
cost basis. All intermediate amounts are kept at 6 decimal places so that
matching a sale incrementally and replaying the whole history agree exactly.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlmodel import Session

from exceptions import InsufficientLotsError, InvalidTransactionError
from models import AccountScope, Transaction
from repositories import TransactionRepository
from services.common import ZERO, quantize_internal, to_decimal
from services.lot_ledger import Lot, LotLedger
from services.risk import calculate_r_multiple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotConsumption:
    """Shares taken from one lot by one sale."""
    lot_id: int
    quantity: Decimal
    cost: Decimal
    acquired_at: datetime
    risk_per_share: Optional[Decimal] = None


@dataclass
class FifoResult:
    """Outcome of matching one SELL against the lot ledger."""
    realized_pnl: Decimal
    cost_basis: Decimal
    consumptions: List[LotConsumption] = field(default_factory=list)

    @property
    def consumed_lots(self) -> List[Tuple[int, Decimal]]:
        return [(c.lot_id, c.quantity) for c in self.consumptions]

    @property
    def initial_risk(self) -> Optional[Decimal]:
        """Risk originally taken on the shares sold; None when no consumed lot had a stop."""
        risky = [c for c in self.consumptions if c.risk_per_share is not None]
        if not risky:
            return None
        return quantize_internal(sum((c.quantity * c.risk_per_share for c in risky), ZERO))

    @property
    def r_multiple(self) -> Optional[Decimal]:
        return calculate_r_multiple(self.realized_pnl, self.initial_risk)

    @property
    def first_acquired_at(self) -> Optional[datetime]:
        if not self.consumptions:
            return None
        return min(c.acquired_at for c in self.consumptions)


@dataclass
class FifoReplay:
    """FIFO state derived from a full transaction history."""
    results: Dict[int, FifoResult] = field(default_factory=dict)  # sell id -> result
    remaining: Dict[int, Decimal] = field(default_factory=dict)  # buy id -> remaining quantity


def replay_order(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Transactions in the order they are applied: transaction_date, then id."""
    return sorted(transactions, key=lambda tx: (tx.transaction_date, tx.id))


class FifoMatcher:
    """
    FIFO lot matching for SELL transactions.
    Short selling is not supported: a sale larger than the eligible lots is rejected.
    """

    @staticmethod
    def match(sell: Transaction, ledger: LotLedger) -> FifoResult:
        """
        Consume the ledger's oldest eligible lots for a SELL.

        Only the in-memory ledger is modified; nothing is persisted.

        Args:
            sell: SELL transaction (quantity, price, commission, date)
            ledger: Open lots of the sale's (account, stock) pair

        Returns:
            FifoResult with realized P&L, cost basis and per-lot consumption

        Raises:
            InsufficientLotsError: If the eligible lots hold fewer shares than sold
        """
        if not sell.is_sell:
            raise InvalidTransactionError(f"FIFO matching requires a SELL, got {sell.transaction_type}")

        quantity = to_decimal(sell.quantity)
        eligible = ledger.available(before=sell.transaction_date)
        available = sum((lot.remaining_quantity for lot in eligible), ZERO)
        if available < quantity:
            logger.error(
                f"Rejecting sell of {quantity} stock {sell.stock_id} ({ledger.scope}): only {available} in lots"
            )
            raise InsufficientLotsError(sell.stock_id, AccountScope.of(sell.account_id), quantity, available)

        to_allocate = quantity
        consumptions: List[LotConsumption] = []
        for lot in eligible:
            if to_allocate <= 0:
                break
            take = min(lot.remaining_quantity, to_allocate)
            consumptions.append(LotConsumption(
                lot_id=lot.transaction_id,
                quantity=take,
                cost=lot.cost_of(take),
                acquired_at=lot.acquired_at,
                risk_per_share=lot.risk_per_share,
            ))
            ledger.consume(lot.transaction_id, take)
            to_allocate -= take

        cost_basis = quantize_internal(sum((c.cost for c in consumptions), ZERO))
        proceeds = to_decimal(sell.price) * quantity - to_decimal(sell.commission)
        realized_pnl = quantize_internal(proceeds - cost_basis)

        logger.debug(
            f"FIFO sell {sell.id}: {len(consumptions)} lots, cost basis {cost_basis}, realized {realized_pnl}"
        )
        return FifoResult(realized_pnl=realized_pnl, cost_basis=cost_basis, consumptions=consumptions)

    @staticmethod
    def calculate_fifo_profit(sell: Transaction, session: Session) -> FifoResult:
        """Match a SELL against the persisted open lots dated before it."""
        ledger = LotLedger.load(
            session, AccountScope.of(sell.account_id), sell.stock_id, before=sell.transaction_date
        )
        return FifoMatcher.match(sell, ledger)

    @staticmethod
    def apply_fifo_result(sell: Transaction, result: FifoResult, session: Session) -> None:
        """
        Persist a match inside the caller's unit of work.

        Writes realized_pnl, cost_basis and r_multiple on the SELL and
        decrements remaining_quantity on every consumed BUY row.
        """
        for consumption in result.consumptions:
            buy = TransactionRepository.get_by_id(consumption.lot_id, session=session, for_update=True)
            remaining = to_decimal(buy.remaining_quantity) - consumption.quantity
            if remaining < 0:
                raise InsufficientLotsError(
                    sell.stock_id, AccountScope.of(sell.account_id), consumption.quantity, buy.remaining_quantity
                )
            buy.remaining_quantity = quantize_internal(remaining)
            session.add(buy)

        sell.realized_pnl = result.realized_pnl
        sell.cost_basis = result.cost_basis
        sell.r_multiple = result.r_multiple
        session.add(sell)
        session.flush()

    @staticmethod
    def replay(transactions: Iterable[Transaction]) -> FifoReplay:
        """
        Re-derive FIFO state from a complete history of one pair.

        Stored remaining_quantity/realized_pnl values are ignored; every BUY
        starts full and every SELL is matched in (date, id) order.

        Raises:
            InsufficientLotsError: On the first SELL the earlier lots cannot cover
        """
        ordered = replay_order(transactions)
        scope = AccountScope.of(ordered[0].account_id) if ordered else AccountScope.legacy()
        stock_id = ordered[0].stock_id if ordered else None
        ledger = LotLedger(scope=scope, stock_id=stock_id)
        outcome = FifoReplay()

        for tx in ordered:
            if tx.is_buy:
                ledger.add(Lot.from_transaction(tx, fresh=True))
            else:
                outcome.results[tx.id] = FifoMatcher.match(tx, ledger)

        outcome.remaining = ledger.remaining_by_lot()
        return outcome
