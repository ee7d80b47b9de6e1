"""
Lot ledger: the open BUY lots of one (account, stock) pair.

A lot is a BUY transaction seen as inventory. Lots are ordered oldest first
(transaction_date, then id) and are consumed in that order by SELLs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from sqlmodel import Session

from exceptions import InsufficientLotsError
from models import AccountScope, Transaction
from repositories import TransactionRepository
from services.common import ZERO, quantize_internal, to_decimal
from services.risk import risk_per_share

logger = logging.getLogger(__name__)


@dataclass
class Lot:
    """A BUY transaction viewed as an inventory unit."""
    transaction_id: int
    acquired_at: datetime
    quantity: Decimal
    remaining_quantity: Decimal
    total_cost: Decimal  # price x quantity + commission
    risk_per_share: Optional[Decimal] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction, fresh: bool = False) -> "Lot":
        """
        Build a lot from a BUY row.

        Args:
            transaction: BUY transaction
            fresh: Ignore the stored remaining_quantity and start full (replay)
        """
        quantity = to_decimal(transaction.quantity)
        if fresh or transaction.remaining_quantity is None:
            remaining = quantity
        else:
            remaining = to_decimal(transaction.remaining_quantity)
        total_cost = quantize_internal(
            to_decimal(transaction.price) * quantity + to_decimal(transaction.commission)
        )
        return cls(
            transaction_id=transaction.id,
            acquired_at=transaction.transaction_date,
            quantity=quantity,
            remaining_quantity=remaining,
            total_cost=total_cost,
            risk_per_share=risk_per_share(transaction.price, transaction.stop_loss_price),
        )

    @property
    def sort_key(self):
        return (self.acquired_at, self.transaction_id)

    def cost_of_remaining(self, remaining: Decimal) -> Decimal:
        """Carrying cost of `remaining` unsold shares of this lot."""
        if remaining == self.quantity:
            return self.total_cost
        return quantize_internal(self.total_cost * remaining / self.quantity)

    @property
    def remaining_cost(self) -> Decimal:
        return self.cost_of_remaining(self.remaining_quantity)

    def cost_of(self, quantity: Decimal) -> Decimal:
        """
        Cost of taking `quantity` shares out of what is left of this lot.

        Taken as the drop in remaining cost, so the fills of one lot always
        add up to exactly its total cost.
        """
        return self.remaining_cost - self.cost_of_remaining(self.remaining_quantity - quantity)


class LotLedger:
    """Ordered open lots for one (account scope, stock) pair."""

    def __init__(self, lots: Iterable[Lot] = (), scope: Optional[AccountScope] = None,
                 stock_id: Optional[int] = None):
        self.scope = scope if scope is not None else AccountScope.legacy()
        self.stock_id = stock_id
        self._lots: List[Lot] = sorted(lots, key=lambda lot: lot.sort_key)

    @classmethod
    def load(cls, session: Session, scope: AccountScope, stock_id: int, before: datetime) -> "LotLedger":
        """
        Load the lots a SELL dated `before` may consume.

        Only BUYs with remaining_quantity > 0 and transaction_date strictly
        before `before` are returned. The rows are locked for the caller's
        unit of work where the database supports row locks.
        """
        rows = TransactionRepository.find_open_lots(scope, stock_id, before, session=session, for_update=True)
        ledger = cls((Lot.from_transaction(row) for row in rows), scope=scope, stock_id=stock_id)
        logger.debug(f"Loaded {len(ledger)} open lots for stock {stock_id} ({scope}) before {before}")
        return ledger

    @classmethod
    def held(cls, scope: AccountScope, stock_id: int, session: Optional[Session] = None) -> "LotLedger":
        """Every lot of the pair that still holds shares, without locking."""
        rows = TransactionRepository.find_open_lots(scope, stock_id, session=session)
        return cls((Lot.from_transaction(row) for row in rows), scope=scope, stock_id=stock_id)

    def __iter__(self) -> Iterator[Lot]:
        return iter(self._lots)

    def __len__(self) -> int:
        return len(self._lots)

    def add(self, lot: Lot) -> None:
        self._lots.append(lot)
        self._lots.sort(key=lambda item: item.sort_key)

    def get(self, lot_id: int) -> Lot:
        for lot in self._lots:
            if lot.transaction_id == lot_id:
                return lot
        raise KeyError(lot_id)

    def available(self, before: Optional[datetime] = None) -> List[Lot]:
        """Lots with shares left, oldest first, optionally acquired strictly before `before`."""
        return [
            lot for lot in self._lots
            if lot.remaining_quantity > 0 and (before is None or lot.acquired_at < before)
        ]

    def available_quantity(self, before: Optional[datetime] = None) -> Decimal:
        return sum((lot.remaining_quantity for lot in self.available(before)), ZERO)

    def held_quantity(self) -> Decimal:
        return sum((lot.remaining_quantity for lot in self._lots), ZERO)

    def consume(self, lot_id: int, quantity: Decimal) -> Lot:
        """Take `quantity` shares out of a lot; a lot never goes below zero."""
        lot = self.get(lot_id)
        if quantity > lot.remaining_quantity:
            raise InsufficientLotsError(self.stock_id, self.scope, quantity, lot.remaining_quantity)
        lot.remaining_quantity = quantize_internal(lot.remaining_quantity - quantity)
        return lot

    def remaining_by_lot(self) -> Dict[int, Decimal]:
        return {lot.transaction_id: lot.remaining_quantity for lot in self._lots}

    def remaining_cost(self) -> Decimal:
        """FIFO carrying cost of every unsold share in the ledger."""
        return sum((lot.remaining_cost for lot in self._lots), ZERO)
