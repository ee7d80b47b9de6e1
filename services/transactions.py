"""
Transaction orchestrator: entry point for creating, editing and deleting
BUY/SELL transactions.

Each mutation runs in one unit of work spanning the transaction row, the
FIFO lot updates and the position row, so either all of them change or
none do. Stock enrichment and account resolution happen before the unit of
work opens and never hold the write lock.
"""

import logging
from datetime import datetime
from typing import List, Optional

from exceptions import TransactionNotFoundError
from models import AccountScope, Transaction, TransactionCreate, TransactionType, TransactionUpdate
from repositories import TransactionRepository
from services.accounts import AccountService
from services.common import ZERO, quantize_internal
from services.fifo import FifoMatcher
from services.portfolio import PortfolioService
from services.recalculation import RecalculationEngine
from services.risk import apply_risk_fields
from services.stocks import StockService
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# Amounts stored at 6 dp; rounded on the way in so stored and in-memory values match
_AMOUNT_FIELDS = ('quantity', 'price', 'commission', 'stop_loss_price', 'take_profit_price')
# Fields that can never be cleared by an update
_REQUIRED_FIELDS = ('quantity', 'price', 'transaction_date', 'account_id')


def _normalize_amount(field_name: str, value):
    if value is None:
        return ZERO if field_name == 'commission' else None
    return quantize_internal(value)


class TransactionService:
    """Create, update, delete and query transactions."""

    @staticmethod
    def create_transaction(request: TransactionCreate, user_id: Optional[int] = None) -> Transaction:
        """
        Record a BUY or SELL.

        BUY: stored with remaining_quantity = quantity, then the position is updated.
        SELL: stored, matched against the open lots (FIFO), then the position is updated.
        A transaction dated at or before an existing one of the same pair is
        stored and the pair is recalculated from its full history instead.

        Args:
            request: Validated creation request
            user_id: Owner used to resolve the default account

        Returns:
            The stored transaction with its derived FIFO fields

        Raises:
            AccountNotFoundError: If the account (or the default account) does not exist
            InsufficientLotsError: If a SELL exceeds the shares held at its date
        """
        account = AccountService.resolve_account(request.account_id, user_id)
        stock = StockService.find_or_create_stock(request.stock_symbol)

        transaction = Transaction(
            account_id=account.id,
            stock_id=stock.id,
            transaction_type=request.transaction_type,
            transaction_date=request.transaction_date,
            notes=request.notes,
            **{name: _normalize_amount(name, getattr(request, name)) for name in _AMOUNT_FIELDS}
        )
        if transaction.is_buy:
            transaction.remaining_quantity = transaction.quantity
        apply_risk_fields(transaction)

        scope = AccountScope.of(account.id)
        with UnitOfWork() as uow:
            backdated = TransactionRepository.exists_after(
                scope, stock.id, transaction.transaction_date, session=uow.session
            )
            TransactionRepository.add(transaction, session=uow.session)

            if backdated:
                logger.info(f"Back-dated {transaction.transaction_type.value} {transaction.id}, recalculating")
                RecalculationEngine.recalculate(scope, stock.id, uow)
            elif transaction.is_buy:
                PortfolioService.update_portfolio(transaction, uow)
            else:
                result = FifoMatcher.calculate_fifo_profit(transaction, uow.session)
                FifoMatcher.apply_fifo_result(transaction, result, uow.session)
                PortfolioService.update_portfolio(transaction, uow)

        logger.info(
            f"Created {transaction.transaction_type.value} {transaction.id}: "
            f"{transaction.quantity} {stock.symbol} @ {transaction.price} ({scope})"
        )
        return transaction

    @staticmethod
    def update_transaction(transaction_id: int, request: TransactionUpdate) -> Transaction:
        """
        Apply a partial edit and recalculate the affected pair(s).

        Only fields set on the request are changed. Moving a transaction to
        another account recalculates both the old and the new pair.
        """
        changes = request.model_dump(exclude_unset=True)
        for name in _REQUIRED_FIELDS:
            if name in changes and changes[name] is None:
                del changes[name]
        if 'account_id' in changes:
            AccountService.get_account_entity(changes['account_id'])

        with UnitOfWork() as uow:
            transaction = TransactionRepository.get_by_id(transaction_id, session=uow.session, for_update=True)
            if transaction is None:
                raise TransactionNotFoundError(transaction_id)
            old_scope = AccountScope.of(transaction.account_id)

            for name, value in changes.items():
                if name in _AMOUNT_FIELDS:
                    value = _normalize_amount(name, value)
                setattr(transaction, name, value)
            TransactionRepository.save(transaction, session=uow.session)

            new_scope = AccountScope.of(transaction.account_id)
            RecalculationEngine.recalculate(new_scope, transaction.stock_id, uow)
            if new_scope != old_scope:
                RecalculationEngine.recalculate(old_scope, transaction.stock_id, uow)

        logger.info(f"Updated transaction {transaction_id}: {sorted(changes)}")
        return transaction

    @staticmethod
    def delete_transaction(transaction_id: int) -> None:
        """
        Delete a transaction and recalculate its pair.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            InsufficientLotsError: If a later SELL depended on the deleted BUY;
                nothing is deleted in that case
        """
        with UnitOfWork() as uow:
            transaction = TransactionRepository.get_by_id(transaction_id, session=uow.session, for_update=True)
            if transaction is None:
                raise TransactionNotFoundError(transaction_id)
            scope = AccountScope.of(transaction.account_id)
            stock_id = transaction.stock_id

            TransactionRepository.delete(transaction, session=uow.session)
            RecalculationEngine.recalculate(scope, stock_id, uow)

        logger.info(f"Deleted transaction {transaction_id} (stock {stock_id}, {scope})")

    @staticmethod
    def get_transaction(transaction_id: int) -> Transaction:
        transaction = TransactionRepository.get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    @staticmethod
    def list_transactions(
        account_id: Optional[int] = None,
        symbol: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        transaction_type: Optional[TransactionType] = None
    ) -> List[Transaction]:
        """Transactions matching the given filters, newest first."""
        return TransactionRepository.find(
            account_id=account_id,
            symbol=symbol,
            start=start,
            end=end,
            transaction_type=transaction_type,
        )
