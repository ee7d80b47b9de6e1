"""
Account service: CRUD for brokerage accounts and default-account handling.
Exactly one account per user is the default.
"""

import logging
from typing import List, Optional

from exceptions import AccountNotFoundError, InvalidStateError, ValidationError
from models import Account, AccountCreate, AccountType, AccountUpdate
from repositories import (
    AccountRepository,
    DividendRepository,
    PortfolioRepository,
    StockRepository,
    TransactionRepository,
)
from services.cache import CacheKeys
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAME = "Default"


class AccountService:
    """Account management."""

    @staticmethod
    def create_account(request: AccountCreate, user_id: Optional[int] = None) -> Account:
        """
        Create an account. The user's first account becomes the default.

        Raises:
            ValidationError: If the user already has an account with this name
        """
        name = request.name.strip()
        with UnitOfWork() as uow:
            if AccountRepository.exists_by_name(name, user_id, session=uow.session):
                raise ValidationError(f"Account name already exists: {name}")
            is_first = AccountRepository.get_default(user_id, session=uow.session) is None
            account = AccountRepository.add(
                Account(
                    name=name,
                    account_type=request.account_type,
                    description=request.description,
                    is_default=is_first,
                    user_id=user_id,
                ),
                session=uow.session,
            )

        logger.info(f"Created account {account.id} '{account.name}' ({account.account_type.value})")
        return account

    @staticmethod
    def list_accounts(user_id: Optional[int] = None) -> List[Account]:
        """Accounts of a user, default first."""
        return AccountRepository.get_all(user_id)

    @staticmethod
    def get_account_entity(account_id: int) -> Account:
        account = AccountRepository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    @staticmethod
    def get_default_account(user_id: Optional[int] = None) -> Account:
        account = AccountRepository.get_default(user_id)
        if account is None:
            raise AccountNotFoundError(None, "Default account not found")
        return account

    @staticmethod
    def resolve_account(account_id: Optional[int] = None, user_id: Optional[int] = None) -> Account:
        """The explicit account if given, otherwise the user's default account."""
        if account_id is not None:
            return AccountService.get_account_entity(account_id)
        return AccountService.get_default_account(user_id)

    @staticmethod
    def update_account(account_id: int, request: AccountUpdate) -> Account:
        changes = request.model_dump(exclude_unset=True)
        with UnitOfWork() as uow:
            account = AccountRepository.get_by_id(account_id, session=uow.session)
            if account is None:
                raise AccountNotFoundError(account_id)

            name = changes.get('name')
            if name is not None:
                name = name.strip()
                if name != account.name and AccountRepository.exists_by_name(
                    name, account.user_id, session=uow.session
                ):
                    raise ValidationError(f"Account name already exists: {name}")
                account.name = name
            if changes.get('account_type') is not None:
                account.account_type = changes['account_type']
            if 'description' in changes:
                account.description = changes['description']

            AccountRepository.save(account, session=uow.session)
            uow.invalidate(CacheKeys.account_summary(account_id))

        return account

    @staticmethod
    def set_default_account(account_id: int) -> Account:
        """Make an account the default, clearing the flag on the user's other accounts."""
        with UnitOfWork() as uow:
            account = AccountRepository.get_by_id(account_id, session=uow.session)
            if account is None:
                raise AccountNotFoundError(account_id)

            for other in AccountRepository.get_all(account.user_id, session=uow.session):
                if other.is_default and other.id != account.id:
                    other.is_default = False
                    AccountRepository.save(other, session=uow.session)

            account.is_default = True
            AccountRepository.save(account, session=uow.session)

        logger.info(f"Default account is now {account.id} '{account.name}'")
        return account

    @staticmethod
    def ensure_default_account(user_id: Optional[int] = None) -> Account:
        """
        Return the default account, promoting the oldest account or creating
        a "Default" GENERAL account when none is marked.
        """
        with UnitOfWork() as uow:
            account = AccountRepository.get_default(user_id, session=uow.session)
            if account is not None:
                return account

            accounts = AccountRepository.get_all(user_id, session=uow.session)
            if accounts:
                account = accounts[0]
                account.is_default = True
                AccountRepository.save(account, session=uow.session)
            else:
                account = AccountRepository.add(
                    Account(
                        name=DEFAULT_ACCOUNT_NAME,
                        account_type=AccountType.GENERAL,
                        is_default=True,
                        user_id=user_id,
                    ),
                    session=uow.session,
                )

        logger.info(f"Default account ensured: {account.id} '{account.name}'")
        return account

    @staticmethod
    def delete_account(account_id: int) -> None:
        """
        Delete an account together with its (fully closed) transactions and
        its dividends.

        Raises:
            AccountNotFoundError: If the account does not exist
            InvalidStateError: If it is the default account or still holds positions
        """
        with UnitOfWork() as uow:
            session = uow.session
            account = AccountRepository.get_by_id(account_id, session=session)
            if account is None:
                raise AccountNotFoundError(account_id)
            if account.is_default:
                raise InvalidStateError(f"Cannot delete the default account: {account.name}")
            if PortfolioRepository.get_all(account_id=account_id, session=session):
                raise InvalidStateError(f"Cannot delete account with open positions: {account.name}")

            transactions = TransactionRepository.find_by_account(account_id, session=session)
            for tx in transactions:
                session.delete(tx)
            for stock_id in {tx.stock_id for tx in transactions}:
                stock = StockRepository.get_by_id(stock_id, session=session)
                uow.invalidate(CacheKeys.symbol(stock.symbol))
            dividends = DividendRepository.find_by_account(account_id, session=session)
            for dividend in dividends:
                session.delete(dividend)
            session.flush()

            AccountRepository.delete(account, session=session)
            uow.invalidate(
                CacheKeys.PORTFOLIO_SUMMARY,
                CacheKeys.account_summary(account_id),
                CacheKeys.DIVIDEND_SUMMARY,
            )

        logger.info(
            f"Deleted account {account_id} with {len(transactions)} transactions and {len(dividends)} dividends"
        )
