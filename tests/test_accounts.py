"""Account management and default-account rules."""

from datetime import date
from decimal import Decimal

import pytest

from exceptions import AccountNotFoundError, InvalidStateError, ValidationError
from models import AccountCreate, AccountType, AccountUpdate, DividendCreate
from services.accounts import AccountService
from services.dividends import DividendService
from services.transactions import TransactionService
from tests.helpers import buy, day, sell


class TestAccountService:

    def test_first_account_becomes_default(self):
        first = AccountService.create_account(AccountCreate(name="Main", account_type=AccountType.GENERAL))
        second = AccountService.create_account(AccountCreate(name="Pension", account_type=AccountType.PENSION))

        assert first.is_default
        assert not second.is_default
        assert AccountService.get_default_account().id == first.id

    def test_duplicate_name_is_rejected(self):
        AccountService.create_account(AccountCreate(name="Main"))
        with pytest.raises(ValidationError):
            AccountService.create_account(AccountCreate(name="Main"))

    def test_list_puts_default_first(self):
        AccountService.create_account(AccountCreate(name="A"))
        b = AccountService.create_account(AccountCreate(name="B"))
        AccountService.set_default_account(b.id)

        names = [a.name for a in AccountService.list_accounts()]
        assert names == ["B", "A"]
        assert [a.is_default for a in AccountService.list_accounts()] == [True, False]

    def test_missing_accounts_are_not_found(self):
        with pytest.raises(AccountNotFoundError):
            AccountService.get_default_account()
        with pytest.raises(AccountNotFoundError):
            AccountService.get_account_entity(42)

    def test_ensure_default_creates_once(self):
        created = AccountService.ensure_default_account()
        again = AccountService.ensure_default_account()

        assert created.id == again.id
        assert created.is_default
        assert len(AccountService.list_accounts()) == 1

    def test_update_account(self):
        account = AccountService.create_account(AccountCreate(name="Main"))
        updated = AccountService.update_account(
            account.id, AccountUpdate(name="Brokerage", account_type=AccountType.ISA)
        )

        assert updated.name == "Brokerage"
        assert updated.account_type == AccountType.ISA
        assert updated.is_default

    def test_default_account_cannot_be_deleted(self, default_account):
        with pytest.raises(InvalidStateError):
            AccountService.delete_account(default_account.id)

    def test_account_with_positions_cannot_be_deleted(self, default_account):
        isa = AccountService.create_account(AccountCreate(name="ISA"))
        TransactionService.create_transaction(buy("KO", 10, 60, day(1), account_id=isa.id))

        with pytest.raises(InvalidStateError):
            AccountService.delete_account(isa.id)

    def test_closed_account_is_deleted_with_its_history(self, default_account):
        isa = AccountService.create_account(AccountCreate(name="ISA"))
        TransactionService.create_transaction(buy("KO", 10, 60, day(1), account_id=isa.id))
        TransactionService.create_transaction(sell("KO", 10, 65, day(2), account_id=isa.id))
        DividendService.create_dividend(DividendCreate(
            stock_symbol="KO",
            ex_dividend_date=date(2024, 1, 1),
            payment_date=date(2024, 1, 15),
            dividend_per_share=Decimal("0.46"),
            quantity=Decimal("10"),
            account_id=isa.id,
        ))

        AccountService.delete_account(isa.id)

        with pytest.raises(AccountNotFoundError):
            AccountService.get_account_entity(isa.id)
        assert TransactionService.list_transactions(account_id=isa.id) == []
        assert DividendService.list_dividends() == []
