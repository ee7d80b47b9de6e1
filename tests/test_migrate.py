"""Maintenance entry point."""

from decimal import Decimal

import migrate
from models import AccountScope
from repositories import PortfolioRepository
from services.accounts import AccountService
from services.transactions import TransactionService
from services.unit_of_work import UnitOfWork
from tests.helpers import buy, day


class TestMigrate:

    def test_schema_only_ensures_default_account(self):
        assert migrate.main(["--schema-only"]) == 0
        assert AccountService.get_default_account().name == "Default"

    def test_rebuild_restores_positions(self, default_account):
        created = TransactionService.create_transaction(buy("IBM", 4, 150, day(1)))
        scope = AccountScope.of(default_account.id)
        with UnitOfWork() as uow:
            position = PortfolioRepository.get_by_scope_and_stock(scope, created.stock_id, uow.session)
            PortfolioRepository.delete(position, uow.session)

        assert migrate.main([]) == 0

        rebuilt = PortfolioRepository.get_by_scope_and_stock(scope, created.stock_id)
        assert rebuilt.quantity == Decimal("4")
        assert rebuilt.average_price == Decimal("150.00")
