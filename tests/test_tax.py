"""Capital gains estimate from FIFO results."""

from datetime import datetime
from decimal import Decimal

from services.tax import TaxService
from services.transactions import TransactionService
from tests.helpers import buy, sell


class TestTaxService:

    def test_estimate_applies_deduction_and_rate(self, default_account):
        TransactionService.create_transaction(buy("SPY", 1000, 1000, datetime(2023, 1, 2)))
        TransactionService.create_transaction(sell("SPY", 1000, 4000, datetime(2024, 3, 1)))

        report = TaxService.calculate_tax(2024)

        assert report.total_profit == Decimal("3000000.00")
        assert report.net_profit == Decimal("3000000.00")
        assert report.taxable_amount == Decimal("500000.00")
        assert report.estimated_tax == Decimal("110000")
        [line] = report.lines
        assert line.is_long_term
        assert line.holding_days == 424
        assert report.long_term_net == Decimal("3000000.00")

    def test_losses_offset_profits_and_floor_at_zero(self, default_account):
        TransactionService.create_transaction(buy("SPY", 10, 100, datetime(2024, 1, 2)))
        TransactionService.create_transaction(buy("QQQ", 10, 100, datetime(2024, 1, 2)))
        TransactionService.create_transaction(sell("SPY", 10, 150, datetime(2024, 2, 1)))
        TransactionService.create_transaction(sell("QQQ", 10, 80, datetime(2024, 2, 1)))

        report = TaxService.calculate_tax(2024)

        assert report.total_profit == Decimal("500.00")
        assert report.total_loss == Decimal("200.00")
        assert report.net_profit == Decimal("300.00")
        assert report.short_term_net == Decimal("300.00")
        assert report.taxable_amount == Decimal("0")
        assert report.estimated_tax == Decimal("0")
        assert all(not line.is_long_term for line in report.lines)

    def test_only_sales_of_the_year_count(self, default_account):
        TransactionService.create_transaction(buy("SPY", 10, 100, datetime(2023, 1, 2)))
        TransactionService.create_transaction(sell("SPY", 5, 120, datetime(2023, 12, 31, 23, 0)))
        TransactionService.create_transaction(sell("SPY", 5, 130, datetime(2024, 1, 1, 9, 0)))

        assert [line.realized_pnl for line in TaxService.calculate_tax(2023).lines] == [Decimal("100.00")]
        assert [line.realized_pnl for line in TaxService.calculate_tax(2024).lines] == [Decimal("150.00")]
        assert TaxService.calculate_tax(2024, account_id=default_account.id + 1).lines == []
