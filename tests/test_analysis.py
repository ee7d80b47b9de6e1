"""Portfolio summary, per-symbol view and sector allocation."""

from decimal import Decimal

import pytest

from exceptions import StockNotFoundError
from models import AccountCreate
from services.accounts import AccountService
from services.analysis import AnalysisService
from services.transactions import TransactionService
from tests.helpers import buy, day, sell


@pytest.fixture
def holdings(default_account, market_data):
    market_data.profiles["AAPL"] = {'name': "Apple Inc.", 'sector': "Technology"}
    market_data.profiles["JNJ"] = {'name': "Johnson & Johnson", 'sector': "Healthcare"}
    market_data.prices["AAPL"] = 150.0
    TransactionService.create_transaction(buy("AAPL", 10, 100, day(1)))
    TransactionService.create_transaction(sell("AAPL", 5, 120, day(2)))
    TransactionService.create_transaction(buy("JNJ", 2, 150, day(3)))
    return default_account


class TestPortfolioSummary:

    def test_summary_values_positions(self, holdings):
        summary = AnalysisService.get_portfolio_summary()

        by_symbol = {h['symbol']: h for h in summary['holdings']}
        assert by_symbol['AAPL']['market_value'] == Decimal("750.00")
        assert by_symbol['AAPL']['unrealized_pnl'] == Decimal("250.00")
        assert by_symbol['AAPL']['unrealized_pnl_pct'] == Decimal("50.00")
        # no price: valued at cost
        assert by_symbol['JNJ']['current_price'] is None
        assert summary['total_investment'] == Decimal("800.00")
        assert summary['total_market_value'] == Decimal("1050.00")
        assert summary['total_unrealized_pnl'] == Decimal("250.00")
        assert summary['total_realized_pnl'] == Decimal("100.00")

    def test_fifo_remaining_cost_sits_beside_average_cost(self, default_account):
        TransactionService.create_transaction(buy("MSFT", 1, 100, day(1)))
        TransactionService.create_transaction(buy("MSFT", 1, 200, day(2)))
        TransactionService.create_transaction(sell("MSFT", 1, 180, day(3)))

        summary = AnalysisService.get_portfolio_summary()

        holding = summary['holdings'][0]
        assert holding['total_investment'] == Decimal("150.00")
        assert holding['fifo_remaining_cost'] == Decimal("200.00")
        assert summary['total_fifo_remaining_cost'] == Decimal("200.00")
        assert summary['total_realized_pnl'] == Decimal("80.00")

    def test_summary_per_account(self, holdings):
        isa = AccountService.create_account(AccountCreate(name="ISA"))
        TransactionService.create_transaction(buy("AAPL", 1, 140, day(4), account_id=isa.id))

        summary = AnalysisService.get_portfolio_summary(account_id=isa.id)

        assert summary['position_count'] == 1
        assert summary['total_investment'] == Decimal("140.00")
        assert summary['total_realized_pnl'] == Decimal("0")

    def test_summary_is_cached_and_refreshed_after_a_trade(self, holdings):
        first = AnalysisService.get_portfolio_summary()
        assert AnalysisService.get_portfolio_summary() is first

        TransactionService.create_transaction(sell("JNJ", 2, 160, day(4)))

        refreshed = AnalysisService.get_portfolio_summary()
        assert refreshed is not first
        assert refreshed['position_count'] == 1
        assert refreshed['total_realized_pnl'] == Decimal("120.00")


    def test_trade_committed_during_a_load_is_not_cached_over(self, holdings, monkeypatch):
        build = AnalysisService._build_summary

        def build_then_trade(account_id):
            summary = build(account_id)
            TransactionService.create_transaction(buy("JNJ", 2, 150, day(5)))
            return summary

        monkeypatch.setattr(AnalysisService, "_build_summary", staticmethod(build_then_trade))
        stale = AnalysisService.get_portfolio_summary()
        monkeypatch.setattr(AnalysisService, "_build_summary", staticmethod(build))

        fresh = AnalysisService.get_portfolio_summary()

        assert stale['total_investment'] == Decimal("800.00")
        assert fresh['total_investment'] == Decimal("1100.00")
        jnj = next(h for h in fresh['holdings'] if h['symbol'] == "JNJ")
        assert jnj['quantity'] == Decimal("4")


class TestSymbolPosition:

    def test_symbol_view_spans_accounts(self, holdings):
        isa = AccountService.create_account(AccountCreate(name="ISA"))
        TransactionService.create_transaction(buy("AAPL", 5, 110, day(4), account_id=isa.id))

        view = AnalysisService.get_symbol_position("aapl")

        assert view['quantity'] == Decimal("10")
        assert view['total_investment'] == Decimal("1050.00")
        assert view['average_price'] == Decimal("105.00")
        assert view['realized_pnl'] == Decimal("100.00")
        assert len(view['positions']) == 2

    def test_unknown_symbol(self):
        with pytest.raises(StockNotFoundError):
            AnalysisService.get_symbol_position("NOPE")


class TestSectorAllocation:

    def test_weights_by_cost_and_value(self, holdings):
        allocation = {row['sector']: row for row in AnalysisService.get_sector_allocation()}

        assert set(allocation) == {"TECH", "HEALTH"}
        assert allocation["TECH"]['total_cost'] == Decimal("500.00")
        assert allocation["TECH"]['market_value'] == Decimal("750.00")
        assert allocation["TECH"]['cost_weight_pct'] == Decimal("62.50")
        assert allocation["HEALTH"]['value_weight_pct'] == Decimal("28.57")
        assert allocation["TECH"]['symbols'] == ["AAPL"]

    def test_empty_portfolio(self):
        assert AnalysisService.get_sector_allocation() == []
