"""Dividend amounts, CRUD and the cached income summary."""

from datetime import date
from decimal import Decimal

import pytest

from exceptions import DividendNotFoundError, ValidationError
from models import DividendCreate, DividendUpdate
from services.cache import CacheKeys, get_portfolio_cache
from services.dividends import DividendService, calculate_dividend_amounts


def dividend_request(symbol="KO", paid=date(2024, 3, 15), dps="0.5", quantity="100", tax_rate=None):
    return DividendCreate(
        stock_symbol=symbol,
        ex_dividend_date=date(paid.year, paid.month, 1),
        payment_date=paid,
        dividend_per_share=Decimal(dps),
        quantity=Decimal(quantity),
        tax_rate=Decimal(tax_rate) if tax_rate is not None else None,
    )


class TestDividendAmounts:

    def test_tax_is_withheld_at_two_decimals(self):
        total, tax, net = calculate_dividend_amounts(Decimal("0.5"), Decimal("100"), Decimal("15.4"))
        assert (total, tax, net) == (Decimal("50.00"), Decimal("7.70"), Decimal("42.30"))

    def test_half_cent_rounds_up(self):
        total, tax, net = calculate_dividend_amounts(Decimal("0.25"), Decimal("1"), Decimal("10"))
        assert (total, tax, net) == (Decimal("0.25"), Decimal("0.03"), Decimal("0.22"))


class TestDividendService:

    def test_create_uses_configured_rate_by_default(self):
        dividend = DividendService.create_dividend(dividend_request())

        assert dividend.tax_rate == Decimal("15.4")
        assert dividend.net_amount == Decimal("42.30")

    def test_explicit_rate(self):
        dividend = DividendService.create_dividend(dividend_request(tax_rate="0"))
        assert dividend.tax_amount == Decimal("0.00")
        assert dividend.net_amount == Decimal("50.00")

    def test_payment_before_ex_date_is_rejected(self):
        request = dividend_request()
        request.payment_date = date(2024, 2, 1)
        with pytest.raises(ValidationError):
            DividendService.create_dividend(request)

    def test_update_recomputes_amounts(self):
        dividend = DividendService.create_dividend(dividend_request())

        updated = DividendService.update_dividend(dividend.id, DividendUpdate(quantity=Decimal("200")))

        assert updated.total_amount == Decimal("100.00")
        assert updated.tax_amount == Decimal("15.40")
        assert updated.net_amount == Decimal("84.60")

    def test_delete_and_not_found(self):
        dividend = DividendService.create_dividend(dividend_request())
        DividendService.delete_dividend(dividend.id)

        with pytest.raises(DividendNotFoundError):
            DividendService.get_dividend(dividend.id)
        with pytest.raises(DividendNotFoundError):
            DividendService.delete_dividend(dividend.id)

    def test_lists_by_symbol_and_period(self):
        DividendService.create_dividend(dividend_request("KO", date(2024, 3, 15)))
        DividendService.create_dividend(dividend_request("PEP", date(2024, 6, 15)))

        assert len(DividendService.list_dividends_by_symbol("ko")) == 1
        in_march = DividendService.list_dividends_by_period(date(2024, 3, 1), date(2024, 3, 31))
        assert len(in_march) == 1
        with pytest.raises(ValidationError):
            DividendService.list_dividends_by_period(date(2024, 3, 31), date(2024, 3, 1))

    def test_summary(self):
        DividendService.create_dividend(dividend_request("KO", date(2023, 6, 15)))
        DividendService.create_dividend(dividend_request("KO", date(2024, 3, 15)))
        DividendService.create_dividend(dividend_request("PEP", date(2024, 5, 15), dps="1.2"))

        summary = DividendService.get_dividend_summary(today=date(2024, 6, 1))

        assert summary['count'] == 3
        assert summary['total_net'] == Decimal("186.12")
        assert summary['total_tax'] == Decimal("33.88")
        assert summary['year_to_date_net'] == Decimal("143.82")
        # 2023-06-15 is inside the trailing 12 months
        assert summary['monthly_average_net'] == Decimal("15.51")
        assert [p['symbol'] for p in summary['top_payers']] == ["PEP", "KO"]

    def test_summary_is_cached_until_next_mutation(self):
        DividendService.create_dividend(dividend_request())
        first = DividendService.get_dividend_summary()
        assert DividendService.get_dividend_summary() is first

        DividendService.create_dividend(dividend_request("PEP"))

        assert CacheKeys.DIVIDEND_SUMMARY not in get_portfolio_cache()
        assert DividendService.get_dividend_summary()['count'] == 2
