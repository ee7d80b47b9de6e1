"""
Dividend service: record dividend payments and summarize dividend income.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from config import get_settings
from exceptions import DividendNotFoundError, ValidationError
from models import Dividend, DividendCreate, DividendUpdate
from repositories import DividendRepository, StockRepository
from services.accounts import AccountService
from services.cache import CacheKeys, get_portfolio_cache
from services.common import ZERO, quantize_internal, round_money, to_decimal
from services.stocks import StockService
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

TOP_PAYERS = 5


def calculate_dividend_amounts(dividend_per_share: Decimal, quantity: Decimal,
                               tax_rate: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Gross, tax and net amounts of a dividend.

    Args:
        dividend_per_share: Dividend per share
        quantity: Shares held on the ex-dividend date
        tax_rate: Withholding rate in percent (15.4 = 15.4%)

    Returns:
        (total_amount, tax_amount, net_amount), each rounded to 2 dp half-up
    """
    total = round_money(to_decimal(dividend_per_share) * to_decimal(quantity))
    tax = round_money(total * to_decimal(tax_rate) / 100)
    return total, tax, total - tax


class DividendService:
    """Dividend CRUD and income summary."""

    @staticmethod
    def create_dividend(request: DividendCreate) -> Dividend:
        if request.payment_date < request.ex_dividend_date:
            raise ValidationError("Payment date cannot be before the ex-dividend date")
        if request.account_id is not None:
            AccountService.get_account_entity(request.account_id)
        stock = StockService.find_or_create_stock(request.stock_symbol)

        tax_rate = request.tax_rate if request.tax_rate is not None else get_settings().dividend_tax_rate
        total, tax, net = calculate_dividend_amounts(request.dividend_per_share, request.quantity, tax_rate)

        with UnitOfWork() as uow:
            dividend = DividendRepository.add(
                Dividend(
                    stock_id=stock.id,
                    account_id=request.account_id,
                    ex_dividend_date=request.ex_dividend_date,
                    payment_date=request.payment_date,
                    dividend_per_share=quantize_internal(request.dividend_per_share),
                    quantity=quantize_internal(request.quantity),
                    tax_rate=to_decimal(tax_rate),
                    total_amount=total,
                    tax_amount=tax,
                    net_amount=net,
                    memo=request.memo,
                ),
                session=uow.session,
            )
            uow.invalidate(CacheKeys.DIVIDEND_SUMMARY)

        logger.info(f"Recorded dividend {dividend.id} for {stock.symbol}: net {net}")
        return dividend

    @staticmethod
    def update_dividend(dividend_id: int, request: DividendUpdate) -> Dividend:
        changes = request.model_dump(exclude_unset=True)
        with UnitOfWork() as uow:
            dividend = DividendRepository.get_by_id(dividend_id, session=uow.session)
            if dividend is None:
                raise DividendNotFoundError(dividend_id)

            for name in ('ex_dividend_date', 'payment_date', 'memo'):
                if name in changes and (changes[name] is not None or name == 'memo'):
                    setattr(dividend, name, changes[name])
            for name in ('dividend_per_share', 'quantity'):
                if changes.get(name) is not None:
                    setattr(dividend, name, quantize_internal(changes[name]))
            if changes.get('tax_rate') is not None:
                dividend.tax_rate = to_decimal(changes['tax_rate'])

            if dividend.payment_date < dividend.ex_dividend_date:
                raise ValidationError("Payment date cannot be before the ex-dividend date")

            dividend.total_amount, dividend.tax_amount, dividend.net_amount = calculate_dividend_amounts(
                dividend.dividend_per_share, dividend.quantity, dividend.tax_rate
            )
            DividendRepository.save(dividend, session=uow.session)
            uow.invalidate(CacheKeys.DIVIDEND_SUMMARY)

        return dividend

    @staticmethod
    def delete_dividend(dividend_id: int) -> None:
        with UnitOfWork() as uow:
            dividend = DividendRepository.get_by_id(dividend_id, session=uow.session)
            if dividend is None:
                raise DividendNotFoundError(dividend_id)
            DividendRepository.delete(dividend, session=uow.session)
            uow.invalidate(CacheKeys.DIVIDEND_SUMMARY)
        logger.info(f"Deleted dividend {dividend_id}")

    @staticmethod
    def get_dividend(dividend_id: int) -> Dividend:
        dividend = DividendRepository.get_by_id(dividend_id)
        if dividend is None:
            raise DividendNotFoundError(dividend_id)
        return dividend

    @staticmethod
    def list_dividends() -> List[Dividend]:
        return DividendRepository.get_all()

    @staticmethod
    def list_dividends_by_symbol(symbol: str) -> List[Dividend]:
        return DividendRepository.find_by_symbol(symbol)

    @staticmethod
    def list_dividends_by_period(start: date, end: date) -> List[Dividend]:
        if end < start:
            raise ValidationError("Period end is before its start")
        return DividendRepository.find_by_period(start, end)

    @staticmethod
    def get_dividend_summary(today: Optional[date] = None) -> Dict:
        """
        Dividend income summary.

        Returns:
            Dict with total gross/tax/net, year-to-date net, the monthly
            average net over the trailing 12 months and the top paying symbols.
            Cached until the next dividend mutation (only for today's date).
        """
        if today is not None:
            return DividendService._build_summary(today)
        return get_portfolio_cache().get_or_load(
            CacheKeys.DIVIDEND_SUMMARY, lambda: DividendService._build_summary(date.today())
        )

    @staticmethod
    def _build_summary(today: date) -> Dict:
        dividends = DividendRepository.get_all()
        year_start = date(today.year, 1, 1)
        trailing_start = today - timedelta(days=365)

        total_gross = sum((d.total_amount for d in dividends), ZERO)
        total_tax = sum((d.tax_amount for d in dividends), ZERO)
        total_net = sum((d.net_amount for d in dividends), ZERO)
        ytd_net = sum((d.net_amount for d in dividends if year_start <= d.payment_date <= today), ZERO)
        trailing_net = sum((d.net_amount for d in dividends if trailing_start < d.payment_date <= today), ZERO)

        by_stock: Dict[int, Decimal] = {}
        for d in dividends:
            by_stock[d.stock_id] = by_stock.get(d.stock_id, ZERO) + d.net_amount
        top = sorted(by_stock.items(), key=lambda item: item[1], reverse=True)[:TOP_PAYERS]

        top_payers = []
        for stock_id, net in top:
            stock = StockRepository.get_by_id(stock_id)
            top_payers.append({
                'symbol': stock.symbol if stock else None,
                'name': stock.name if stock else None,
                'net_amount': round_money(net),
            })

        return {
            'count': len(dividends),
            'total_gross': round_money(total_gross),
            'total_tax': round_money(total_tax),
            'total_net': round_money(total_net),
            'year_to_date_net': round_money(ytd_net),
            'monthly_average_net': round_money(trailing_net / 12),
            'top_payers': top_payers,
        }
