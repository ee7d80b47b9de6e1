"""
Capital gains tax estimation from realized FIFO results.

Profit and loss per sale come from the SELL rows' realized_pnl; the holding
period of a sale is measured from the oldest lot it consumed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from config import get_settings
from models import AccountScope, TransactionType
from repositories import StockRepository, TransactionRepository
from services.common import ZERO, round_money, round_whole, to_decimal
from services.fifo import FifoMatcher, FifoResult

logger = logging.getLogger(__name__)


@dataclass
class TaxLine:
    """One sale within the tax year."""
    transaction_id: int
    symbol: str
    account_id: Optional[int]
    sell_date: datetime
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    realized_pnl: Decimal
    acquired_at: Optional[datetime]
    holding_days: Optional[int]
    is_long_term: bool


@dataclass
class TaxReport:
    year: int
    account_id: Optional[int]
    tax_rate: Decimal
    basic_deduction: Decimal
    total_profit: Decimal = ZERO
    total_loss: Decimal = ZERO
    net_profit: Decimal = ZERO
    long_term_net: Decimal = ZERO
    short_term_net: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    estimated_tax: Decimal = ZERO
    lines: List[TaxLine] = field(default_factory=list)


class TaxService:
    """Yearly capital gains estimate."""

    @staticmethod
    def calculate_tax(year: int, account_id: Optional[int] = None) -> TaxReport:
        """
        Estimate capital gains tax for the sales of one calendar year.

        net = profit - loss; taxable = max(net - basic deduction, 0);
        estimated tax = taxable x rate, rounded to a whole amount.

        Args:
            year: Calendar year of the sales
            account_id: Restrict to one account (None = every account)

        Returns:
            TaxReport with totals and one line per sale
        """
        settings = get_settings()
        report = TaxReport(
            year=year,
            account_id=account_id,
            tax_rate=settings.capital_gains_tax_rate,
            basic_deduction=settings.capital_gains_basic_deduction,
        )

        start = datetime(year, 1, 1)
        end = datetime(year, 12, 31, 23, 59, 59, 999999)
        sells = TransactionRepository.find(
            account_id=account_id, start=start, end=end, transaction_type=TransactionType.SELL
        )

        fifo_by_pair: Dict[Tuple[Optional[int], int], Dict[int, FifoResult]] = {}
        symbols: Dict[int, str] = {}

        for sell in sorted(sells, key=lambda tx: (tx.transaction_date, tx.id)):
            pair = (sell.account_id, sell.stock_id)
            if pair not in fifo_by_pair:
                history = TransactionRepository.find_by_scope_and_stock(AccountScope.of(sell.account_id), sell.stock_id)
                fifo_by_pair[pair] = FifoMatcher.replay(history).results
            if sell.stock_id not in symbols:
                stock = StockRepository.get_by_id(sell.stock_id)
                symbols[sell.stock_id] = stock.symbol if stock else str(sell.stock_id)

            result = fifo_by_pair[pair].get(sell.id)
            acquired_at = result.first_acquired_at if result else None
            holding_days = (sell.transaction_date - acquired_at).days if acquired_at else None
            is_long_term = holding_days is not None and holding_days >= settings.long_term_holding_days

            realized = to_decimal(sell.realized_pnl)
            line = TaxLine(
                transaction_id=sell.id,
                symbol=symbols[sell.stock_id],
                account_id=sell.account_id,
                sell_date=sell.transaction_date,
                quantity=to_decimal(sell.quantity),
                proceeds=round_money(to_decimal(sell.price) * to_decimal(sell.quantity) - to_decimal(sell.commission)),
                cost_basis=round_money(to_decimal(sell.cost_basis)),
                realized_pnl=round_money(realized),
                acquired_at=acquired_at,
                holding_days=holding_days,
                is_long_term=is_long_term,
            )
            report.lines.append(line)

            if realized > 0:
                report.total_profit += realized
            else:
                report.total_loss += -realized
            if is_long_term:
                report.long_term_net += realized
            else:
                report.short_term_net += realized

        report.total_profit = round_money(report.total_profit)
        report.total_loss = round_money(report.total_loss)
        report.long_term_net = round_money(report.long_term_net)
        report.short_term_net = round_money(report.short_term_net)
        report.net_profit = report.total_profit - report.total_loss
        report.taxable_amount = max(report.net_profit - report.basic_deduction, ZERO)
        report.estimated_tax = round_whole(report.taxable_amount * report.tax_rate)

        logger.info(
            f"Tax estimate {year}: {len(report.lines)} sales, net {report.net_profit}, "
            f"taxable {report.taxable_amount}, tax {report.estimated_tax}"
        )
        return report
