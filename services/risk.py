"""
Trade risk metrics: initial risk from a stop-loss, risk/reward ratio and
the R-multiple realized by a sale.
"""

from decimal import Decimal
from typing import Optional

from models import Transaction
from services.common import quantize_internal, round_ratio, to_decimal


def risk_per_share(price, stop_loss_price) -> Optional[Decimal]:
    """Distance between entry and stop, None without a stop."""
    if stop_loss_price is None:
        return None
    distance = abs(to_decimal(price) - to_decimal(stop_loss_price))
    return distance if distance > 0 else None


def calculate_initial_risk(price, stop_loss_price, quantity) -> Optional[Decimal]:
    """|price - stop| x quantity."""
    per_share = risk_per_share(price, stop_loss_price)
    if per_share is None:
        return None
    return quantize_internal(per_share * to_decimal(quantity))


def calculate_risk_reward_ratio(price, stop_loss_price, take_profit_price) -> Optional[Decimal]:
    """|take - price| / |price - stop|, 4 dp."""
    per_share = risk_per_share(price, stop_loss_price)
    if per_share is None or take_profit_price is None:
        return None
    reward = abs(to_decimal(take_profit_price) - to_decimal(price))
    return round_ratio(reward / per_share)


def calculate_r_multiple(realized_pnl, initial_risk) -> Optional[Decimal]:
    """Realized P&L expressed in units of the risk taken, 4 dp."""
    if realized_pnl is None or not initial_risk:
        return None
    return round_ratio(to_decimal(realized_pnl) / to_decimal(initial_risk))


def apply_risk_fields(transaction: Transaction) -> None:
    """Derive initial_risk_amount and risk_reward_ratio for a BUY; SELLs carry none."""
    if not transaction.is_buy:
        transaction.initial_risk_amount = None
        transaction.risk_reward_ratio = None
        return
    transaction.initial_risk_amount = calculate_initial_risk(
        transaction.price, transaction.stop_loss_price, transaction.quantity
    )
    transaction.risk_reward_ratio = calculate_risk_reward_ratio(
        transaction.price, transaction.stop_loss_price, transaction.take_profit_price
    )
