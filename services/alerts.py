"""
Price alerts: one-shot ABOVE/BELOW thresholds on a stock.
Triggered alerts are deactivated and reported to the e-mail sink; nothing
here touches transactions or positions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from exceptions import AlertNotFoundError, ValidationError
from models import AlertCondition, PriceAlert, Stock
from repositories import AlertRepository, StockRepository, UserPreferencesRepository
from services.common import quantize_internal, to_decimal
from services.market_data import MarketDataService
from services.notification import EmailService
from services.stocks import StockService
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

PriceLookup = Callable[[Stock], Optional[float]]


@dataclass
class TriggeredAlert:
    alert_id: int
    symbol: str
    name: str
    condition: AlertCondition
    target_price: Decimal
    current_price: Decimal


class AlertService:
    """Price alert management and evaluation."""

    @staticmethod
    def create_alert(symbol: str, condition: AlertCondition, target_price, note: Optional[str] = None) -> PriceAlert:
        target = to_decimal(target_price)
        if target <= 0:
            raise ValidationError("Alert target price must be positive")
        stock = StockService.find_or_create_stock(symbol)

        with UnitOfWork() as uow:
            alert = AlertRepository.add(
                PriceAlert(
                    stock_id=stock.id,
                    condition=condition,
                    target_price=quantize_internal(target),
                    note=note,
                ),
                session=uow.session,
            )

        logger.info(f"Created alert {alert.id}: {stock.symbol} {condition.value} {target}")
        return alert

    @staticmethod
    def get_alert(alert_id: int) -> PriceAlert:
        alert = AlertRepository.get_by_id(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    @staticmethod
    def list_alerts(active_only: bool = False) -> List[PriceAlert]:
        return AlertRepository.get_all(active_only=active_only)

    @staticmethod
    def deactivate_alert(alert_id: int) -> PriceAlert:
        with UnitOfWork() as uow:
            alert = AlertRepository.get_by_id(alert_id, session=uow.session)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            alert.is_active = False
            AlertRepository.save(alert, session=uow.session)
        return alert

    @staticmethod
    def delete_alert(alert_id: int) -> None:
        with UnitOfWork() as uow:
            alert = AlertRepository.get_by_id(alert_id, session=uow.session)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            AlertRepository.delete(alert, session=uow.session)
        logger.info(f"Deleted alert {alert_id}")

    @staticmethod
    def is_triggered(alert: PriceAlert, price: Decimal) -> bool:
        if alert.condition == AlertCondition.ABOVE:
            return price >= alert.target_price
        return price <= alert.target_price

    @staticmethod
    def _current_prices(stocks: List[Stock], price_lookup: Optional[PriceLookup]) -> Dict[str, Optional[float]]:
        if price_lookup is None:
            return MarketDataService.get_current_prices_batch([(s.symbol, s.market_type) for s in stocks])
        return {stock.symbol: price_lookup(stock) for stock in stocks}

    @staticmethod
    def check_alerts(price_lookup: Optional[PriceLookup] = None,
                     notifier: Optional[EmailService] = None) -> List[TriggeredAlert]:
        """
        Evaluate every active alert against the current price.

        Prices are fetched before any unit of work opens, since on SQLite a
        unit of work holds the write lock. Triggered alerts are then
        deactivated in one unit of work and notifications are sent after it
        commits. A failed notification is logged and does not re-arm the alert.

        Args:
            price_lookup: Stock -> current price (defaults to a batch market data fetch)
            notifier: E-mail sink (defaults to EmailService())

        Returns:
            The alerts triggered by this check
        """
        alerts = AlertRepository.get_all(active_only=True)
        logger.info(f"Checking {len(alerts)} active price alerts")
        if not alerts:
            return []

        stocks = {alert.stock_id: StockRepository.get_by_id(alert.stock_id) for alert in alerts}
        prices = AlertService._current_prices(list(stocks.values()), price_lookup)

        due = []
        for alert in alerts:
            stock = stocks[alert.stock_id]
            price = prices.get(stock.symbol)
            if price is None:
                logger.warning(f"Could not fetch price for {stock.symbol}, skipping alert {alert.id}")
                continue

            current = to_decimal(price)
            if AlertService.is_triggered(alert, current):
                due.append((alert.id, stock, current))
            else:
                logger.debug(f"{stock.symbol}: {current} vs {alert.condition.value} {alert.target_price} - OK")

        triggered: List[TriggeredAlert] = []
        if due:
            with UnitOfWork() as uow:
                for alert_id, stock, current in due:
                    alert = AlertRepository.get_by_id(alert_id, session=uow.session)
                    if alert is None or not alert.is_active:
                        continue  # deleted or fired since it was read

                    alert.is_active = False
                    alert.triggered_at = datetime.now()
                    alert.triggered_price = quantize_internal(current)
                    AlertRepository.save(alert, session=uow.session)
                    triggered.append(TriggeredAlert(
                        alert_id=alert.id,
                        symbol=stock.symbol,
                        name=stock.name,
                        condition=alert.condition,
                        target_price=to_decimal(alert.target_price),
                        current_price=current,
                    ))
                    logger.warning(f"ALERT: {stock.symbol} at {current} is {alert.condition.value} {alert.target_price}")

        if triggered:
            AlertService._notify(triggered, notifier or EmailService())

        logger.info(f"Price alert check complete. Alerts triggered: {len(triggered)}")
        return triggered

    @staticmethod
    def _notify(triggered: List[TriggeredAlert], notifier: EmailService) -> bool:
        """One e-mail per check: a single alert gets its own message, several get a digest."""
        prefs = UserPreferencesRepository.get()
        if not prefs or not prefs.email_address:
            logger.warning("No user email configured. Skipping alert notifications.")
            return False
        if not prefs.alerts_enabled:
            logger.info("Alert e-mails disabled in preferences.")
            return False

        if len(triggered) == 1:
            item = triggered[0]
            return notifier.send_price_alert(
                to_email=prefs.email_address,
                stock_name=item.name,
                symbol=item.symbol,
                condition=item.condition.value,
                current_price=float(item.current_price),
                target_price=float(item.target_price),
            )

        return notifier.send_alert_digest(
            to_email=prefs.email_address,
            alerts=[
                {
                    'symbol': item.symbol,
                    'name': item.name,
                    'condition': item.condition.value,
                    'current_price': float(item.current_price),
                    'target_price': float(item.target_price),
                }
                for item in triggered
            ],
        )
