"""Price alerts: evaluation, deactivation and notification."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from config import Settings
from exceptions import AlertNotFoundError, ValidationError
from models import AlertCondition
from repositories import UserPreferencesRepository
from services import notification
from services.alerts import AlertService
from services.notification import EmailService


def prices(table):
    return lambda stock: table.get(stock.symbol)


class TestAlertService:

    def setup_method(self):
        self.notifier = MagicMock(spec=EmailService)
        self.notifier.send_price_alert.return_value = True
        self.notifier.send_alert_digest.return_value = True

    def test_create_and_list(self):
        alert = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"), note="buy zone")

        assert alert.is_active
        assert [a.id for a in AlertService.list_alerts(active_only=True)] == [alert.id]

    def test_target_must_be_positive(self):
        with pytest.raises(ValidationError):
            AlertService.create_alert("TSLA", AlertCondition.ABOVE, 0)

    def test_triggered_alerts_are_deactivated_and_notified(self):
        UserPreferencesRepository.save_email("me@example.com")
        below = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))
        above = AlertService.create_alert("NVDA", AlertCondition.ABOVE, Decimal("900"))
        untouched = AlertService.create_alert("AAPL", AlertCondition.ABOVE, Decimal("300"))

        triggered = AlertService.check_alerts(
            price_lookup=prices({"TSLA": 175.5, "NVDA": 900.0, "AAPL": 190.0}),
            notifier=self.notifier,
        )

        assert sorted(t.alert_id for t in triggered) == sorted([below.id, above.id])
        assert not AlertService.get_alert(below.id).is_active
        assert AlertService.get_alert(below.id).triggered_price == Decimal("175.5")
        assert AlertService.get_alert(untouched.id).is_active
        self.notifier.send_price_alert.assert_not_called()
        kwargs = self.notifier.send_alert_digest.call_args.kwargs
        assert kwargs['to_email'] == "me@example.com"
        assert sorted(row['symbol'] for row in kwargs['alerts']) == ["NVDA", "TSLA"]

    def test_single_alert_gets_its_own_email(self):
        UserPreferencesRepository.save_email("me@example.com")
        AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        AlertService.check_alerts(prices({"TSLA": 170.0}), self.notifier)

        self.notifier.send_alert_digest.assert_not_called()
        kwargs = self.notifier.send_price_alert.call_args.kwargs
        assert (kwargs['symbol'], kwargs['condition'], kwargs['current_price']) == ("TSLA", "BELOW", 170.0)

    def test_price_lookup_runs_while_other_writers_can_commit(self):
        alert = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        def lookup_and_write(stock):
            UserPreferencesRepository.save_email("me@example.com")
            return 170.0

        triggered = AlertService.check_alerts(lookup_and_write, self.notifier)

        assert [t.alert_id for t in triggered] == [alert.id]
        assert UserPreferencesRepository.get().email_address == "me@example.com"
        self.notifier.send_price_alert.assert_called_once()

    def test_default_lookup_uses_market_data(self, market_data):
        market_data.prices["TSLA"] = 170.0
        alert = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))
        AlertService.create_alert("NVDA", AlertCondition.ABOVE, Decimal("900"))

        triggered = AlertService.check_alerts(notifier=self.notifier)

        assert [t.alert_id for t in triggered] == [alert.id]

    def test_triggered_alert_fires_once(self):
        AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))
        lookup = prices({"TSLA": 170.0})

        assert len(AlertService.check_alerts(lookup, self.notifier)) == 1
        assert AlertService.check_alerts(lookup, self.notifier) == []

    def test_missing_price_skips_alert(self):
        alert = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        assert AlertService.check_alerts(prices({}), self.notifier) == []
        assert AlertService.get_alert(alert.id).is_active

    def test_no_recipient_means_no_email(self):
        AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        triggered = AlertService.check_alerts(prices({"TSLA": 100.0}), self.notifier)

        assert len(triggered) == 1
        self.notifier.send_price_alert.assert_not_called()

    def test_disabled_alert_emails(self):
        UserPreferencesRepository.save_email("me@example.com")
        UserPreferencesRepository.set_alerts_enabled(False)
        AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        AlertService.check_alerts(prices({"TSLA": 100.0}), self.notifier)

        self.notifier.send_price_alert.assert_not_called()

    def test_deactivate_and_delete(self):
        alert = AlertService.create_alert("TSLA", AlertCondition.BELOW, Decimal("180"))

        assert not AlertService.deactivate_alert(alert.id).is_active
        AlertService.delete_alert(alert.id)

        with pytest.raises(AlertNotFoundError):
            AlertService.get_alert(alert.id)


class TestEmailService:

    def test_unconfigured_service_does_not_send(self):
        assert EmailService().send_price_alert("me@example.com", "Tesla", "TSLA", "BELOW", 170.0, 180.0) is False

    def configured(self, **overrides):
        settings = Settings(smtp_username="journal@example.com", smtp_password="secret", **overrides)
        return EmailService(settings)

    def test_digest_lists_every_alert_in_one_message(self, monkeypatch):
        service = self.configured()
        sent = []
        monkeypatch.setattr(service, "_deliver", sent.append)

        ok = service.send_alert_digest("me@example.com", [
            {'symbol': "TSLA", 'name': "Tesla", 'condition': "BELOW", 'current_price': 170.0, 'target_price': 180.0},
            {'symbol': "NVDA", 'name': "NVIDIA", 'condition': "ABOVE", 'current_price': 905.5, 'target_price': 900.0},
        ])

        assert ok is True
        assert len(sent) == 1
        msg = sent[0]
        assert msg['Subject'] == "2 price alerts: TSLA, NVDA"
        assert msg['From'] == "journal@example.com"
        plain = msg.get_payload()[0].get_payload()
        assert "Tesla (TSLA): 170.00, target below 180.00" in plain
        assert "NVIDIA (NVDA): 905.50, target above 900.00" in plain

    def test_smtp_failure_is_reported_not_raised(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(notification.smtplib, "SMTP", refuse)

        assert self.configured().send_price_alert("me@example.com", "Tesla", "TSLA", "BELOW", 170.0, 180.0) is False

    def test_ssl_port_uses_implicit_tls(self, monkeypatch):
        server = MagicMock()
        ssl_factory = MagicMock(return_value=server)
        server.__enter__.return_value = server
        monkeypatch.setattr(notification.smtplib, "SMTP_SSL", ssl_factory)

        assert self.configured(smtp_port=465).send_price_alert(
            "me@example.com", "Tesla", "TSLA", "BELOW", 170.0, 180.0
        ) is True
        ssl_factory.assert_called_once_with("smtp.gmail.com", 465, timeout=30)
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()
