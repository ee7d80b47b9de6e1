"""
E-mail delivery for price alerts.

One message per alert check: a single triggered alert is sent on its own,
several are combined into a digest. Delivery failures are logged and
reported as False; they never undo the alert check that produced them.
"""

import smtplib
import logging
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, List, Optional, Sequence

from config import Settings, get_settings

logger = logging.getLogger(__name__)

SMTP_SSL_PORT = 465


def _direction(condition: str) -> str:
    return "above" if condition == "ABOVE" else "below"


def _html_table(rows: Sequence[Sequence[str]], header: Optional[Sequence[str]] = None) -> str:
    cells = []
    if header:
        cells.append("<tr>" + "".join(f"<th>{h}</th>" for h in header) + "</tr>")
    for row in rows:
        cells.append("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>")
    return (
        '<table border="1" cellpadding="8" cellspacing="0" style="border-collapse: collapse;">'
        + "".join(cells)
        + "</table>"
    )


class EmailService:
    """SMTP sender for alert notifications."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.smtp_server = settings.smtp_server
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.from_email = settings.email_from
        self.timeout = settings.smtp_timeout_seconds

    def is_configured(self) -> bool:
        return all([self.smtp_username, self.smtp_password, self.from_email])

    def _build_message(self, to_email: str, subject: str, html_content: str,
                       plain_text: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to_email
        # Clients show the last alternative they understand
        if plain_text:
            msg.attach(MIMEText(plain_text, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        if self.smtp_port == SMTP_SSL_PORT:
            server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout)
        with server:
            if self.smtp_port != SMTP_SSL_PORT:
                server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_text: Optional[str] = None
    ) -> bool:
        """
        Send an HTML e-mail with an optional plain-text alternative.

        Returns:
            True if the message was handed to the SMTP server
        """
        if not self.is_configured():
            logger.error("Email service not configured. Missing credentials.")
            return False
        if not to_email:
            logger.error("Recipient email address is required.")
            return False

        try:
            self._deliver(self._build_message(to_email, subject, html_content, plain_text))
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    def send_price_alert(
        self,
        to_email: str,
        stock_name: str,
        symbol: str,
        condition: str,
        current_price: float,
        target_price: float
    ) -> bool:
        """Send the notification for one triggered alert."""
        direction = _direction(condition)
        checked_at = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        table = _html_table([
            ("<strong>Stock</strong>", f"{stock_name} ({symbol})"),
            ("<strong>Current Price</strong>", f"{current_price:,.2f}"),
            ("<strong>Target</strong>", f"{direction} {target_price:,.2f}"),
            ("<strong>Checked</strong>", checked_at),
        ])
        html_content = (
            "<html><body><h2>Price Alert Triggered</h2>"
            f"<p>Your price alert for <strong>{stock_name} ({symbol})</strong> has been triggered.</p>"
            f"{table}"
            "<p><em>Sent by the trading journal price monitor.</em></p></body></html>"
        )
        plain_text = (
            f"{stock_name} ({symbol}) is at {current_price:,.2f}, "
            f"{direction} your target of {target_price:,.2f}."
        )

        subject = f"Price Alert: {symbol} {direction} {target_price:,.2f}"
        return self.send_email(to_email, subject, html_content, plain_text)

    def send_alert_digest(self, to_email: str, alerts: List[Dict]) -> bool:
        """
        Send one message covering several triggered alerts.

        Args:
            to_email: Recipient
            alerts: Dicts with 'symbol', 'name', 'condition', 'current_price', 'target_price'
        """
        rows = [
            (
                f"{a['name']} ({a['symbol']})",
                f"{a['current_price']:,.2f}",
                f"{_direction(a['condition'])} {a['target_price']:,.2f}",
            )
            for a in alerts
        ]
        html_content = (
            f"<html><body><h2>{len(alerts)} Price Alerts Triggered</h2>"
            f"{_html_table(rows, header=('Stock', 'Current Price', 'Target'))}"
            f"<p><em>Checked {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} "
            "by the trading journal price monitor.</em></p></body></html>"
        )
        plain_text = "\n".join(f"{stock}: {price}, target {target}" for stock, price, target in rows)

        symbols = ", ".join(a['symbol'] for a in alerts)
        subject = f"{len(alerts)} price alerts: {symbols}"
        return self.send_email(to_email, subject, html_content, plain_text)
