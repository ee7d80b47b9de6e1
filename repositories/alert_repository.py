"""
Alert Repository - data access layer for PriceAlert model.
"""

from typing import List, Optional

from sqlmodel import Session, select

from models import PriceAlert
from repositories.base import session_scope


class AlertRepository:
    """Repository for PriceAlert CRUD operations."""

    @staticmethod
    def add(alert: PriceAlert, session: Optional[Session] = None) -> PriceAlert:
        with session_scope(session) as sess:
            sess.add(alert)
            sess.flush()
            sess.refresh(alert)
            return alert

    @staticmethod
    def save(alert: PriceAlert, session: Optional[Session] = None) -> PriceAlert:
        with session_scope(session) as sess:
            sess.add(alert)
            sess.flush()
            return alert

    @staticmethod
    def get_by_id(alert_id: int, session: Optional[Session] = None) -> Optional[PriceAlert]:
        with session_scope(session) as sess:
            return sess.get(PriceAlert, alert_id)

    @staticmethod
    def get_all(active_only: bool = False, session: Optional[Session] = None) -> List[PriceAlert]:
        """
        Retrieve price alerts.

        Args:
            active_only: Only alerts that have not triggered yet
            session: Optional existing session for transaction reuse

        Returns:
            List of PriceAlert objects, oldest first
        """
        with session_scope(session) as sess:
            statement = select(PriceAlert)
            if active_only:
                statement = statement.where(PriceAlert.is_active == True)  # noqa: E712
            return list(sess.exec(statement.order_by(PriceAlert.id)).all())

    @staticmethod
    def delete(alert: PriceAlert, session: Optional[Session] = None) -> None:
        with session_scope(session) as sess:
            sess.delete(alert)
            sess.flush()
