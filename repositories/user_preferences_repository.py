"""
UserPreferences Repository - data access layer for UserPreferences model.
"""

from typing import Optional
from sqlmodel import Session, select

from models import UserPreferences
from repositories.base import session_scope


class UserPreferencesRepository:
    """Repository for UserPreferences CRUD operations."""

    @staticmethod
    def get(session: Optional[Session] = None) -> Optional[UserPreferences]:
        """Retrieve user preferences (singleton - only one record expected)."""
        with session_scope(session) as sess:
            return sess.exec(select(UserPreferences)).first()

    @staticmethod
    def save_email(email: str, session: Optional[Session] = None) -> UserPreferences:
        """Save or update the alert e-mail address."""
        with session_scope(session) as sess:
            prefs = sess.exec(select(UserPreferences)).first()
            if prefs:
                prefs.email_address = email
            else:
                prefs = UserPreferences(email_address=email)
            sess.add(prefs)
            sess.flush()
            return prefs

    @staticmethod
    def set_alerts_enabled(enabled: bool, session: Optional[Session] = None) -> UserPreferences:
        """Turn e-mail price alerts on or off."""
        with session_scope(session) as sess:
            prefs = sess.exec(select(UserPreferences)).first()
            if prefs:
                prefs.alerts_enabled = enabled
            else:
                prefs = UserPreferences(alerts_enabled=enabled)
            sess.add(prefs)
            sess.flush()
            return prefs
