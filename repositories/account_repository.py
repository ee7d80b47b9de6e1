"""
Account Repository - data access layer for Account model.
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from models import Account
from repositories.base import session_scope


class AccountRepository:
    """Repository for Account CRUD operations."""

    @staticmethod
    def add(account: Account, session: Optional[Session] = None) -> Account:
        """
        Persist a new account.

        Args:
            account: Unsaved Account instance
            session: Optional existing session for transaction reuse

        Returns:
            The account with its id assigned
        """
        with session_scope(session) as sess:
            sess.add(account)
            sess.flush()
            sess.refresh(account)
            return account

    @staticmethod
    def save(account: Account, session: Optional[Session] = None) -> Account:
        """Persist changes to an existing account."""
        with session_scope(session) as sess:
            account.updated_at = datetime.now()
            sess.add(account)
            sess.flush()
            return account

    @staticmethod
    def get_by_id(account_id: int, session: Optional[Session] = None) -> Optional[Account]:
        with session_scope(session) as sess:
            return sess.get(Account, account_id)

    @staticmethod
    def get_all(user_id: Optional[int] = None, session: Optional[Session] = None) -> List[Account]:
        """
        Retrieve the accounts of a user, default account first, then oldest first.

        Args:
            user_id: Owner id (None for the single-user setup)
            session: Optional existing session for transaction reuse

        Returns:
            List of Account objects
        """
        with session_scope(session) as sess:
            statement = (
                select(Account)
                .where(Account.user_id == user_id if user_id is not None else Account.user_id.is_(None))
                .order_by(Account.is_default.desc(), Account.created_at, Account.id)
            )
            return list(sess.exec(statement).all())

    @staticmethod
    def get_default(user_id: Optional[int] = None, session: Optional[Session] = None) -> Optional[Account]:
        """Retrieve the user's default account, if any."""
        with session_scope(session) as sess:
            statement = select(Account).where(
                Account.is_default == True,  # noqa: E712
                Account.user_id == user_id if user_id is not None else Account.user_id.is_(None)
            )
            return sess.exec(statement).first()

    @staticmethod
    def exists_by_name(name: str, user_id: Optional[int] = None, session: Optional[Session] = None) -> bool:
        with session_scope(session) as sess:
            statement = select(Account.id).where(
                Account.name == name,
                Account.user_id == user_id if user_id is not None else Account.user_id.is_(None)
            )
            return sess.exec(statement).first() is not None

    @staticmethod
    def delete(account: Account, session: Optional[Session] = None) -> None:
        with session_scope(session) as sess:
            sess.delete(account)
            sess.flush()
