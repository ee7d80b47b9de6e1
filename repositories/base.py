"""
Session handling shared by all repositories.

Every repository method accepts an optional session. When the caller passes
one (normally a UnitOfWork's session) the method only flushes and the caller
owns the commit; otherwise a short-lived session is opened and committed.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlmodel import Session

from db_engine import get_session


@contextmanager
def session_scope(session: Optional[Session] = None) -> Iterator[Session]:
    """Yield the caller's session, or a new one that commits on success."""
    if session is not None:
        yield session
        return

    own = get_session()
    try:
        yield own
        own.commit()
    except Exception:
        own.rollback()
        raise
    finally:
        own.close()
