"""Session service — issue, validate and revoke opaque bearer tokens."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.clock import Clock, as_utc, utc_now
from portal.core.config import settings
from portal.core.security import generate_session_token
from portal.models.session import UserSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the lifecycle of login sessions.

    Expiry is fixed at creation (``SESSION_EXPIRY_DAYS``) and never extended.
    Validity is re-checked against the clock on every lookup; expired rows
    are left in place until :meth:`purge_expired` is called explicitly.
    """

    def __init__(self, db: Session, clock: Clock = utc_now, expiry_days: Optional[int] = None):
        self.db = db
        self.clock = clock
        days = settings.SESSION_EXPIRY_DAYS if expiry_days is None else expiry_days
        self.expiry = timedelta(days=days)

    def create_session(self, user_id: int) -> UserSession:
        """Persist a new session for ``user_id`` and return it with its token.

        A token collision trips the unique constraint and the integrity error
        propagates; there is no retry.
        """
        session = UserSession(
            user_id=user_id,
            token=generate_session_token(),
            expires_at=self.clock() + self.expiry,
        )
        self.db.add(session)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(session)
        logger.info("Session %s created for user %s", session.id, user_id)
        return session

    def validate_session(self, token: str) -> Optional[UserSession]:
        """Return the session (with its user) if the token exists and has not expired."""
        session = self.db.query(UserSession).filter(UserSession.token == token).first()
        if session is None:
            return None
        if as_utc(session.expires_at) <= self.clock():
            return None
        return session

    def delete_session(self, token: str) -> bool:
        """Remove the session for ``token``. Returns False when there was none."""
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.token == token)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        if deleted:
            logger.info("Session revoked")
        else:
            logger.debug("Logout for unknown session token")
        return bool(deleted)

    def purge_expired(self) -> int:
        """Delete every session whose expiry has passed. Returns the row count."""
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.expires_at <= self.clock())
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Purged %d expired sessions", deleted)
        return deleted
