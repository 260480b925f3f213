"""Request-scoped service providers and the bearer-session gate."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portal.core.exceptions import AuthenticationError
from portal.db.session import get_db
from portal.models.user import User
from portal.services.auth_service import AuthService
from portal.services.file_service import FileService
from portal.services.project_service import ProjectService
from portal.services.session_service import SessionManager

# Extracts the token from "Authorization: Bearer <token>"
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_session_manager(db: Session = Depends(get_db)) -> SessionManager:
    return SessionManager(db)


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_file_service(db: Session = Depends(get_db)) -> FileService:
    return FileService(db)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """The raw session token, or None when no bearer header was sent."""
    if credentials is None:
        return None
    return credentials.credentials


async def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> User:
    """Resolve the session behind the bearer token.

    Runs on every protected request; there is no cache, so a logged-out or
    expired session is rejected immediately.
    """
    if not token:
        raise AuthenticationError("Missing or invalid authorization header")

    session = sessions.validate_session(token)
    if session is None or not session.user.is_active:
        raise AuthenticationError("Invalid or expired session")
    return session.user
