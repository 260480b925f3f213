"""Auth service — registration, credential checks and 2FA enrolment."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.clock import Clock, utc_now
from portal.core.exceptions import (
    InvalidCredentialsError,
    InvalidTwoFactorCodeError,
    InvalidVerificationCodeError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from portal.core.security import hash_password, verify_password
from portal.models.user import User
from portal.schemas.schemas import UserPublic
from portal.services.totp_service import TotpService

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    """Outcome of a credential check.

    When ``requires_two_factor`` is set the password was correct but a TOTP
    code is still needed; ``user`` is then None, so no session can be issued
    from a pending result.
    """
    requires_two_factor: bool
    user: Optional[UserPublic] = None


@dataclass
class TwoFactorSetup:
    secret: str
    qr_code: str


class AuthService:
    """Handles registration, login and two-factor management.

    Session issuance is not part of login: callers hand a completed
    :class:`LoginResult` to :class:`~portal.services.session_service.SessionManager`.
    """

    def __init__(self, db: Session, clock: Clock = utc_now, totp: Optional[TotpService] = None):
        self.db = db
        self.totp = totp or TotpService(clock=clock)

    def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserPublic:
        """Create a user and return its public projection.

        Raises:
            UserAlreadyExistsError: If the email is already registered.
        """
        existing = self.db.query(User).filter(User.email == email).first()
        if existing:
            raise UserAlreadyExistsError()

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent registration won the unique constraint
            self.db.rollback()
            raise UserAlreadyExistsError()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(user)

        logger.info("Registered user %s", user.id)
        return UserPublic.model_validate(user)

    def login(self, email: str, password: str, totp_code: Optional[str] = None) -> LoginResult:
        """Check credentials and, when enabled, the second factor.

        Raises:
            InvalidCredentialsError: Unknown email, inactive account or wrong password.
            InvalidTwoFactorCodeError: A TOTP code was given and did not verify.
        """
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not user.is_active:
            logger.info("Rejected login: unknown or inactive account")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.info("Rejected login for user %s: bad password", user.id)
            raise InvalidCredentialsError()

        if user.two_factor_enabled and user.two_factor_secret:
            if not totp_code:
                return LoginResult(requires_two_factor=True)
            if not self.totp.verify(user.two_factor_secret, totp_code):
                logger.info("Rejected login for user %s: bad 2FA code", user.id)
                raise InvalidTwoFactorCodeError()

        logger.info("User %s authenticated", user.id)
        return LoginResult(requires_two_factor=False, user=UserPublic.model_validate(user))

    def generate_two_factor_secret(self, user_id: int) -> TwoFactorSetup:
        """Create a fresh secret and its QR code. Nothing is persisted."""
        user = self._get_user(user_id)
        secret = self.totp.generate_secret()
        uri = self.totp.provisioning_uri(secret, user.email)
        return TwoFactorSetup(secret=secret, qr_code=self.totp.qr_code_data_url(uri))

    def enable_two_factor(self, user_id: int, secret: str, code: str) -> None:
        """Persist ``secret`` once ``code`` proves the authenticator holds it.

        Raises:
            InvalidVerificationCodeError: The code does not verify; the user is unchanged.
        """
        if not self.totp.verify(secret, code):
            raise InvalidVerificationCodeError()

        user = self._get_user(user_id)
        user.two_factor_enabled = True
        user.two_factor_secret = secret
        self._commit()
        logger.info("2FA enabled for user %s", user_id)

    def disable_two_factor(self, user_id: int) -> None:
        """Clear 2FA for the user. The current factor is not re-verified."""
        user = self._get_user(user_id)
        user.two_factor_enabled = False
        user.two_factor_secret = None
        self._commit()
        logger.info("2FA disabled for user %s", user_id)

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise UserNotFoundError()
        return user

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
