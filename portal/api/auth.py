"""Auth API router — register, login, logout, profile, 2FA."""

from typing import Optional, Union

from fastapi import APIRouter, Depends, status

from portal.api.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_user,
    get_session_manager,
)
from portal.models.user import User
from portal.schemas.schemas import (
    EnableTwoFactorRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    SuccessResponse,
    TwoFactorChallengeResponse,
    TwoFactorSecretResponse,
    UserPublic,
)
from portal.services.auth_service import AuthService
from portal.services.session_service import SessionManager

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Register a new user."""
    user = auth.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return RegisterResponse(message="User registered successfully", user=user)


@router.post("/login", response_model=Union[LoginResponse, TwoFactorChallengeResponse])
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Check credentials; issue a session token unless a 2FA code is still needed."""
    result = auth.login(body.email, body.password, body.totp_code)
    if result.requires_two_factor:
        return TwoFactorChallengeResponse(message="Please provide 2FA code")

    session = sessions.create_session(result.user.id)
    return LoginResponse(message="Login successful", user=result.user, token=session.token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Revoke the presented session, if any. Always succeeds."""
    if token:
        sessions.delete_session(token)
    return MessageResponse(message="Logout successful")


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile."""
    return ProfileResponse(user=UserPublic.model_validate(current_user))


@router.post("/2fa/generate", response_model=TwoFactorSecretResponse)
async def generate_two_factor_secret(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Create a TOTP secret and QR code for enrolment. Not persisted until enabled."""
    setup = auth.generate_two_factor_secret(current_user.id)
    return TwoFactorSecretResponse(secret=setup.secret, qr_code=setup.qr_code)


@router.post("/2fa/enable", response_model=SuccessResponse)
async def enable_two_factor(
    body: EnableTwoFactorRequest,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Turn on 2FA after verifying a code generated from the new secret."""
    auth.enable_two_factor(current_user.id, body.secret, body.token)
    return SuccessResponse(success=True)


@router.post("/2fa/disable", response_model=SuccessResponse)
async def disable_two_factor(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Turn off 2FA."""
    auth.disable_two_factor(current_user.id)
    return SuccessResponse(success=True)
