from fastapi import APIRouter, Depends
from curated_discoveries.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, MeResponse
)
from curated_discoveries.modules.auth.service import SessionProvider
from curated_discoveries.modules.profiles.schemas import ProfileResponse
from curated_discoveries.core.dependencies import get_auth_session_provider, get_current_token
from curated_discoveries.core.exceptions import NotFoundError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    provider: SessionProvider = Depends(get_auth_session_provider)
):
    """Register a new user and create their profile"""
    result = provider.sign_up(
        register_data.email,
        register_data.password,
        register_data.full_name,
        register_data.username,
    )
    message = (
        "Check your email for the confirmation link"
        if result.confirmation_required
        else "User registered successfully"
    )
    return RegisterResponse(
        user_id=result.user_id,
        email=result.email,
        username=result.username,
        confirmation_required=result.confirmation_required,
        message=message,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    provider: SessionProvider = Depends(get_auth_session_provider)
):
    """Login and get access token"""
    state = provider.sign_in(login_data.email, login_data.password)
    return TokenResponse(
        access_token=state.session.access_token,
        refresh_token=state.session.refresh_token,
        user_id=state.user.id,
        email=state.user.email,
        profile=state.profile,
    )


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    provider: SessionProvider = Depends(get_auth_session_provider)
):
    """Logout and invalidate token"""
    provider.restore_from_token(token, load_profile=False)
    state = provider.sign_out()
    return {"message": state.error or "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_me(
    token: str = Depends(get_current_token),
    provider: SessionProvider = Depends(get_auth_session_provider)
):
    """Get current authenticated user and their profile"""
    state = provider.restore_from_token(token)
    return MeResponse(
        status=state.status,
        user_id=state.user.id,
        email=state.user.email,
        profile=state.profile,
    )


@router.post("/refresh-profile", response_model=ProfileResponse)
async def refresh_profile(
    token: str = Depends(get_current_token),
    provider: SessionProvider = Depends(get_auth_session_provider)
):
    """Re-fetch the caller's profile row, e.g. after editing it"""
    provider.restore_from_token(token, load_profile=False)
    profile = provider.refresh_profile()
    if profile is None:
        raise NotFoundError("Profile", provider.user.id)
    return profile
