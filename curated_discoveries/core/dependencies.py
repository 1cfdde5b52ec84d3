"""
Core dependencies for route protection and request-scoped session state
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from curated_discoveries.database.supabase_client import get_supabase, get_admin_supabase, new_supabase
from curated_discoveries.modules.auth.schemas import AuthUser
from curated_discoveries.modules.auth.service import SessionProvider
from curated_discoveries.modules.social.service import SocialFacade
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_session_provider(
    credentials: HTTPAuthorizationCredentials = Security(security),
    supabase: Client = Depends(get_supabase),
) -> SessionProvider:
    """Request-scoped provider for an authenticated caller. Invalid tokens raise AuthError (401)."""
    provider = SessionProvider(supabase)
    provider.restore_from_token(credentials.credentials, load_profile=False)
    return provider


def get_optional_session_provider(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    supabase: Client = Depends(get_supabase),
) -> SessionProvider:
    """Request-scoped provider that stays anonymous when no token is sent"""
    provider = SessionProvider(supabase)
    if credentials is not None:
        provider.restore_from_token(credentials.credentials, load_profile=False)
    return provider


def get_auth_session_provider() -> SessionProvider:
    """Provider on a private client for sign-in/sign-up/sign-out, so sessions never land on the shared client"""
    return SessionProvider(new_supabase(), admin_client=get_admin_supabase())


def get_current_user(provider: SessionProvider = Depends(get_session_provider)) -> AuthUser:
    return provider.user


def get_viewer_id(provider: SessionProvider = Depends(get_optional_session_provider)) -> Optional[str]:
    return provider.user.id if provider.user else None


def get_social_facade(
    provider: SessionProvider = Depends(get_optional_session_provider),
    supabase: Client = Depends(get_supabase),
) -> SocialFacade:
    return SocialFacade(supabase, provider)
