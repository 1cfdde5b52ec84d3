from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any
from enum import Enum
from curated_discoveries.modules.profiles.schemas import ProfileResponse


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str
    username: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: Optional[str] = None
    profile: Optional[ProfileResponse] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    username: str
    confirmation_required: bool
    message: str


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class AuthUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}

    @classmethod
    def from_supabase(cls, user: Any) -> "AuthUser":
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            user_metadata=getattr(user, "user_metadata", None) or {},
            app_metadata=getattr(user, "app_metadata", None) or {},
        )


class AuthSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: AuthUser

    @classmethod
    def from_supabase(cls, session: Any) -> "AuthSession":
        return cls(
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", None),
            expires_at=getattr(session, "expires_at", None),
            user=AuthUser.from_supabase(session.user),
        )


class SessionState(BaseModel):
    """One immutable snapshot of who is signed in.

    The provider replaces the snapshot on every change, so listeners can
    detect changes by identity.
    """
    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.UNINITIALIZED
    user: Optional[AuthUser] = None
    session: Optional[AuthSession] = None
    profile: Optional[ProfileResponse] = None
    loading: bool = False
    profile_loading: bool = False
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class SignUpResult(BaseModel):
    user_id: str
    email: str
    username: str
    confirmation_required: bool
    profile: Optional[ProfileResponse] = None


class MeResponse(BaseModel):
    status: SessionStatus
    user_id: str
    email: Optional[str] = None
    profile: Optional[ProfileResponse] = None
