from fastapi import APIRouter, Depends, Query
from curated_discoveries.database.supabase_client import get_supabase
from curated_discoveries.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, ProfileSummary, UserStats
)
from curated_discoveries.modules.profiles.service import ProfileService
from curated_discoveries.modules.auth.schemas import AuthUser
from curated_discoveries.modules.curations.schemas import CurationResponse
from curated_discoveries.modules.curations.service import CurationService
from curated_discoveries.modules.social.service import SocialFacade
from curated_discoveries.core.dependencies import get_current_user, get_viewer_id, get_social_facade
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Update the caller's own profile"""
    return service.update_profile(current_user.id, profile_data)


@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(
    username: str,
    service: ProfileService = Depends(get_profile_service)
):
    """Get public profile by username"""
    return service.get_profile_by_username(username)


@router.get("/{username}/followers", response_model=List[ProfileSummary])
async def list_followers(
    username: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: ProfileService = Depends(get_profile_service)
):
    return service.list_followers(username, limit=limit, offset=offset)


@router.get("/{username}/following", response_model=List[ProfileSummary])
async def list_following(
    username: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: ProfileService = Depends(get_profile_service)
):
    return service.list_following(username, limit=limit, offset=offset)


@router.get("/{username}/stats", response_model=UserStats)
async def get_stats(
    username: str,
    service: ProfileService = Depends(get_profile_service),
    social: SocialFacade = Depends(get_social_facade)
):
    """Follower, following, curation and like counts"""
    profile = service.get_profile_by_username(username)
    return social.get_user_stats(profile.id)


@router.get("/{username}/curations", response_model=List[CurationResponse])
async def list_profile_curations(
    username: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    viewer_id: Optional[str] = Depends(get_viewer_id),
    supabase: Client = Depends(get_supabase),
    service: ProfileService = Depends(get_profile_service)
):
    """Curations by this user that the caller is allowed to see"""
    profile = service.get_profile_by_username(username)
    return CurationService(supabase).list_user_curations(profile.id, viewer_id=viewer_id, limit=limit, offset=offset)
