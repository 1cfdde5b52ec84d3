from supabase import Client
from postgrest.exceptions import APIError
from curated_discoveries.modules.profiles.schemas import ProfileUpdate, ProfileResponse, ProfileSummary
from curated_discoveries.core.exceptions import NotFoundError, ConflictError, map_remote_error
from curated_discoveries.core.validation import (
    normalize_username, normalize_full_name, normalize_text, normalize_url, BIO_MAX_LENGTH
)
from datetime import datetime, timezone
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = "id, username, full_name, avatar_url"


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_profile(self, user_id: str) -> Optional[ProfileResponse]:
        """Get profile by user id, or None when the row does not exist"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_profile", "Profile")
        if not result.data:
            return None
        return ProfileResponse(**result.data[0])

    def get_profile(self, user_id: str) -> ProfileResponse:
        profile = self.find_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)
        return profile

    def get_profile_by_username(self, username: str) -> ProfileResponse:
        """Get profile by username (case-insensitive, usernames are stored lowercase)"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("username", (username or "").strip().lower())\
                .limit(1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_profile_by_username", "Profile")
        if not result.data:
            raise NotFoundError("Profile", username)
        return ProfileResponse(**result.data[0])

    def username_taken(self, username: str, exclude_user_id: Optional[str] = None) -> bool:
        try:
            query = self.supabase.table("profiles")\
                .select("id")\
                .eq("username", username)
            if exclude_user_id:
                query = query.neq("id", exclude_user_id)
            result = query.limit(1).execute()
        except APIError as e:
            raise map_remote_error(e, "check_username", "Profile")
        return bool(result.data)

    def create_profile(self, user_id: str, username: str, full_name: str, email: str) -> ProfileResponse:
        """Insert the profile row for a freshly created identity.

        Errors are raised untranslated so the caller can run its compensating action first.
        """
        result = self.supabase.table("profiles").insert({
            "id": user_id,
            "username": username,
            "full_name": full_name,
            "email": email,
        }).execute()
        if not result.data:
            raise APIError({"message": "Profile insert returned no row", "code": "NO_ROW"})
        return ProfileResponse(**result.data[0])

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the caller's own profile"""
        update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if profile_data.full_name is not None:
            update_data["full_name"] = normalize_full_name(profile_data.full_name)
        if profile_data.username is not None:
            username = normalize_username(profile_data.username)
            if self.username_taken(username, exclude_user_id=user_id):
                raise ConflictError("This username is already taken", field="username")
            update_data["username"] = username
        if profile_data.bio is not None:
            update_data["bio"] = normalize_text(profile_data.bio, "bio", BIO_MAX_LENGTH)
        if profile_data.website is not None:
            update_data["website"] = normalize_url(profile_data.website, "website")
        if profile_data.avatar_url is not None:
            update_data["avatar_url"] = normalize_url(profile_data.avatar_url, "avatar_url")
        if profile_data.cover_url is not None:
            update_data["cover_url"] = normalize_url(profile_data.cover_url, "cover_url")

        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "update_profile", "Username")

        if not result.data:
            raise NotFoundError("Profile", user_id)
        logger.info(f"Profile updated for user {user_id}: {sorted(k for k in update_data if k != 'updated_at')}")
        return ProfileResponse(**result.data[0])

    def list_followers(self, username: str, limit: int = 50, offset: int = 0) -> List[ProfileSummary]:
        """Profiles following the given user, newest follow first"""
        profile = self.get_profile_by_username(username)
        return self._list_follow_side(
            match_column="following_id", other_column="follower_id",
            user_id=profile.id, limit=limit, offset=offset,
        )

    def list_following(self, username: str, limit: int = 50, offset: int = 0) -> List[ProfileSummary]:
        """Profiles the given user follows, newest follow first"""
        profile = self.get_profile_by_username(username)
        return self._list_follow_side(
            match_column="follower_id", other_column="following_id",
            user_id=profile.id, limit=limit, offset=offset,
        )

    def _list_follow_side(
        self,
        match_column: str,
        other_column: str,
        user_id: str,
        limit: int,
        offset: int,
    ) -> List[ProfileSummary]:
        try:
            follows_result = self.supabase.table("follows")\
                .select(other_column)\
                .eq(match_column, user_id)\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            if not follows_result.data:
                return []
            ids = [row[other_column] for row in follows_result.data]
            profiles_result = self.supabase.table("profiles")\
                .select(SUMMARY_COLUMNS)\
                .in_("id", ids)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "list_follows", "Profile")
        by_id = {p["id"]: p for p in profiles_result.data or []}
        # keep follow order; skip follows whose profile row is gone
        return [ProfileSummary(**by_id[i]) for i in ids if i in by_id]

    def get_summaries(self, user_ids: List[str]) -> dict:
        """Map user id -> ProfileSummary for the given ids"""
        ids = list({i for i in user_ids if i})
        if not ids:
            return {}
        try:
            result = self.supabase.table("profiles")\
                .select(SUMMARY_COLUMNS)\
                .in_("id", ids)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_profiles", "Profile")
        return {p["id"]: ProfileSummary(**p) for p in result.data or []}
