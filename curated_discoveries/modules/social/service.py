"""
Social interaction facade: likes, saves, follows, comments and shares.

Every write needs a signed-in user from the injected `SessionProvider` and
raises `UnauthenticatedError` before touching the database otherwise. Join
table writes (likes, follows, saved_curations) are idempotent upserts keyed
on the composite pair, and removals of absent rows are no-ops. Each toggle
returns the authoritative count read back after the write, so callers never
maintain counters themselves.

Curation-scoped reads and writes go through `_visible_curation`, so a curation
the caller may not see behaves exactly like a missing one (NotFoundError).
Removing your own like or save stays allowed after a curation is hidden.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote
import logging

from supabase import Client
from postgrest.exceptions import APIError

from curated_discoveries.config import settings
from curated_discoveries.core.exceptions import (
    NotFoundError, UnauthenticatedError, ValidationError, map_remote_error
)
from curated_discoveries.core.validation import normalize_text, COMMENT_MAX_LENGTH
from curated_discoveries.modules.auth.service import SessionProvider
from curated_discoveries.modules.curations.service import CurationService
from curated_discoveries.modules.profiles.schemas import UserStats
from curated_discoveries.modules.profiles.service import ProfileService
from curated_discoveries.modules.social.schemas import (
    CommentResponse, CurationCounts, FollowState, LikeState, SaveState,
    SharePlatform, ShareResult
)

logger = logging.getLogger(__name__)

SHARE_URL_TEMPLATES = {
    SharePlatform.TWITTER: "https://twitter.com/intent/tweet?url={url}",
    SharePlatform.FACEBOOK: "https://www.facebook.com/sharer/sharer.php?u={url}",
    SharePlatform.LINKEDIN: "https://www.linkedin.com/sharing/share-offsite/?url={url}",
}


def build_curation_url(site_url: str, curation_id: str) -> str:
    return f"{site_url.rstrip('/')}/curation/{curation_id}"


class SocialFacade:
    def __init__(self, supabase: Client, session: SessionProvider, site_url: Optional[str] = None):
        self.supabase = supabase
        self.session = session
        self.site_url = site_url or settings.site_url
        self.curations = CurationService(supabase)

    def _require_user(self, action: str) -> str:
        user = self.session.user
        if user is None:
            raise UnauthenticatedError(action)
        return user.id

    def _viewer_id(self) -> Optional[str]:
        user = self.session.user
        return user.id if user else None

    def _visible_curation(self, curation_id: str):
        self.curations.ensure_visible(curation_id, self._viewer_id())

    # -- likes ---------------------------------------------------------------

    def like_curation(self, curation_id: str) -> LikeState:
        user_id = self._require_user("like curations")
        self._visible_curation(curation_id)
        self._upsert_pair("likes", {"user_id": user_id, "curation_id": curation_id}, "user_id,curation_id", "Curation")
        return LikeState(curation_id=curation_id, liked=True, likes_count=self.count_likes(curation_id))

    def unlike_curation(self, curation_id: str) -> LikeState:
        user_id = self._require_user("unlike curations")
        self._delete_pair("likes", {"user_id": user_id, "curation_id": curation_id})
        return LikeState(curation_id=curation_id, liked=False, likes_count=self.count_likes(curation_id))

    def is_liked(self, curation_id: str) -> bool:
        user = self.session.user
        if user is None:
            return False
        return self._exists("likes", {"user_id": user.id, "curation_id": curation_id})

    def count_likes(self, curation_id: str) -> int:
        return self._count("likes", curation_id=curation_id)

    # -- saves ---------------------------------------------------------------

    def save_curation(self, curation_id: str) -> SaveState:
        user_id = self._require_user("save curations")
        self._visible_curation(curation_id)
        self._upsert_pair("saved_curations", {"user_id": user_id, "curation_id": curation_id}, "user_id,curation_id", "Curation")
        return SaveState(curation_id=curation_id, saved=True, saves_count=self._count("saved_curations", curation_id=curation_id))

    def unsave_curation(self, curation_id: str) -> SaveState:
        user_id = self._require_user("unsave curations")
        self._delete_pair("saved_curations", {"user_id": user_id, "curation_id": curation_id})
        return SaveState(curation_id=curation_id, saved=False, saves_count=self._count("saved_curations", curation_id=curation_id))

    def is_saved(self, curation_id: str) -> bool:
        user = self.session.user
        if user is None:
            return False
        return self._exists("saved_curations", {"user_id": user.id, "curation_id": curation_id})

    def list_saved_curation_ids(self, limit: int = 50, offset: int = 0) -> List[str]:
        user_id = self._require_user("see saved curations")
        try:
            result = self.supabase.table("saved_curations")\
                .select("curation_id")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "list_saved", "Curation")
        return [row["curation_id"] for row in result.data or []]

    # -- follows -------------------------------------------------------------

    def follow_user(self, user_id: str) -> FollowState:
        follower_id = self._require_user("follow users")
        if follower_id == user_id:
            raise ValidationError("user_id", "You cannot follow yourself")
        self._upsert_pair("follows", {"follower_id": follower_id, "following_id": user_id}, "follower_id,following_id", "User")
        return FollowState(user_id=user_id, following=True, followers_count=self._count("follows", following_id=user_id))

    def unfollow_user(self, user_id: str) -> FollowState:
        follower_id = self._require_user("unfollow users")
        self._delete_pair("follows", {"follower_id": follower_id, "following_id": user_id})
        return FollowState(user_id=user_id, following=False, followers_count=self._count("follows", following_id=user_id))

    def is_following(self, user_id: str) -> bool:
        user = self.session.user
        if user is None:
            return False
        return self._exists("follows", {"follower_id": user.id, "following_id": user_id})

    # -- comments ------------------------------------------------------------

    def add_comment(self, curation_id: str, content: str) -> CommentResponse:
        user_id = self._require_user("comment")
        text = normalize_text(content, "content", COMMENT_MAX_LENGTH, required=True)
        self._visible_curation(curation_id)
        try:
            result = self.supabase.table("comments").insert({
                "user_id": user_id,
                "curation_id": curation_id,
                "content": text,
            }).execute()
        except APIError as e:
            raise map_remote_error(e, "add_comment", "Curation")
        comment = CommentResponse(**result.data[0])
        comment.author = ProfileService(self.supabase).get_summaries([user_id]).get(user_id)
        return comment

    def update_comment(self, comment_id: str, content: str) -> CommentResponse:
        user_id = self._require_user("edit comments")
        text = normalize_text(content, "content", COMMENT_MAX_LENGTH, required=True)
        try:
            result = self.supabase.table("comments")\
                .update({"content": text, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .match({"id": comment_id, "user_id": user_id})\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "update_comment", "Comment")
        if not result.data:
            raise NotFoundError("Comment", comment_id)
        return CommentResponse(**result.data[0])

    def delete_comment(self, comment_id: str) -> bool:
        user_id = self._require_user("delete comments")
        try:
            result = self.supabase.table("comments")\
                .delete()\
                .match({"id": comment_id, "user_id": user_id})\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "delete_comment", "Comment")
        if not result.data:
            raise NotFoundError("Comment", comment_id)
        return True

    def get_comments(self, curation_id: str, limit: int = 100, offset: int = 0) -> List[CommentResponse]:
        """Comments on a curation, newest first, with author summaries"""
        self._visible_curation(curation_id)
        try:
            result = self.supabase.table("comments")\
                .select("*")\
                .eq("curation_id", curation_id)\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_comments", "Curation")
        rows = result.data or []
        authors = ProfileService(self.supabase).get_summaries([r["user_id"] for r in rows])
        return [CommentResponse(**r, author=authors.get(r["user_id"])) for r in rows]

    def count_comments(self, curation_id: str) -> int:
        return self._count("comments", curation_id=curation_id)

    # -- shares --------------------------------------------------------------

    def share_curation(self, curation_id: str, platform: str) -> ShareResult:
        """Record a share and return what the client should do with it.

        Recognized networks give an intent URL to open in a new window; `copy`
        gives the curation URL to write to the clipboard.
        """
        user_id = self._require_user("share curations")
        try:
            share_platform = SharePlatform((platform or "").strip().lower())
        except ValueError:
            raise ValidationError("platform", f"Unsupported share platform: {platform}")
        self._visible_curation(curation_id)

        try:
            self.supabase.table("shares").insert({
                "user_id": user_id,
                "curation_id": curation_id,
                "platform": share_platform.value,
            }).execute()
        except APIError as e:
            raise map_remote_error(e, "share_curation", "Curation")

        curation_url = build_curation_url(self.site_url, curation_id)
        if share_platform == SharePlatform.COPY:
            return ShareResult(platform=share_platform, curation_url=curation_url, action="copy", target_url=curation_url)
        target_url = SHARE_URL_TEMPLATES[share_platform].format(url=quote(curation_url, safe=""))
        return ShareResult(platform=share_platform, curation_url=curation_url, action="open", target_url=target_url)

    # -- stats ---------------------------------------------------------------

    def get_user_stats(self, user_id: str) -> UserStats:
        """Follower/following/curation/like counts, queried in parallel"""
        queries = {
            "followers_count": ("follows", {"following_id": user_id}),
            "following_count": ("follows", {"follower_id": user_id}),
            "curations_count": ("curations", {"user_id": user_id}),
            "likes_count": ("likes", {"user_id": user_id}),
        }
        with ThreadPoolExecutor(max_workers=settings.stats_max_workers) as pool:
            futures = {
                name: pool.submit(self._count_or_zero, table, filters)
                for name, (table, filters) in queries.items()
            }
            return UserStats(**{name: future.result() for name, future in futures.items()})

    def get_curation_counts(self, curation_id: str) -> CurationCounts:
        self._visible_curation(curation_id)
        return CurationCounts(
            likes_count=self.count_likes(curation_id),
            comments_count=self.count_comments(curation_id),
            saves_count=self._count("saved_curations", curation_id=curation_id),
        )

    # -- helpers -------------------------------------------------------------

    def _upsert_pair(self, table: str, row: dict, on_conflict: str, resource: str):
        try:
            self.supabase.table(table)\
                .upsert(row, on_conflict=on_conflict, ignore_duplicates=True)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, f"{table}_upsert", resource)

    def _delete_pair(self, table: str, row: dict):
        try:
            self.supabase.table(table).delete().match(row).execute()
        except APIError as e:
            raise map_remote_error(e, f"{table}_delete")

    def _exists(self, table: str, row: dict) -> bool:
        try:
            result = self.supabase.table(table)\
                .select("id")\
                .match(row)\
                .limit(1)\
                .execute()
        except APIError as e:
            logger.error(f"Error checking {table} for {row}: {e}")
            return False
        return bool(result.data)

    def _count(self, table: str, **filters) -> int:
        try:
            query = self.supabase.table(table).select("id", count="exact")
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.execute()
        except APIError as e:
            raise map_remote_error(e, f"{table}_count")
        return result.count or 0

    def _count_or_zero(self, table: str, filters: dict) -> int:
        try:
            return self._count(table, **filters)
        except Exception as e:
            logger.error(f"Error counting {table} for {filters}: {e}")
            return 0
