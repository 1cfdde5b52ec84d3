from supabase import Client
from postgrest.exceptions import APIError
from curated_discoveries.modules.curations.schemas import (
    CurationCreate, CurationUpdate, CurationResponse,
    ItemCreate, ItemUpdate, ItemResponse, MoveDirection, Visibility
)
from curated_discoveries.core.exceptions import NotFoundError, PermissionDeniedError, map_remote_error
from curated_discoveries.core.validation import (
    normalize_text, normalize_url, normalize_tags, TITLE_MAX_LENGTH
)
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 2000

# Tables holding rows that reference a curation; cleared before the curation itself
CURATION_CHILD_TABLES = ("curation_items", "curation_tags", "likes", "comments", "saved_curations", "shares")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CurationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # -- curations -----------------------------------------------------------

    def create_curation(self, curation_data: CurationCreate, user_id: str) -> CurationResponse:
        """Create a curation with optional tags and initial items (ranked in the given order)"""
        title = normalize_text(curation_data.title, "title", TITLE_MAX_LENGTH, required=True)
        tags = normalize_tags(curation_data.tags)
        items = [self._item_row(item) for item in curation_data.items]
        try:
            result = self.supabase.table("curations").insert({
                "user_id": user_id,
                "title": title,
                "description": normalize_text(curation_data.description, "description", DESCRIPTION_MAX_LENGTH),
                "cover_image_url": normalize_url(curation_data.cover_image_url, "cover_image_url"),
                "visibility": curation_data.visibility.value,
            }).execute()
        except APIError as e:
            raise map_remote_error(e, "create_curation", "Curation")

        curation = result.data[0]
        if items:
            for position, row in enumerate(items):
                row["curation_id"] = curation["id"]
                row["position"] = position
            try:
                self.supabase.table("curation_items").insert(items).execute()
            except APIError as e:
                raise map_remote_error(e, "create_items", "Curation")
        if tags:
            self._replace_tags(curation["id"], tags)
        logger.info(f"Curation {curation['id']} created by {user_id} with {len(items)} item(s)")
        return CurationResponse(**curation, tags=tags)

    def get_curation(self, curation_id: str, viewer_id: Optional[str] = None) -> CurationResponse:
        """Get curation by ID, hidden as not found when the viewer may not see it"""
        curation = self.ensure_visible(curation_id, viewer_id)
        tags = self.get_tags([curation_id]).get(curation_id, [])
        return CurationResponse(**curation, tags=tags)

    def list_curations(self, limit: int = 20, offset: int = 0, tag: Optional[str] = None) -> List[CurationResponse]:
        """Public feed, newest first, optionally filtered by tag"""
        try:
            query = self.supabase.table("curations").select("*").eq("visibility", Visibility.PUBLIC.value)
            if tag:
                curation_ids = self._curation_ids_for_tag(tag)
                if not curation_ids:
                    return []
                query = query.in_("id", curation_ids)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "list_curations", "Curation")
        return self._with_tags(result.data or [])

    def list_user_curations(
        self,
        owner_id: str,
        viewer_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[CurationResponse]:
        """Curations by one user that the viewer is allowed to see"""
        if viewer_id == owner_id:
            visible = [v.value for v in Visibility]
        elif viewer_id and self._follows(viewer_id, owner_id):
            visible = [Visibility.PUBLIC.value, Visibility.FOLLOWERS_ONLY.value]
        else:
            visible = [Visibility.PUBLIC.value]
        try:
            result = self.supabase.table("curations")\
                .select("*")\
                .eq("user_id", owner_id)\
                .in_("visibility", visible)\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "list_user_curations", "Curation")
        return self._with_tags(result.data or [])

    def update_curation(self, curation_id: str, curation_data: CurationUpdate, user_id: str) -> CurationResponse:
        """Update curation (owner only)"""
        self._require_owner(curation_id, user_id)
        update_data = {"updated_at": _now()}
        if curation_data.title is not None:
            update_data["title"] = normalize_text(curation_data.title, "title", TITLE_MAX_LENGTH, required=True)
        if curation_data.description is not None:
            update_data["description"] = normalize_text(curation_data.description, "description", DESCRIPTION_MAX_LENGTH)
        if curation_data.cover_image_url is not None:
            update_data["cover_image_url"] = normalize_url(curation_data.cover_image_url, "cover_image_url")
        if curation_data.visibility is not None:
            update_data["visibility"] = curation_data.visibility.value

        try:
            result = self.supabase.table("curations")\
                .update(update_data)\
                .eq("id", curation_id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "update_curation", "Curation")
        if not result.data:
            raise NotFoundError("Curation", curation_id)

        if curation_data.tags is not None:
            tags = self._replace_tags(curation_id, normalize_tags(curation_data.tags))
        else:
            tags = self.get_tags([curation_id]).get(curation_id, [])
        return CurationResponse(**result.data[0], tags=tags)

    def delete_curation(self, curation_id: str, user_id: str) -> bool:
        """Delete curation and everything attached to it (owner only)"""
        self._require_owner(curation_id, user_id)
        try:
            for table in CURATION_CHILD_TABLES:
                self.supabase.table(table)\
                    .delete()\
                    .eq("curation_id", curation_id)\
                    .execute()
            result = self.supabase.table("curations")\
                .delete()\
                .eq("id", curation_id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "delete_curation", "Curation")
        logger.info(f"Curation {curation_id} deleted by {user_id}")
        return len(result.data) > 0

    # -- tags ----------------------------------------------------------------

    def set_tags(self, curation_id: str, names: List[str], user_id: str) -> List[str]:
        """Replace the tags of a curation (owner only)"""
        self._require_owner(curation_id, user_id)
        return self._replace_tags(curation_id, normalize_tags(names))

    def get_tags(self, curation_ids: List[str]) -> Dict[str, List[str]]:
        """Map curation id -> tag names"""
        if not curation_ids:
            return {}
        try:
            links = self.supabase.table("curation_tags")\
                .select("curation_id, tag_id")\
                .in_("curation_id", curation_ids)\
                .execute()
            if not links.data:
                return {}
            tag_ids = list({link["tag_id"] for link in links.data})
            tags_result = self.supabase.table("tags")\
                .select("id, name")\
                .in_("id", tag_ids)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_tags", "Tag")
        names = {t["id"]: t["name"] for t in tags_result.data or []}
        tags: Dict[str, List[str]] = {}
        for link in links.data:
            if link["tag_id"] in names:
                tags.setdefault(link["curation_id"], []).append(names[link["tag_id"]])
        for values in tags.values():
            values.sort()
        return tags

    def _replace_tags(self, curation_id: str, tags: List[str]) -> List[str]:
        try:
            self.supabase.table("curation_tags")\
                .delete()\
                .eq("curation_id", curation_id)\
                .execute()
            if not tags:
                return []
            tags_result = self.supabase.table("tags")\
                .upsert([{"name": name} for name in tags], on_conflict="name")\
                .execute()
            tag_ids = {t["name"]: t["id"] for t in tags_result.data or []}
            self.supabase.table("curation_tags").insert([
                {"curation_id": curation_id, "tag_id": tag_ids[name]}
                for name in tags if name in tag_ids
            ]).execute()
        except APIError as e:
            raise map_remote_error(e, "set_tags", "Tag")
        return sorted(tags)

    def _curation_ids_for_tag(self, tag: str) -> List[str]:
        tag_result = self.supabase.table("tags")\
            .select("id")\
            .eq("name", tag.strip().lower())\
            .limit(1)\
            .execute()
        if not tag_result.data:
            return []
        links = self.supabase.table("curation_tags")\
            .select("curation_id")\
            .eq("tag_id", tag_result.data[0]["id"])\
            .execute()
        return [link["curation_id"] for link in links.data or []]

    # -- items ---------------------------------------------------------------

    def add_item(self, curation_id: str, item_data: ItemCreate, user_id: str) -> ItemResponse:
        """Append an item after the current last position (owner only)"""
        self._require_owner(curation_id, user_id)
        row = self._item_row(item_data)
        row["curation_id"] = curation_id
        row["position"] = self._next_position(curation_id)
        try:
            result = self.supabase.table("curation_items").insert(row).execute()
        except APIError as e:
            raise map_remote_error(e, "add_item", "Curation")
        return ItemResponse(**result.data[0])

    def list_items(self, curation_id: str, viewer_id: Optional[str] = None) -> List[ItemResponse]:
        self.ensure_visible(curation_id, viewer_id)
        try:
            result = self.supabase.table("curation_items")\
                .select("*")\
                .eq("curation_id", curation_id)\
                .order("position")\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "list_items", "Curation")
        return [ItemResponse(**item) for item in result.data or []]

    def update_item(self, curation_id: str, item_id: str, item_data: ItemUpdate, user_id: str) -> ItemResponse:
        self._require_owner(curation_id, user_id)
        update_data = {"updated_at": _now()}
        if item_data.title is not None:
            update_data["title"] = normalize_text(item_data.title, "title", TITLE_MAX_LENGTH, required=True)
        if item_data.description is not None:
            update_data["description"] = normalize_text(item_data.description, "description", DESCRIPTION_MAX_LENGTH)
        if item_data.external_url is not None:
            update_data["external_url"] = normalize_url(item_data.external_url, "external_url")
        if item_data.image_url is not None:
            update_data["image_url"] = normalize_url(item_data.image_url, "image_url")
        try:
            result = self.supabase.table("curation_items")\
                .update(update_data)\
                .eq("id", item_id)\
                .eq("curation_id", curation_id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "update_item", "Item")
        if not result.data:
            raise NotFoundError("Item", item_id)
        return ItemResponse(**result.data[0])

    def delete_item(self, curation_id: str, item_id: str, user_id: str) -> bool:
        self._require_owner(curation_id, user_id)
        try:
            result = self.supabase.table("curation_items")\
                .delete()\
                .eq("id", item_id)\
                .eq("curation_id", curation_id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "delete_item", "Item")
        if not result.data:
            raise NotFoundError("Item", item_id)
        return True

    def move_item(self, curation_id: str, item_id: str, direction: MoveDirection, user_id: str) -> List[ItemResponse]:
        """Swap an item with its neighbour above or below. Moving past either end is a no-op."""
        self._require_owner(curation_id, user_id)
        items = self.list_items(curation_id, viewer_id=user_id)
        index = next((i for i, item in enumerate(items) if item.id == item_id), None)
        if index is None:
            raise NotFoundError("Item", item_id)
        target = index - 1 if direction == MoveDirection.UP else index + 1
        if target < 0 or target >= len(items):
            return items

        current, neighbour = items[index], items[target]
        current_position, neighbour_position = current.position, neighbour.position
        if current_position == neighbour_position:
            # positions are not unique; break the tie so the swap is visible
            neighbour_position = current_position + (-1 if direction == MoveDirection.UP else 1)
        try:
            self.supabase.table("curation_items")\
                .update({"position": neighbour_position, "updated_at": _now()})\
                .eq("id", current.id)\
                .execute()
            self.supabase.table("curation_items")\
                .update({"position": current_position, "updated_at": _now()})\
                .eq("id", neighbour.id)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "move_item", "Item")
        return self.list_items(curation_id, viewer_id=user_id)

    def _next_position(self, curation_id: str) -> int:
        try:
            result = self.supabase.table("curation_items")\
                .select("position")\
                .eq("curation_id", curation_id)\
                .order("position", desc=True)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "next_position", "Curation")
        if not result.data:
            return 0
        return result.data[0]["position"] + 1

    @staticmethod
    def _item_row(item_data: ItemCreate) -> dict:
        return {
            "title": normalize_text(item_data.title, "title", TITLE_MAX_LENGTH, required=True),
            "description": normalize_text(item_data.description, "description", DESCRIPTION_MAX_LENGTH),
            "external_url": normalize_url(item_data.external_url, "external_url"),
            "image_url": normalize_url(item_data.image_url, "image_url"),
        }

    # -- access --------------------------------------------------------------

    def ensure_visible(self, curation_id: str, viewer_id: Optional[str]) -> dict:
        """Curation row, or NotFoundError when it is missing or hidden from the viewer"""
        curation = self._fetch_curation(curation_id)
        if not self._can_view(curation, viewer_id):
            raise NotFoundError("Curation", curation_id)
        return curation

    def _fetch_curation(self, curation_id: str) -> dict:
        try:
            result = self.supabase.table("curations")\
                .select("*")\
                .eq("id", curation_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "get_curation", "Curation")
        if not result.data:
            raise NotFoundError("Curation", curation_id)
        return result.data[0]

    def _require_owner(self, curation_id: str, user_id: str) -> dict:
        curation = self._fetch_curation(curation_id)
        if curation.get("user_id") != user_id:
            raise PermissionDeniedError("Only the owner can change this curation")
        return curation

    def _can_view(self, curation: dict, viewer_id: Optional[str]) -> bool:
        visibility = curation.get("visibility") or Visibility.PUBLIC.value
        if visibility == Visibility.PUBLIC.value:
            return True
        if viewer_id is None:
            return False
        if curation.get("user_id") == viewer_id:
            return True
        if visibility == Visibility.FOLLOWERS_ONLY.value:
            return self._follows(viewer_id, curation["user_id"])
        return False

    def _follows(self, follower_id: str, following_id: str) -> bool:
        try:
            result = self.supabase.table("follows")\
                .select("id")\
                .eq("follower_id", follower_id)\
                .eq("following_id", following_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise map_remote_error(e, "check_follow", "User")
        return bool(result.data)

    def _with_tags(self, rows: List[dict]) -> List[CurationResponse]:
        tags = self.get_tags([row["id"] for row in rows])
        return [CurationResponse(**row, tags=tags.get(row["id"], [])) for row in rows]
