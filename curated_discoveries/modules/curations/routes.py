from fastapi import APIRouter, Body, Depends, Query
from curated_discoveries.database.supabase_client import get_supabase
from curated_discoveries.modules.curations.schemas import (
    CurationCreate, CurationUpdate, CurationResponse, CurationDetailResponse,
    ItemCreate, ItemUpdate, ItemMove, ItemResponse
)
from curated_discoveries.modules.curations.service import CurationService
from curated_discoveries.modules.auth.schemas import AuthUser
from curated_discoveries.modules.social.service import SocialFacade
from curated_discoveries.core.dependencies import get_current_user, get_viewer_id, get_social_facade
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/curations", tags=["curations"])


def get_curation_service(supabase: Client = Depends(get_supabase)) -> CurationService:
    return CurationService(supabase)


@router.get("", response_model=List[CurationResponse])
async def list_curations(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    tag: Optional[str] = None,
    service: CurationService = Depends(get_curation_service)
):
    """Public feed, newest first"""
    return service.list_curations(limit=limit, offset=offset, tag=tag)


@router.post("", response_model=CurationResponse, status_code=201)
async def create_curation(
    curation_data: CurationCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Create a new curation, optionally with tags and initial items"""
    return service.create_curation(curation_data, current_user.id)


@router.get("/{curation_id}", response_model=CurationDetailResponse)
async def get_curation(
    curation_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    service: CurationService = Depends(get_curation_service),
    social: SocialFacade = Depends(get_social_facade)
):
    """Get curation with its ranked items and interaction counts"""
    curation = service.get_curation(curation_id, viewer_id=viewer_id)
    items = service.list_items(curation_id, viewer_id=viewer_id)
    counts = social.get_curation_counts(curation_id)
    return CurationDetailResponse(**curation.model_dump(), items=items, **counts.model_dump())


@router.put("/{curation_id}", response_model=CurationResponse)
async def update_curation(
    curation_id: str,
    curation_data: CurationUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Update curation (owner only)"""
    return service.update_curation(curation_id, curation_data, current_user.id)


@router.delete("/{curation_id}", status_code=204)
async def delete_curation(
    curation_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Delete curation (owner only)"""
    service.delete_curation(curation_id, current_user.id)
    return None


@router.put("/{curation_id}/tags", response_model=List[str])
async def set_tags(
    curation_id: str,
    tags: List[str] = Body(...),
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Replace the curation's tags (owner only)"""
    return service.set_tags(curation_id, tags, current_user.id)


@router.get("/{curation_id}/items", response_model=List[ItemResponse])
async def list_items(
    curation_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    service: CurationService = Depends(get_curation_service)
):
    return service.list_items(curation_id, viewer_id=viewer_id)


@router.post("/{curation_id}/items", response_model=ItemResponse, status_code=201)
async def add_item(
    curation_id: str,
    item_data: ItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Append an item at the end of the ranking (owner only)"""
    return service.add_item(curation_id, item_data, current_user.id)


@router.put("/{curation_id}/items/{item_id}", response_model=ItemResponse)
async def update_item(
    curation_id: str,
    item_id: str,
    item_data: ItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    return service.update_item(curation_id, item_id, item_data, current_user.id)


@router.delete("/{curation_id}/items/{item_id}", status_code=204)
async def delete_item(
    curation_id: str,
    item_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    service.delete_item(curation_id, item_id, current_user.id)
    return None


@router.post("/{curation_id}/items/{item_id}/move", response_model=List[ItemResponse])
async def move_item(
    curation_id: str,
    item_id: str,
    move: ItemMove,
    current_user: AuthUser = Depends(get_current_user),
    service: CurationService = Depends(get_curation_service)
):
    """Move an item one place up or down; returns the reordered list"""
    return service.move_item(curation_id, item_id, move.direction, current_user.id)
