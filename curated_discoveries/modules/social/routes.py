from fastapi import APIRouter, Depends, Query
from curated_discoveries.modules.social.schemas import (
    LikeState, SaveState, FollowState, ShareRequest, ShareResult,
    CommentCreate, CommentUpdate, CommentResponse, InteractionStatus
)
from curated_discoveries.modules.social.service import SocialFacade
from curated_discoveries.core.dependencies import get_social_facade
from typing import Dict, List

router = APIRouter(tags=["social"])


@router.get("/curations/{curation_id}/interactions", response_model=InteractionStatus)
async def get_interactions(curation_id: str, social: SocialFacade = Depends(get_social_facade)):
    """Whether the caller has liked/saved the curation (false when anonymous)"""
    return InteractionStatus(liked=social.is_liked(curation_id), saved=social.is_saved(curation_id))


@router.post("/curations/{curation_id}/like", response_model=LikeState)
async def like_curation(curation_id: str, social: SocialFacade = Depends(get_social_facade)):
    """Like a curation; liking twice is a no-op"""
    return social.like_curation(curation_id)


@router.delete("/curations/{curation_id}/like", response_model=LikeState)
async def unlike_curation(curation_id: str, social: SocialFacade = Depends(get_social_facade)):
    return social.unlike_curation(curation_id)


@router.post("/curations/{curation_id}/save", response_model=SaveState)
async def save_curation(curation_id: str, social: SocialFacade = Depends(get_social_facade)):
    return social.save_curation(curation_id)


@router.delete("/curations/{curation_id}/save", response_model=SaveState)
async def unsave_curation(curation_id: str, social: SocialFacade = Depends(get_social_facade)):
    return social.unsave_curation(curation_id)


@router.get("/me/saved", response_model=List[str])
async def list_saved(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    social: SocialFacade = Depends(get_social_facade)
):
    """IDs of curations the caller saved, most recent first"""
    return social.list_saved_curation_ids(limit=limit, offset=offset)


@router.post("/curations/{curation_id}/share", response_model=ShareResult, status_code=201)
async def share_curation(
    curation_id: str,
    share_data: ShareRequest,
    social: SocialFacade = Depends(get_social_facade)
):
    """Record a share; the response tells the client which URL to open or copy"""
    return social.share_curation(curation_id, share_data.platform)


@router.get("/curations/{curation_id}/comments", response_model=List[CommentResponse])
async def get_comments(
    curation_id: str,
    limit: int = Query(100, ge=1, le=100),
    offset: int = Query(0, ge=0),
    social: SocialFacade = Depends(get_social_facade)
):
    return social.get_comments(curation_id, limit=limit, offset=offset)


@router.post("/curations/{curation_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    curation_id: str,
    comment_data: CommentCreate,
    social: SocialFacade = Depends(get_social_facade)
):
    return social.add_comment(curation_id, comment_data.content)


@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    comment_data: CommentUpdate,
    social: SocialFacade = Depends(get_social_facade)
):
    """Edit a comment (author only)"""
    return social.update_comment(comment_id, comment_data.content)


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(comment_id: str, social: SocialFacade = Depends(get_social_facade)):
    """Delete a comment (author only)"""
    social.delete_comment(comment_id)
    return None


@router.get("/users/{user_id}/follow", response_model=Dict[str, bool])
async def get_follow_status(user_id: str, social: SocialFacade = Depends(get_social_facade)):
    return {"following": social.is_following(user_id)}


@router.post("/users/{user_id}/follow", response_model=FollowState)
async def follow_user(user_id: str, social: SocialFacade = Depends(get_social_facade)):
    return social.follow_user(user_id)


@router.delete("/users/{user_id}/follow", response_model=FollowState)
async def unfollow_user(user_id: str, social: SocialFacade = Depends(get_social_facade)):
    return social.unfollow_user(user_id)
