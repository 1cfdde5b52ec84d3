from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum
from curated_discoveries.modules.profiles.schemas import ProfileSummary


class SharePlatform(str, Enum):
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    COPY = "copy"


class LikeState(BaseModel):
    curation_id: str
    liked: bool
    likes_count: int


class SaveState(BaseModel):
    curation_id: str
    saved: bool
    saves_count: int


class FollowState(BaseModel):
    user_id: str
    following: bool
    followers_count: int


class ShareRequest(BaseModel):
    platform: str


class ShareResult(BaseModel):
    platform: SharePlatform
    curation_url: str
    action: str  # open | copy
    target_url: str  # page to open, or text to place on the clipboard


class CommentCreate(BaseModel):
    content: str


class CommentUpdate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    id: str
    curation_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class CurationCounts(BaseModel):
    likes_count: int = 0
    comments_count: int = 0
    saves_count: int = 0


class InteractionStatus(BaseModel):
    """Whether the current user has liked/saved a curation"""
    liked: bool = False
    saved: bool = False
