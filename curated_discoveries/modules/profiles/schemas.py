from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileSummary(BaseModel):
    """Compact profile used in follower/following lists and comment authors"""
    id: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserStats(BaseModel):
    followers_count: int = 0
    following_count: int = 0
    curations_count: int = 0
    likes_count: int = 0
