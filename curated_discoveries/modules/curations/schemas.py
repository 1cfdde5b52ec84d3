from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from enum import Enum


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    FOLLOWERS_ONLY = "followers_only"


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class ItemCreate(BaseModel):
    title: str
    description: Optional[str] = None
    external_url: Optional[str] = None
    image_url: Optional[str] = None


class ItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    external_url: Optional[str] = None
    image_url: Optional[str] = None


class ItemMove(BaseModel):
    direction: MoveDirection


class ItemResponse(BaseModel):
    id: str
    curation_id: str
    title: str
    description: Optional[str] = None
    external_url: Optional[str] = None
    image_url: Optional[str] = None
    position: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CurationCreate(BaseModel):
    title: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    tags: List[str] = []
    items: List[ItemCreate] = []


class CurationUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    visibility: Optional[Visibility] = None
    tags: Optional[List[str]] = None


class CurationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tags: List[str] = []

    class Config:
        from_attributes = True


class CurationDetailResponse(CurationResponse):
    items: List[ItemResponse] = []
    likes_count: int = 0
    comments_count: int = 0
    saves_count: int = 0
