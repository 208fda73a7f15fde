from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class InstagramPostRequest(BaseModel):
    url: Optional[str] = Field(default=None, description="Public Instagram post, reel, tv or share URL")


class MediaDimensions(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None


class MediaDetail(BaseModel):
    type: str
    url: str
    dimensions: MediaDimensions = Field(default_factory=MediaDimensions)
    thumbnail: Optional[str] = None
    video_view_count: Optional[int] = None


class Comment(BaseModel):
    id: str
    username: str
    text: str
    created_at: Optional[str] = None


class PostInfo(BaseModel):
    owner_username: str = ""
    owner_fullname: str = ""
    is_verified: bool = False
    is_private: bool = False
    likes: int = 0
    is_ad: bool = False
    caption: str = ""
    comments_count: int = 0
    taken_at: Optional[str] = None


class PostResponse(BaseModel):
    results_number: int
    url_list: List[str] = Field(default_factory=list)
    post_info: PostInfo
    media_details: List[MediaDetail] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)


class MediaUrlResponse(BaseModel):
    url: str


class CacheClearedResponse(BaseModel):
    message: str


class CacheStatsResponse(BaseModel):
    hits: int
    misses: int
    keys: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
