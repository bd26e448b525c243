from datetime import datetime
from pydantic import BaseModel, Field


class VideoBase(BaseModel):
    id: str
    title: str
    description: str
    video_file: str = Field(serialization_alias="videoFile")
    thumbnail: str
    duration: float
    is_published: bool = Field(serialization_alias="isPublished")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        from_attributes = True


class VideoResponse(VideoBase):
    owner_id: str = Field(serialization_alias="owner")


class VideoOwner(BaseModel):
    """Minimal owner projection embedded in watch history entries."""
    username: str
    full_name: str = Field(serialization_alias="fullName")
    avatar: str

    class Config:
        from_attributes = True


class WatchHistoryItem(VideoBase):
    owner: VideoOwner


class VideoPage(BaseModel):
    videos: list[VideoResponse]
    total: int
    page: int
    limit: int
    total_pages: int = Field(serialization_alias="totalPages")
