"""
Video publishing and browsing. Every route requires an authenticated user;
mutations are restricted to the video's owner.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from vidtube.auth import get_current_user
from vidtube.core.responses import api_response
from vidtube.database import get_db
from vidtube.models.user import User
from vidtube.schemas.video import VideoResponse
from vidtube.services.temp_files import TempFileStore, get_temp_store
from vidtube.services.video_service import VideoService, get_video_service

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


@router.get("")
def list_videos(
    page: int = 1,
    limit: int = 10,
    query: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_type: str | None = Query(None, alias="sortType"),
    user_id: str | None = Query(None, alias="userId"),
    user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    """Paginated listing: published videos plus the caller's own. Optional owner filter via userId."""
    result = service.list_videos(
        db,
        user,
        page=page,
        limit=limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        owner_id=user_id,
    )
    return api_response(status.HTTP_200_OK, result, "Videos fetched successfully")


@router.post("")
async def publish_video(
    title: str | None = Form(None),
    description: str | None = Form(None),
    video_file: UploadFile | None = File(None, alias="videoFile"),
    thumbnail: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    temp_store: TempFileStore = Depends(get_temp_store),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    video_path, thumbnail_path = await temp_store.save_all(video_file, thumbnail)
    video = await service.publish(
        db,
        user,
        title=title,
        description=description,
        video_path=video_path,
        thumbnail_path=thumbnail_path,
    )
    return api_response(status.HTTP_201_CREATED, VideoResponse.model_validate(video), "Video uploaded successfully")


@router.get("/{video_id}")
def get_video(
    video_id: str,
    user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    """Fetch one video and record it in the caller's watch history."""
    video = service.get_video(db, user, video_id)
    return api_response(status.HTTP_200_OK, VideoResponse.model_validate(video), "Video fetched successfully")


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: str | None = Form(None),
    description: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    temp_store: TempFileStore = Depends(get_temp_store),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    thumbnail_path = await temp_store.save(thumbnail)
    video = await service.update(
        db,
        user,
        video_id,
        title=title,
        description=description,
        thumbnail_path=thumbnail_path,
    )
    return api_response(status.HTTP_200_OK, VideoResponse.model_validate(video), "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    await service.delete(db, user, video_id)
    return api_response(status.HTTP_200_OK, None, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}")
def toggle_publish_status(
    video_id: str,
    user: User = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    db: Session = Depends(get_db),
):
    video = service.toggle_publish_status(db, user, video_id)
    return api_response(status.HTTP_200_OK, VideoResponse.model_validate(video), "Publish status updated successfully")
