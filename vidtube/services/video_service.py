"""
Publishing workflow: publish, edit, delete, fetch (records watch history),
toggle visibility and the paginated listing.
"""
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from vidtube.config import get_settings
from vidtube.core.errors import ApiError, BadRequest, Forbidden, InternalError, NotFound
from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.repositories import user_repository, video_repository
from vidtube.schemas.video import VideoPage, VideoResponse
from vidtube.services.media_storage import MediaStorage, get_media_storage
from vidtube.services.temp_files import cleanup_files
from vidtube.utils.ids import parse_id

logger = logging.getLogger(__name__)

PUBLISH_REQUIRED_MESSAGE = "Title, video file, and thumbnail are required to publish a video."
UPLOAD_FAILED_MESSAGE = "Failed to upload video or thumbnail. Please try again."


def require_owner(video: Video | None, user_id: str) -> Video:
    """Only the owner may mutate a video."""
    if video is None:
        raise NotFound("Video not found")
    if video.owner_id != user_id:
        raise Forbidden("You are not authorized to modify this video")
    return video


class VideoService:
    def __init__(self, storage: MediaStorage):
        self.storage = storage

    def _load_owned(self, db: Session, video_id: str, user: User) -> Video:
        video_id = parse_id(video_id, "video ID")
        return require_owner(video_repository.get_by_id(db, video_id), user.id)

    async def publish(
        self,
        db: Session,
        user: User,
        *,
        title: str | None,
        description: str | None,
        video_path: str | None,
        thumbnail_path: str | None,
    ) -> Video:
        title = (title or "").strip()
        if not title or not video_path or not thumbnail_path:
            cleanup_files(video_path, thumbnail_path)
            raise BadRequest(PUBLISH_REQUIRED_MESSAGE)

        video_file = await self.storage.upload(video_path)
        if not video_file:
            cleanup_files(thumbnail_path)
            raise BadRequest(UPLOAD_FAILED_MESSAGE)

        thumbnail = await self.storage.upload(thumbnail_path)
        if not thumbnail:
            await self.storage.delete_many(video_file.url)
            raise BadRequest(UPLOAD_FAILED_MESSAGE)

        try:
            return video_repository.create_video(
                db,
                title=title,
                description=(description or "").strip(),
                video_file=video_file.url,
                thumbnail=thumbnail.url,
                duration=video_file.duration or 0,
                owner_id=user.id,
            )
        except ApiError as e:
            await self.storage.delete_many(video_file.url, thumbnail.url)
            raise InternalError("Something went wrong while uploading the video") from e

    async def update(
        self,
        db: Session,
        user: User,
        video_id: str,
        *,
        title: str | None,
        description: str | None,
        thumbnail_path: str | None,
    ) -> Video:
        title = (title or "").strip() or None
        description = (description or "").strip() or None
        if not title and not description and not thumbnail_path:
            raise BadRequest("Nothing to edit")

        try:
            video = self._load_owned(db, video_id, user)
        except ApiError:
            cleanup_files(thumbnail_path)
            raise

        new_thumbnail = None
        if thumbnail_path:
            new_thumbnail = await self.storage.upload(thumbnail_path)
            if not new_thumbnail:
                raise InternalError("Error uploading the new thumbnail")

        old_thumbnail = video.thumbnail
        if title:
            video.title = title
        if description:
            video.description = description
        if new_thumbnail:
            video.thumbnail = new_thumbnail.url
        try:
            video = video_repository.save(db, video)
        except ApiError:
            if new_thumbnail:
                await self.storage.delete_many(new_thumbnail.url)
            raise

        if new_thumbnail and old_thumbnail and old_thumbnail != new_thumbnail.url:
            await self.storage.delete(old_thumbnail)
        return video

    async def delete(self, db: Session, user: User, video_id: str) -> None:
        video = self._load_owned(db, video_id, user)
        logger.info("Deleting video %s for user %s", video.id, user.id)
        # remote objects first; a failed row delete leaves a record pointing at deleted assets
        await self.storage.delete(video.thumbnail)
        await self.storage.delete(video.video_file)
        video_repository.delete_video(db, video)

    def get_video(self, db: Session, user: User, video_id: str) -> Video:
        video = video_repository.get_by_id(db, parse_id(video_id, "video ID"))
        if not video:
            raise NotFound("Video not found")
        user_repository.add_to_watch_history(db, user.id, video.id)
        return video

    def toggle_publish_status(self, db: Session, user: User, video_id: str) -> Video:
        video = self._load_owned(db, video_id, user)
        video.is_published = not video.is_published
        return video_repository.save(db, video)

    def list_videos(
        self,
        db: Session,
        user: User,
        *,
        page: int = 1,
        limit: int = 10,
        query: str | None = None,
        sort_by: str | None = None,
        sort_type: str | None = None,
        owner_id: str | None = None,
    ) -> VideoPage:
        if page < 1 or limit < 1:
            raise BadRequest("page and limit must be positive")
        limit = min(limit, get_settings().max_page_size)
        sort_by = sort_by or "createdAt"
        if sort_by not in video_repository.SORT_COLUMNS:
            raise BadRequest(f"Cannot sort by {sort_by}")
        sort_type = (sort_type or "desc").lower()
        if sort_type not in ("asc", "desc"):
            raise BadRequest("sortType must be asc or desc")
        if owner_id:
            owner_id = parse_id(owner_id, "user ID")

        items, total = video_repository.list_videos(
            db,
            viewer_id=user.id,
            page=page,
            limit=limit,
            query=query,
            sort_by=sort_by,
            descending=sort_type == "desc",
            owner_id=owner_id,
        )
        return VideoPage(
            videos=[VideoResponse.model_validate(v) for v in items],
            total=total,
            page=page,
            limit=limit,
            total_pages=(total + limit - 1) // limit,
        )


def get_video_service(storage: MediaStorage = Depends(get_media_storage)) -> VideoService:
    return VideoService(storage)
