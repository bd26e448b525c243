"""Video persistence and the paginated listing query."""
from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Session

from vidtube.models.video import Video
from vidtube.models.watch_history import WatchHistory
from vidtube.repositories.common import commit

SORT_COLUMNS = {
    "createdAt": Video.created_at,
    "created_at": Video.created_at,
    "updatedAt": Video.updated_at,
    "updated_at": Video.updated_at,
    "title": Video.title,
    "duration": Video.duration,
}


def escape_like(text: str) -> str:
    """Make user text match literally inside a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_by_id(db: Session, video_id: str) -> Video | None:
    return db.query(Video).filter(Video.id == video_id).first()


def create_video(
    db: Session,
    *,
    title: str,
    description: str,
    video_file: str,
    thumbnail: str,
    duration: float,
    owner_id: str,
) -> Video:
    video = Video(
        title=title,
        description=description,
        video_file=video_file,
        thumbnail=thumbnail,
        duration=duration,
        owner_id=owner_id,
        is_published=True,
    )
    db.add(video)
    commit(db)
    db.refresh(video)
    return video


def save(db: Session, video: Video) -> Video:
    db.add(video)
    commit(db)
    db.refresh(video)
    return video


def delete_video(db: Session, video: Video) -> None:
    # SQLite does not enforce ON DELETE CASCADE unless asked to
    db.query(WatchHistory).filter(WatchHistory.video_id == video.id).delete(synchronize_session=False)
    db.delete(video)
    commit(db)


def list_videos(
    db: Session,
    *,
    viewer_id: str,
    page: int,
    limit: int,
    query: str | None = None,
    sort_by: str = "createdAt",
    descending: bool = True,
    owner_id: str | None = None,
) -> tuple[list[Video], int]:
    """
    One page of videos visible to `viewer_id`: published ones plus the viewer's own.
    Returns (items, total matching).
    """
    q = db.query(Video).filter(or_(Video.is_published.is_(True), Video.owner_id == viewer_id))
    if owner_id:
        q = q.filter(Video.owner_id == owner_id)
    if query:
        pattern = f"%{escape_like(query.strip())}%"
        q = q.filter(
            or_(
                Video.title.ilike(pattern, escape="\\"),
                Video.description.ilike(pattern, escape="\\"),
            )
        )
    total = q.count()
    column = SORT_COLUMNS[sort_by]
    direction = desc if descending else asc
    items = (
        q.order_by(direction(column), direction(Video.id))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total
