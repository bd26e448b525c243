"""
Account persistence and the join-style read models built on it
(channel profile statistics, watch history with owner projection).
"""
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vidtube.core.errors import InternalError
from vidtube.models.subscription import Subscription
from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.models.watch_history import WatchHistory
from vidtube.repositories.common import commit
from vidtube.schemas.user import ChannelProfile
from vidtube.schemas.video import VideoBase, VideoOwner, WatchHistoryItem


def get_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def find_by_username_or_email(db: Session, username: str | None, email: str | None) -> User | None:
    conditions = []
    if username:
        conditions.append(User.username == username.strip().lower())
    if email:
        conditions.append(User.email == email.strip())
    if not conditions:
        return None
    return db.query(User).filter(or_(*conditions)).first()


def email_taken_by_other(db: Session, email: str, user_id: str) -> bool:
    return (
        db.query(User.id).filter(User.email == email, User.id != user_id).first()
        is not None
    )


def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    full_name: str,
    password: str,
    avatar: str,
    cover_image: str = "",
) -> User:
    user = User(
        username=username.lower(),
        email=email,
        full_name=full_name,
        password=password,
        avatar=avatar,
        cover_image=cover_image,
    )
    db.add(user)
    commit(db, conflict_message="User with email or username already exists")
    db.refresh(user)
    return user


def save(db: Session, user: User, *, conflict_message: str | None = None) -> User:
    db.add(user)
    commit(db, conflict_message=conflict_message)
    db.refresh(user)
    return user


def set_refresh_token(db: Session, user_id: str, token: str | None) -> bool:
    """
    Overwrite the single refresh-token slot with a column-level UPDATE, so no
    model validators run for unrelated fields. Returns False if no such user.
    """
    try:
        updated = (
            db.query(User)
            .filter(User.id == user_id)
            .update({User.refresh_token: token}, synchronize_session="fetch")
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise InternalError("Something went wrong while storing the refresh token") from e
    commit(db)
    return updated > 0


def get_channel_profile(db: Session, username: str, viewer_id: str | None) -> ChannelProfile | None:
    """Profile of the channel owned by `username` plus subscription stats relative to `viewer_id`."""
    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    viewer_subscribed = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id, Subscription.subscriber_id == viewer_id)
        .correlate(User)
        .scalar_subquery()
    )
    row = (
        db.query(
            User,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("subscribed_to_count"),
            viewer_subscribed.label("viewer_subscribed"),
        )
        .filter(User.username == username.strip().lower())
        .first()
    )
    if row is None:
        return None
    user, subscribers, subscribed_to, viewer_count = row
    return ChannelProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        avatar=user.avatar,
        cover_image=user.cover_image or "",
        subscribers_count=subscribers or 0,
        channels_subscribed_to_count=subscribed_to or 0,
        is_subscribed=bool(viewer_count),
        is_owner=viewer_id is not None and user.id == viewer_id,
    )


def get_watch_history(db: Session, user_id: str) -> list[WatchHistoryItem]:
    """Watched videos in append order, each with its owner's minimal projection."""
    rows = (
        db.query(Video, User)
        .join(WatchHistory, WatchHistory.video_id == Video.id)
        .join(User, Video.owner_id == User.id)
        .filter(WatchHistory.user_id == user_id)
        .order_by(WatchHistory.id)
        .all()
    )
    return [
        WatchHistoryItem(
            **VideoBase.model_validate(video).model_dump(),
            owner=VideoOwner.model_validate(owner),
        )
        for video, owner in rows
    ]


def add_to_watch_history(db: Session, user_id: str, video_id: str) -> bool:
    """Append `video_id` unless already present. Returns True if a row was added."""
    exists = (
        db.query(WatchHistory.id)
        .filter(WatchHistory.user_id == user_id, WatchHistory.video_id == video_id)
        .first()
    )
    if exists:
        return False
    db.add(WatchHistory(user_id=user_id, video_id=video_id))
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request appended the same video first
        db.rollback()
        return False
    except SQLAlchemyError as e:
        db.rollback()
        raise InternalError() from e
    return True


def get_subscription(db: Session, subscriber_id: str, channel_id: str) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter(Subscription.subscriber_id == subscriber_id, Subscription.channel_id == channel_id)
        .first()
    )


def add_subscription(db: Session, subscriber_id: str, channel_id: str) -> Subscription:
    sub = Subscription(subscriber_id=subscriber_id, channel_id=channel_id)
    db.add(sub)
    commit(db, conflict_message="Already subscribed to this channel")
    db.refresh(sub)
    return sub


def remove_subscription(db: Session, subscription: Subscription) -> None:
    db.delete(subscription)
    commit(db)
