from sqlalchemy.orm import Session

from vidtube.core.errors import BadRequest, NotFound
from vidtube.models.user import User
from vidtube.repositories import user_repository
from vidtube.utils.ids import parse_id


def toggle_subscription(db: Session, subscriber: User, channel_id: str) -> bool:
    """Subscribe to or unsubscribe from a channel. Returns the new subscribed state."""
    channel_id = parse_id(channel_id, "channel ID")
    if channel_id == subscriber.id:
        raise BadRequest("You cannot subscribe to your own channel")
    if not user_repository.get_by_id(db, channel_id):
        raise NotFound("Channel does not exist")
    existing = user_repository.get_subscription(db, subscriber.id, channel_id)
    if existing:
        user_repository.remove_subscription(db, existing)
        return False
    user_repository.add_subscription(db, subscriber.id, channel_id)
    return True
