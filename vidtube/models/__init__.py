from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.models.watch_history import WatchHistory
from vidtube.models.subscription import Subscription

__all__ = ["User", "Video", "WatchHistory", "Subscription"]
