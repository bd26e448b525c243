from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from vidtube.auth import get_current_user
from vidtube.core.responses import api_response
from vidtube.database import get_db
from vidtube.models.user import User
from vidtube.services.subscription_service import toggle_subscription

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


@router.post("/c/{channel_id}")
def toggle_channel_subscription(
    channel_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscribed = toggle_subscription(db, user, channel_id)
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return api_response(status.HTTP_200_OK, {"subscribed": subscribed}, message)
