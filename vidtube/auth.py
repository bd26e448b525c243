from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from vidtube.core.errors import Unauthorized
from vidtube.database import get_db
from vidtube.models.user import User
from vidtube.services.token_service import TokenService

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the accessToken cookie, falling back to the Bearer header."""
    candidates = [request.cookies.get(ACCESS_TOKEN_COOKIE), credentials.credentials if credentials else None]
    candidates = [token for token in candidates if token]
    if not candidates:
        raise Unauthorized("Unauthorized request")

    tokens = TokenService()
    for token in candidates:
        try:
            user_id = tokens.verify_access_token(token)
            break
        except Unauthorized:
            continue
    else:
        raise Unauthorized("Invalid or expired access token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthorized("Invalid access token")
    return user
