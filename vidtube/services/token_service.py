"""
Access/refresh token lifecycle.

Each account holds exactly one refresh token. Every successful refresh rotates
both tokens and overwrites the stored value, so a previously issued refresh
token can never be replayed.
"""
import logging

from sqlalchemy.orm import Session

from vidtube.core.errors import InternalError, Unauthorized
from vidtube.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from vidtube.models.user import User
from vidtube.repositories import user_repository

logger = logging.getLogger(__name__)


class TokenService:
    def issue_token_pair(self, db: Session, user_id: str) -> tuple[str, str]:
        """Mint (access_token, refresh_token) and persist the refresh token on the account."""
        user = user_repository.get_by_id(db, user_id)
        if not user:
            raise InternalError("Something went wrong while generating refresh and access token")
        access_token = create_access_token(user.id, user.email, user.username, user.full_name)
        refresh_token = create_refresh_token(user.id)
        if not user_repository.set_refresh_token(db, user.id, refresh_token):
            raise InternalError("Something went wrong while generating refresh and access token")
        return access_token, refresh_token

    def verify_access_token(self, token: str | None) -> str:
        """Return the account id carried by a valid access token."""
        payload = decode_token(token, ACCESS_TOKEN_TYPE) if token else None
        if not payload:
            raise Unauthorized("Invalid or expired access token")
        return payload["sub"]

    def verify_refresh_token(self, db: Session, token: str | None) -> User:
        """
        Return the account owning `token`. The token must be validly signed,
        unexpired, and equal to the value currently stored on the account.
        """
        payload = decode_token(token, REFRESH_TOKEN_TYPE) if token else None
        if not payload:
            raise Unauthorized("Invalid refresh token")
        user = user_repository.get_by_id(db, payload["sub"])
        if not user:
            raise Unauthorized("Invalid refresh token")
        if user.refresh_token != token:
            # superseded by a rotation or a newer login
            logger.warning("Stale refresh token presented for user %s", user.id)
            raise Unauthorized("Refresh token is expired or used")
        return user

    def rotate(self, db: Session, token: str | None) -> tuple[str, str]:
        user = self.verify_refresh_token(db, token)
        return self.issue_token_pair(db, user.id)

    def revoke(self, db: Session, user_id: str) -> None:
        user_repository.set_refresh_token(db, user_id, None)
