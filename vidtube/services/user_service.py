"""
Session workflow: registration, login/logout, token refresh, password and
profile changes, channel profile and watch history reads.

Temp-file rule: every branch that fails before a file reaches remote storage
removes the local temp files it was handed. Once an upload has succeeded,
later failures delete the new remote object again.
"""
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from vidtube.core.errors import ApiError, BadRequest, Conflict, InternalError, NotFound, Unauthorized
from vidtube.models.user import User
from vidtube.repositories import user_repository
from vidtube.schemas.user import ChannelProfile
from vidtube.schemas.video import WatchHistoryItem
from vidtube.services.media_storage import MediaStorage, get_media_storage
from vidtube.services.temp_files import cleanup_files
from vidtube.services.token_service import TokenService

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class UserService:
    def __init__(self, storage: MediaStorage, tokens: TokenService | None = None):
        self.storage = storage
        self.tokens = tokens or TokenService()

    async def register(
        self,
        db: Session,
        *,
        username: str | None,
        email: str | None,
        password: str | None,
        full_name: str | None,
        avatar_path: str | None,
        cover_image_path: str | None = None,
    ) -> User:
        if any(_blank(v) for v in (username, email, password, full_name)):
            cleanup_files(avatar_path, cover_image_path)
            raise BadRequest("All fields are required")

        if not avatar_path:
            cleanup_files(cover_image_path)
            raise BadRequest("Avatar file is required")

        if user_repository.find_by_username_or_email(db, username, email):
            cleanup_files(avatar_path, cover_image_path)
            raise Conflict("User with email or username already exists")

        avatar = await self.storage.upload(avatar_path)
        if not avatar:
            cleanup_files(cover_image_path)
            raise BadRequest("Avatar file is required")

        cover_image = await self.storage.upload(cover_image_path)
        if cover_image_path and not cover_image:
            logger.warning("Cover image upload failed for new user %s; continuing without it", username)

        try:
            user = user_repository.create_user(
                db,
                username=username.strip(),
                email=email.strip(),
                full_name=full_name.strip(),
                password=password,
                avatar=avatar.url,
                cover_image=cover_image.url if cover_image else "",
            )
        except ApiError:
            await self.storage.delete_many(avatar.url, cover_image.url if cover_image else None)
            raise

        created = user_repository.get_by_id(db, user.id)
        if not created:
            raise InternalError("Something went wrong while registering the user")
        return created

    def login(
        self,
        db: Session,
        *,
        email: str | None,
        username: str | None,
        password: str | None,
    ) -> tuple[User, str, str]:
        if _blank(username) and _blank(email):
            raise BadRequest("username or email is required")
        if not password:
            raise BadRequest("Password is required")

        user = user_repository.find_by_username_or_email(db, username, email)
        if not user:
            raise NotFound("User does not exist")
        if not user.is_password_correct(password):
            raise Unauthorized("Invalid user credentials")

        access_token, refresh_token = self.tokens.issue_token_pair(db, user.id)
        db.refresh(user)
        return user, access_token, refresh_token

    def logout(self, db: Session, user: User) -> None:
        self.tokens.revoke(db, user.id)

    def refresh(self, db: Session, incoming_token: str | None) -> tuple[str, str]:
        if not incoming_token:
            raise Unauthorized("Unauthorized request")
        return self.tokens.rotate(db, incoming_token)

    def change_password(self, db: Session, user: User, old_password: str | None, new_password: str | None) -> None:
        if not old_password or not new_password:
            raise BadRequest("All fields are required")
        if not user.is_password_correct(old_password):
            raise BadRequest("Invalid old password")
        user.password = new_password
        user_repository.save(db, user)

    def update_account(self, db: Session, user: User, full_name: str | None, email: str | None) -> User:
        full_name = None if _blank(full_name) else full_name.strip()
        email = None if _blank(email) else email.strip()
        if not full_name and not email:
            raise BadRequest("Incomplete update. Please provide at least your fullname or email")
        if email and user_repository.email_taken_by_other(db, email, user.id):
            raise Conflict("Email is already in use")
        if full_name:
            user.full_name = full_name
        if email:
            user.email = email
        return user_repository.save(db, user, conflict_message="Email is already in use")

    async def _replace_image(self, db: Session, user: User, field: str, local_path: str | None, label: str) -> User:
        if not local_path:
            raise BadRequest(f"{label} file is missing")
        uploaded = await self.storage.upload(local_path)
        if not uploaded:
            raise BadRequest(f"Error while uploading {label.lower()}")

        old_url = getattr(user, field)
        setattr(user, field, uploaded.url)
        try:
            user_repository.save(db, user)
        except ApiError:
            await self.storage.delete_many(uploaded.url)
            raise

        # old asset goes only after the new one is stored and referenced
        if old_url and old_url != uploaded.url:
            await self.storage.delete(old_url)
        return user

    async def update_avatar(self, db: Session, user: User, local_path: str | None) -> User:
        return await self._replace_image(db, user, "avatar", local_path, "Avatar")

    async def update_cover_image(self, db: Session, user: User, local_path: str | None) -> User:
        return await self._replace_image(db, user, "cover_image", local_path, "Cover image")

    def get_channel_profile(self, db: Session, username: str | None, viewer: User) -> ChannelProfile:
        if _blank(username):
            raise BadRequest("username is missing")
        profile = user_repository.get_channel_profile(db, username, viewer.id)
        if not profile:
            raise NotFound("Channel does not exist")
        return profile

    def get_watch_history(self, db: Session, user: User) -> list[WatchHistoryItem]:
        return user_repository.get_watch_history(db, user.id)


def get_user_service(storage: MediaStorage = Depends(get_media_storage)) -> UserService:
    return UserService(storage)
