from datetime import datetime
from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """Outward view of an account. Password hash and refresh token are never part of it."""
    id: str
    username: str
    email: str
    full_name: str = Field(serialization_alias="fullName")
    avatar: str
    cover_image: str = Field("", serialization_alias="coverImage")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        from_attributes = True


class ChannelProfile(BaseModel):
    id: str
    username: str
    email: str
    full_name: str = Field(serialization_alias="fullName")
    avatar: str
    cover_image: str = Field("", serialization_alias="coverImage")
    subscribers_count: int = Field(0, serialization_alias="subscribersCount")
    channels_subscribed_to_count: int = Field(0, serialization_alias="channelsSubscribedToCount")
    is_subscribed: bool = Field(False, serialization_alias="isSubscribed")
    is_owner: bool = Field(False, serialization_alias="isOwner")


class LoginRequest(BaseModel):
    email: str | None = None
    username: str | None = None
    password: str | None = None


class RefreshTokenRequest(BaseModel):
    refresh_token: str | None = Field(None, alias="refreshToken")


class ChangePasswordRequest(BaseModel):
    old_password: str | None = Field(None, alias="oldPassword")
    new_password: str | None = Field(None, alias="newPassword")


class UpdateAccountRequest(BaseModel):
    full_name: str | None = Field(None, alias="fullName")
    email: str | None = None


class TokenPair(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class LoginResponse(TokenPair):
    user: UserResponse
