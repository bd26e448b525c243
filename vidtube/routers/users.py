from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from vidtube.auth import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, get_current_user
from vidtube.config import get_settings
from vidtube.core.responses import api_response
from vidtube.database import get_db
from vidtube.models.user import User
from vidtube.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    TokenPair,
    UpdateAccountRequest,
    UserResponse,
)
from vidtube.services.temp_files import TempFileStore, get_temp_store
from vidtube.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _set_token_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> None:
    secure = get_settings().cookie_secure
    response.set_cookie(ACCESS_TOKEN_COOKIE, access_token, httponly=True, secure=secure)
    response.set_cookie(REFRESH_TOKEN_COOKIE, refresh_token, httponly=True, secure=secure)


def _clear_token_cookies(response: JSONResponse) -> None:
    secure = get_settings().cookie_secure
    response.delete_cookie(ACCESS_TOKEN_COOKIE, httponly=True, secure=secure)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, httponly=True, secure=secure)


@router.post("/register")
async def register(
    username: str | None = Form(None),
    email: str | None = Form(None),
    password: str | None = Form(None),
    full_name: str | None = Form(None, alias="fullName"),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    temp_store: TempFileStore = Depends(get_temp_store),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    """Create an account. Multipart: username, email, password, fullName, avatar (required), coverImage."""
    avatar_path, cover_path = await temp_store.save_all(avatar, cover_image)
    user = await service.register(
        db,
        username=username,
        email=email,
        password=password,
        full_name=full_name,
        avatar_path=avatar_path,
        cover_image_path=cover_path,
    )
    return api_response(status.HTTP_201_CREATED, UserResponse.model_validate(user), "User registered successfully")


@router.post("/login")
def login(
    body: LoginRequest,
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    """Login with username or email + password. Tokens are returned and set as HttpOnly cookies."""
    user, access_token, refresh_token = service.login(
        db, email=body.email, username=body.username, password=body.password
    )
    data = LoginResponse(
        user=UserResponse.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
    )
    response = api_response(status.HTTP_200_OK, data, "User logged in successfully")
    _set_token_cookies(response, access_token, refresh_token)
    return response


@router.post("/logout")
def logout(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    service.logout(db, user)
    response = api_response(status.HTTP_200_OK, {}, "User logged out")
    _clear_token_cookies(response)
    return response


@router.post("/refresh-token")
def refresh_access_token(
    request: Request,
    body: RefreshTokenRequest | None = None,
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    """Rotate the token pair. The refresh token comes from the cookie, else from the body."""
    incoming = request.cookies.get(REFRESH_TOKEN_COOKIE) or (body.refresh_token if body else None)
    access_token, refresh_token = service.refresh(db, incoming)
    response = api_response(
        status.HTTP_200_OK,
        TokenPair(access_token=access_token, refresh_token=refresh_token),
        "Access token refreshed",
    )
    _set_token_cookies(response, access_token, refresh_token)
    return response


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    service.change_password(db, user, body.old_password, body.new_password)
    return api_response(status.HTTP_200_OK, {}, "Password changed successfully")


@router.get("/current-user")
def get_me(user: User = Depends(get_current_user)):
    return api_response(status.HTTP_200_OK, UserResponse.model_validate(user), "Current user fetched successfully")


@router.patch("/update-account")
def update_account(
    body: UpdateAccountRequest,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    user = service.update_account(db, user, body.full_name, body.email)
    return api_response(status.HTTP_200_OK, UserResponse.model_validate(user), "Account details updated successfully")


@router.patch("/avatar")
async def update_avatar(
    avatar: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    temp_store: TempFileStore = Depends(get_temp_store),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    local_path = await temp_store.save(avatar)
    user = await service.update_avatar(db, user, local_path)
    return api_response(status.HTTP_200_OK, UserResponse.model_validate(user), "Avatar updated successfully")


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    user: User = Depends(get_current_user),
    temp_store: TempFileStore = Depends(get_temp_store),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    local_path = await temp_store.save(cover_image)
    user = await service.update_cover_image(db, user, local_path)
    return api_response(status.HTTP_200_OK, UserResponse.model_validate(user), "Cover image updated successfully")


@router.get("/c/{username}")
def get_channel_profile(
    username: str,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    """Channel profile with subscriber counts relative to the caller."""
    profile = service.get_channel_profile(db, username, user)
    return api_response(status.HTTP_200_OK, profile, "User channel fetched successfully")


@router.get("/history")
def get_watch_history(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    db: Session = Depends(get_db),
):
    history = service.get_watch_history(db, user)
    return api_response(status.HTTP_200_OK, history, "Watch history fetched successfully")
