"""User endpoints: register, login, refresh-token, logout, current-user."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from app.api.v1.auth import get_current_user, get_user_store
from app.core.config import Settings, get_settings
from app.core.errors import BadRequestError
from app.schemas.auth import (
    ApiResponse,
    CurrentUser,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenPair,
)
from app.services import sessions
from app.services.authenticator import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.services.media import is_image
from app.services.registration import (
    ImageUpload,
    register_user,
    validate_registration_fields,
)
from app.services.user_store import UserStore

router = APIRouter()


def _set_token_cookies(response: Response, pair: TokenPair, settings: Settings) -> None:
    """Set both tokens as HttpOnly cookies that live as long as the tokens do."""
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        pair.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        pair.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
    )


def _clear_token_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.COOKIE_SECURE)


async def _read_image(
    file: UploadFile | None, field: str, settings: Settings
) -> ImageUpload | None:
    """
    Read an optional uploaded image; reject non-images and oversized files.

    At most MAX_IMAGE_BYTES + 1 bytes are read, enough to tell an oversized file apart.
    """
    if file is None or not file.filename:
        return None
    if not is_image(file.filename, file.content_type):
        raise BadRequestError(f"{field} must be an image file.")
    content = await file.read(settings.MAX_IMAGE_BYTES + 1)
    if len(content) > settings.MAX_IMAGE_BYTES:
        raise BadRequestError(f"{field} must not exceed {settings.MAX_IMAGE_BYTES} bytes.")
    return ImageUpload(filename=file.filename, content=content)


@router.post(
    "/register",
    response_model=ApiResponse[CurrentUser],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    full_name: Annotated[str, Form()] = "",
    username: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File()] = None,
) -> ApiResponse[CurrentUser]:
    """
    Register a user from a multipart form.

    Fields: full_name, username, email, password, avatar (image, required),
    cover_image (image, optional). Images are uploaded to the media host and
    the user stores their URLs.
    """
    validate_registration_fields(full_name, username, email, password)
    user = await register_user(
        store,
        settings,
        full_name=full_name,
        username=username,
        email=email,
        password=password,
        avatar=await _read_image(avatar, "avatar", settings),
        cover_image=await _read_image(cover_image, "cover_image", settings),
    )
    return ApiResponse.of(status.HTTP_201_CREATED, user, "Successfully Registered the user")


@router.post("/login", response_model=ApiResponse[LoginData])
def login(
    body: LoginRequest,
    response: Response,
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[LoginData]:
    """
    Authenticate with username or email plus password.

    Returns the user and both tokens, and sets them as HttpOnly cookies.
    Logging in again invalidates the refresh token of any previous login.
    """
    data = sessions.login(
        store, settings, body.password, username=body.username, email=body.email
    )
    _set_token_cookies(response, data, settings)
    return ApiResponse.of(status.HTTP_200_OK, data, "User logged in successfully")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
def refresh_token(
    request: Request,
    response: Response,
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: RefreshRequest | None = None,
) -> ApiResponse[TokenPair]:
    """
    Exchange the refresh token (refreshToken cookie or JSON body) for a new pair.

    The presented token is invalidated; presenting it again returns 401.
    """
    incoming = request.cookies.get(REFRESH_TOKEN_COOKIE) or (body.refresh_token if body else None)
    pair = sessions.refresh(store, settings, incoming)
    _set_token_cookies(response, pair, settings)
    return ApiResponse.of(status.HTTP_200_OK, pair, "Access token refreshed")


@router.post("/logout", response_model=ApiResponse[dict])
def logout(
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[dict]:
    """Revoke the stored refresh token and clear both cookies."""
    sessions.logout(store, current_user.id)
    _clear_token_cookies(response, settings)
    return ApiResponse.of(status.HTTP_200_OK, {}, "User logged out")


@router.get("/current-user", response_model=ApiResponse[CurrentUser])
def current_user(
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[CurrentUser]:
    """Return the user the access token resolves to."""
    return ApiResponse.of(status.HTTP_200_OK, user, "Current user fetched successfully")
