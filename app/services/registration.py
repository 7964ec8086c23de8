"""User registration: validate fields, upload profile images, create the account."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from fastapi import status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import ApiError, BadRequestError, ConflictError, InternalError
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
)
from app.schemas.auth import CurrentUser
from app.schemas.upload import MediaUploadResult
from app.services.media import MediaNotConfiguredError, MediaUploadError, upload_image

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

Uploader = Callable[[bytes | None, str, "Settings"], Awaitable[MediaUploadResult | None]]


@dataclass(frozen=True)
class ImageUpload:
    """An image received from the client, already read into memory."""

    filename: str
    content: bytes


async def _upload(
    image: ImageUpload | None, settings: Settings, uploader: Uploader
) -> MediaUploadResult | None:
    if image is None:
        return None
    try:
        return await uploader(image.content, image.filename, settings)
    except MediaNotConfiguredError as e:
        raise ApiError(e.message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE) from e


def validate_registration_fields(
    full_name: str, username: str, email: str, password: str
) -> None:
    """Reject missing fields and out-of-range username or password lengths with 400."""
    if any(not (field or "").strip() for field in (full_name, username, email, password)):
        raise BadRequestError("All fields are required")
    if not (USERNAME_MIN_LEN <= len(username.strip()) <= USERNAME_MAX_LEN):
        raise BadRequestError("Invalid username length.")
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise BadRequestError("Invalid password length.")


async def register_user(
    store: UserStore,
    settings: Settings,
    *,
    full_name: str,
    username: str,
    email: str,
    password: str,
    avatar: ImageUpload | None,
    cover_image: ImageUpload | None = None,
    uploader: Uploader | None = None,
) -> CurrentUser:
    """
    Create a user with an uploaded avatar (required) and cover image (optional).

    Order: field checks, uniqueness, avatar presence, uploads, insert. The
    returned user never includes the password hash or refresh token.
    """
    validate_registration_fields(full_name, username, email, password)

    uploader = uploader or upload_image
    if store.exists(username, email):
        raise ConflictError("Username or Email Already Exists")

    if avatar is None or not avatar.content:
        raise BadRequestError("Avatar image is required")

    try:
        avatar_result = await _upload(avatar, settings, uploader)
    except MediaUploadError as e:
        logger.error("Avatar upload failed", extra={"reason": e.message[:500]})
        avatar_result = None
    if avatar_result is None:
        raise BadRequestError("Avatar image is required")

    try:
        cover_result = await _upload(cover_image, settings, uploader)
    except MediaUploadError as e:
        logger.warning("Cover image upload failed", extra={"reason": e.message[:500]})
        cover_result = None

    try:
        user = store.create(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            avatar=avatar_result.url,
            cover_image=cover_result.url if cover_result else "",
        )
        store.session.commit()
    except IntegrityError as e:
        store.session.rollback()
        raise ConflictError("Username or Email Already Exists") from e
    except SQLAlchemyError as e:
        store.session.rollback()
        raise InternalError("Something went wrong while registering the user") from e

    created = store.find_by_id(user.id)
    if created is None:
        raise InternalError("Something went wrong while registering the user")
    logger.info("User registered", extra={"user_id": created.id})
    return CurrentUser.model_validate(created)
