"""Session lifecycle: login (issue token pair), refresh (rotate), logout (revoke)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import BadRequestError, InternalError, NotFoundError, UnauthorizedError
from app.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    token_subject,
)
from app.schemas.auth import CurrentUser, LoginData, TokenPair

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models import User
    from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid Login credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
REFRESH_TOKEN_REUSED = "Refresh token is expired or used"


def _issue_pair(user: User, settings: Settings) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user, settings),
        refresh_token=create_refresh_token(user.id, settings),
    )


def login(
    store: UserStore,
    settings: Settings,
    password: str,
    username: str | None = None,
    email: str | None = None,
) -> LoginData:
    """
    Verify credentials, issue an access/refresh pair, and persist the refresh token.

    Persisting overwrites any earlier refresh token, so only the newest login
    can refresh. Issue and persist commit together; on failure the session is
    rolled back and no tokens are returned.
    """
    if not (username and username.strip()) and not (email and email.strip()):
        raise BadRequestError("username or email is required")

    user = store.find_by_username_or_email(username, email)
    if user is None:
        raise NotFoundError("User does not exist")

    if not user.check_password(password):
        logger.info("Login rejected", extra={"user_id": user.id, "reason": "bad_password"})
        raise UnauthorizedError(INVALID_CREDENTIALS)

    pair = _issue_pair(user, settings)
    try:
        store.update_refresh_token(user.id, pair.refresh_token)
        store.session.commit()
    except SQLAlchemyError as e:
        store.session.rollback()
        logger.error(
            "Failed to persist refresh token",
            extra={"user_id": user.id, "reason": str(e)[:500]},
        )
        raise InternalError(
            "Something went wrong while generating refresh and access token"
        ) from e

    logger.info("User logged in", extra={"user_id": user.id})
    return LoginData(
        user=CurrentUser.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


def refresh(store: UserStore, settings: Settings, incoming_token: str | None) -> TokenPair:
    """
    Exchange the current refresh token for a new pair, invalidating the presented one.

    A token that verifies but differs from the stored value has been rotated
    away or revoked; it is rejected even though its signature is still valid.
    """
    if not incoming_token:
        raise UnauthorizedError("Unauthorized request")

    try:
        user_id = token_subject(decode_refresh_token(incoming_token, settings))
    except InvalidTokenError as e:
        logger.debug("Refresh token rejected", extra={"reason": e.message})
        raise UnauthorizedError(INVALID_REFRESH_TOKEN) from e

    user = store.find_by_id(user_id)
    if user is None:
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    if user.refresh_token != incoming_token:
        logger.warning("Stale refresh token presented", extra={"user_id": user_id})
        raise UnauthorizedError(REFRESH_TOKEN_REUSED)

    pair = _issue_pair(user, settings)
    try:
        rotated = store.rotate_refresh_token(user_id, incoming_token, pair.refresh_token)
        if not rotated:
            store.session.rollback()
            logger.warning("Concurrent refresh lost rotation", extra={"user_id": user_id})
            raise UnauthorizedError(REFRESH_TOKEN_REUSED)
        store.session.commit()
    except SQLAlchemyError as e:
        store.session.rollback()
        logger.error(
            "Failed to rotate refresh token",
            extra={"user_id": user_id, "reason": str(e)[:500]},
        )
        raise InternalError("Something went wrong while refreshing tokens") from e

    logger.info("Refresh token rotated", extra={"user_id": user_id})
    return pair


def logout(store: UserStore, user_id: int) -> None:
    """Clear the stored refresh token. Idempotent; raises NotFoundError only for unknown users."""
    try:
        user = store.update_refresh_token(user_id, None)
        if user is None:
            raise NotFoundError("User does not exist")
        store.session.commit()
    except SQLAlchemyError as e:
        store.session.rollback()
        raise InternalError("Something went wrong while logging out") from e
    logger.info("User logged out", extra={"user_id": user_id})
