"""Resolve an inbound access token to the user it was issued for."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.core.errors import UnauthorizedError
from app.core.security import InvalidTokenError, decode_access_token, token_subject
from app.schemas.auth import CurrentUser

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
INVALID_ACCESS_TOKEN = "Invalid access token"


def authenticate(store: UserStore, settings: Settings, token: str | None) -> CurrentUser:
    """
    Verify the access token and load its user.

    Every verification failure (expired, forged, malformed, wrong token type)
    and a missing user all raise the same UnauthorizedError; the precise
    reason is only logged.
    """
    if not token:
        raise UnauthorizedError("Unauthorized request")
    try:
        user_id = token_subject(decode_access_token(token, settings))
    except InvalidTokenError as e:
        logger.debug("Access token rejected", extra={"reason": e.message})
        raise UnauthorizedError(INVALID_ACCESS_TOKEN) from e

    user = store.find_by_id(user_id)
    if user is None:
        logger.debug("Access token rejected", extra={"reason": "user_gone", "user_id": user_id})
        raise UnauthorizedError(INVALID_ACCESS_TOKEN)
    return CurrentUser.model_validate(user)
