"""Auth dependencies: resolve the request's access token (cookie or Bearer header) to a user."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.services.authenticator import ACCESS_TOKEN_COOKIE, authenticate
from app.services.user_store import UserStore

security = HTTPBearer(auto_error=False)
access_cookie = APIKeyCookie(name=ACCESS_TOKEN_COOKIE, auto_error=False)


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    """Dependency: a UserStore bound to the request's DB session."""
    return UserStore(db)


def get_current_user(
    cookie_token: Annotated[str | None, Depends(access_cookie)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """
    Dependency: require a valid access token and return the current user. Raises 401 otherwise.

    The accessToken cookie wins over an 'Authorization: Bearer' header.
    """
    token = cookie_token or (credentials.credentials if credentials else None)
    return authenticate(store, settings, token)
