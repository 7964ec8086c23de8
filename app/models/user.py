"""ORM model for user accounts (profile, credentials, current refresh token)."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.core.security import verify_password
from app.models.base import Base


class User(Base):
    """
    User account for registration, login and token-based sessions.

    username and email are stored lower-cased and are each unique.
    refresh_token holds the single currently valid refresh token; overwriting
    or clearing it revokes every refresh token issued before.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(2048), nullable=False)
    cover_image = Column(String(2048), nullable=False, default="")
    refresh_token = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def check_password(self, plain_password: str) -> bool:
        """True if plain_password matches the stored hash."""
        return verify_password(plain_password, self.password_hash)
