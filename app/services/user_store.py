"""User persistence: lookups by unique key, creation, and refresh-token updates."""

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.models import User


def normalize_identifier(value: str | None) -> str | None:
    """Trim and lower-case a username or email; empty input becomes None."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class UserStore:
    """
    Thin wrapper over a SQLAlchemy session for the users table.

    Mutating methods flush but never commit; callers own the transaction so
    that issue-and-persist steps can be committed or rolled back as one.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_by_username_or_email(
        self, username: str | None = None, email: str | None = None
    ) -> User | None:
        """Return the user matching username or email (case-insensitive), or None."""
        clauses = []
        username = normalize_identifier(username)
        email = normalize_identifier(email)
        if username:
            clauses.append(User.username == username)
        if email:
            clauses.append(User.email == email)
        if not clauses:
            return None
        return self.session.query(User).filter(or_(*clauses)).first()

    def exists(self, username: str | None, email: str | None) -> bool:
        return self.find_by_username_or_email(username, email) is not None

    def create(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str = "",
    ) -> User:
        """Insert a user; username and email are normalized before storing."""
        user = User(
            username=normalize_identifier(username),
            email=normalize_identifier(email),
            full_name=full_name.strip(),
            password_hash=password_hash,
            avatar=avatar,
            cover_image=cover_image or "",
        )
        self.session.add(user)
        self.session.flush()
        return user

    def update_refresh_token(self, user_id: int, token: str | None) -> User | None:
        """Overwrite (or clear with None) the stored refresh token. Returns None if no such user."""
        user = self.find_by_id(user_id)
        if user is None:
            return None
        user.refresh_token = token
        self.session.flush()
        return user

    def rotate_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """
        Replace the stored refresh token only if it still equals expected.

        Single conditional UPDATE, so of two concurrent rotations presenting the
        same token exactly one matches a row. Returns False when nothing matched.
        """
        self.session.flush()
        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new)
            .execution_options(synchronize_session=False)
        )
        # Loaded User rows are stale after a bulk UPDATE.
        self.session.expire_all()
        return result.rowcount == 1
