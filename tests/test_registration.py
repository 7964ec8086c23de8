"""Tests for app.services.registration.register_user with a stubbed media uploader."""

import asyncio
import unittest
from unittest.mock import AsyncMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.errors import ApiError, BadRequestError, ConflictError
from app.models import Base, User
from app.schemas.upload import MediaUploadResult
from app.services.media import MediaNotConfiguredError, MediaUploadError
from app.services.registration import ImageUpload, register_user
from app.services.user_store import UserStore

AVATAR = ImageUpload(filename="avatar.png", content=b"\x89PNG-avatar")
COVER = ImageUpload(filename="cover.png", content=b"\x89PNG-cover")


def _hosted(content: bytes | None, filename: str, settings: object) -> MediaUploadResult:
    return MediaUploadResult(url=f"https://media.example.com/{filename}")


class RegistrationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()
        self.store = UserStore(self.db)
        self.settings = Settings(
            _env_file=None,
            ACCESS_TOKEN_SECRET="test-access-secret",
            REFRESH_TOKEN_SECRET="test-refresh-secret",
        )
        self.uploader = AsyncMock(side_effect=_hosted)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def register(self, **overrides: object):
        fields = {
            "full_name": "Alice Liddell",
            "username": "Alice",
            "email": "alice@example.com",
            "password": "correct-password",
            "avatar": AVATAR,
            "cover_image": None,
            "uploader": self.uploader,
        }
        fields.update(overrides)
        return asyncio.run(register_user(self.store, self.settings, **fields))


class TestRegisterUser(RegistrationTestCase):
    def test_creates_user_with_hashed_password_and_avatar(self) -> None:
        user = self.register(cover_image=COVER)
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.avatar, "https://media.example.com/avatar.png")
        self.assertEqual(user.cover_image, "https://media.example.com/cover.png")
        self.assertNotIn("password_hash", user.model_dump())
        row = self.db.get(User, user.id)
        self.assertNotEqual(row.password_hash, "correct-password")
        self.assertTrue(row.check_password("correct-password"))
        self.assertIsNone(row.refresh_token)

    def test_cover_image_optional(self) -> None:
        user = self.register()
        self.assertEqual(user.cover_image, "")
        self.assertEqual(self.uploader.await_count, 1)

    def test_blank_field(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            self.register(full_name="   ")
        self.assertEqual(ctx.exception.message, "All fields are required")

    def test_short_password(self) -> None:
        with self.assertRaises(BadRequestError):
            self.register(password="short")

    def test_duplicate_username_or_email(self) -> None:
        self.register()
        with self.assertRaises(ConflictError):
            self.register(email="other@example.com", username="ALICE")
        with self.assertRaises(ConflictError):
            self.register(username="bob", email="Alice@Example.com")

    def test_avatar_required(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            self.register(avatar=None)
        self.assertEqual(ctx.exception.message, "Avatar image is required")
        self.uploader.assert_not_awaited()

    def test_avatar_upload_failure(self) -> None:
        self.uploader.side_effect = MediaUploadError("Media host returned 500: boom", 500)
        with self.assertRaises(BadRequestError) as ctx:
            self.register()
        self.assertEqual(ctx.exception.message, "Avatar image is required")
        self.assertIsNone(self.store.find_by_username_or_email("alice", None))

    def test_cover_upload_failure_leaves_cover_empty(self) -> None:
        async def uploader(content, filename, settings):
            if filename == "cover.png":
                raise MediaUploadError("Media host timed out.")
            return _hosted(content, filename, settings)

        user = self.register(cover_image=COVER, uploader=uploader)
        self.assertEqual(user.cover_image, "")

    def test_media_not_configured_is_503(self) -> None:
        self.uploader.side_effect = MediaNotConfiguredError("Media host is not configured")
        with self.assertRaises(ApiError) as ctx:
            self.register()
        self.assertEqual(ctx.exception.status_code, 503)


if __name__ == "__main__":
    unittest.main()
