"""
Unit tests for business logic (services layer).
Tests service functions with mocked database calls.
"""

from datetime import datetime, UTC
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from inspiration_gallery.auth import create_session_token, hash_password
from inspiration_gallery.errors import (
    AuthError,
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from inspiration_gallery.schemas import (
    ImageUpload,
    InspirationCreate,
    InspirationFilter,
    InspirationPatch,
    UserLogin,
    UserRegister,
)
from inspiration_gallery.services import (
    authenticate_user,
    create_inspiration,
    delete_inspiration,
    list_inspirations,
    register_user,
    resolve_session,
    update_inspiration,
)
from tests.conftest import FakeImageStore, make_settings


class MockUser:
    """Mock User object for testing with all required fields."""
    def __init__(self, id: int, name: str, email: str, password: str = "secret1"):
        self.id = id
        self.name = name
        self.email = email
        self.hashed_password = hash_password(password)
        self.created_at = datetime.now(UTC)


class MockInspiration:
    def __init__(self, id: int = 1, user_id: int = 1, image_url: str = ""):
        self.id = id
        self.user_id = user_id
        self.title = "Existing"
        self.description = ""
        self.image_url = image_url
        self.tags = []


@pytest.fixture
def ctx(tmp_path):
    return SimpleNamespace(settings=make_settings(tmp_path / "t.db"), image_store=FakeImageStore())


def _image(size: int = 4) -> ImageUpload:
    return ImageUpload(data=b"x" * size, filename="pic.png", content_type="image/png")


# ============================================================================
# Registration / Login / Sessions
# ============================================================================

@pytest.mark.asyncio
class TestRegisterUser:

    async def test_stores_hash_not_plaintext(self, ctx):
        created = MockUser(7, "Alice", "alice@example.com")
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=None), \
             patch("inspiration_gallery.services.insert_user", new_callable=AsyncMock, return_value=created) as insert:
            user, token = await register_user(
                ctx, UserRegister(name="Alice", email="alice@example.com", password="secret1")
            )

        stored_hash = insert.call_args.args[3]
        assert stored_hash != "secret1"
        assert user.id == 7
        assert token

    @pytest.mark.parametrize("payload", [
        {"name": "", "email": "a@example.com", "password": "secret1"},
        {"name": "Alice", "email": "", "password": "secret1"},
        {"name": "Alice", "email": "a@example.com"},
        {"name": "   ", "email": "a@example.com", "password": "secret1"},
    ])
    async def test_missing_fields(self, ctx, payload):
        with pytest.raises(ValidationError) as exc_info:
            await register_user(ctx, UserRegister(**payload))
        assert exc_info.value.message == "All fields are required"

    async def test_short_password(self, ctx):
        with pytest.raises(ValidationError) as exc_info:
            await register_user(ctx, UserRegister(name="A", email="a@example.com", password="12345"))
        assert "at least 6" in exc_info.value.message

    async def test_duplicate_email(self, ctx):
        existing = MockUser(1, "Alice", "alice@example.com")
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=existing):
            with pytest.raises(ConflictError):
                await register_user(
                    ctx, UserRegister(name="Other", email="alice@example.com", password="different")
                )

    async def test_duplicate_caught_at_insert(self, ctx):
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=None), \
             patch("inspiration_gallery.services.insert_user", new_callable=AsyncMock, side_effect=ValueError("duplicate email")):
            with pytest.raises(ConflictError):
                await register_user(
                    ctx, UserRegister(name="Alice", email="alice@example.com", password="secret1")
                )

    async def test_database_failure_is_internal_error(self, ctx):
        with patch(
            "inspiration_gallery.services.select_user_by_email",
            new_callable=AsyncMock,
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            with pytest.raises(InternalError):
                await register_user(
                    ctx, UserRegister(name="Alice", email="alice@example.com", password="secret1")
                )


@pytest.mark.asyncio
class TestAuthenticateUser:

    async def test_success(self, ctx):
        user = MockUser(3, "Alice", "alice@example.com", "secret1")
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=user):
            found, token = await authenticate_user(ctx, UserLogin(email="alice@example.com", password="secret1"))
        assert found.id == 3
        assert token

    async def test_unknown_email_and_wrong_password_look_the_same(self, ctx):
        user = MockUser(3, "Alice", "alice@example.com", "secret1")
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=None):
            with pytest.raises(InvalidCredentialsError) as unknown:
                await authenticate_user(ctx, UserLogin(email="nobody@example.com", password="secret1"))
        with patch("inspiration_gallery.services.select_user_by_email", new_callable=AsyncMock, return_value=user):
            with pytest.raises(InvalidCredentialsError) as wrong:
                await authenticate_user(ctx, UserLogin(email="alice@example.com", password="nope!!"))

        assert unknown.value.message == wrong.value.message == "Invalid credentials"
        assert unknown.value.status_code == wrong.value.status_code == 400

    async def test_missing_fields(self, ctx):
        with pytest.raises(ValidationError):
            await authenticate_user(ctx, UserLogin(email="alice@example.com"))


@pytest.mark.asyncio
class TestResolveSession:

    async def test_valid_token(self, ctx):
        user = MockUser(5, "Alice", "alice@example.com")
        token = create_session_token(ctx.settings, 5)
        with patch("inspiration_gallery.services.select_user", new_callable=AsyncMock, return_value=user):
            assert (await resolve_session(ctx, token)).id == 5

    async def test_missing_token(self, ctx):
        with pytest.raises(AuthError):
            await resolve_session(ctx, None)

    async def test_invalid_token(self, ctx):
        with pytest.raises(AuthError):
            await resolve_session(ctx, "abc.def.ghi")

    async def test_user_gone(self, ctx):
        token = create_session_token(ctx.settings, 99)
        with patch("inspiration_gallery.services.select_user", new_callable=AsyncMock, return_value=None):
            with pytest.raises(AuthError):
                await resolve_session(ctx, token)


# ============================================================================
# Inspirations
# ============================================================================

@pytest.mark.asyncio
class TestCreateInspiration:

    async def test_requires_title(self, ctx):
        with pytest.raises(ValidationError) as exc_info:
            await create_inspiration(ctx, 1, InspirationCreate(title="   "))
        assert exc_info.value.message == "Title is required"

    async def test_normalizes_tags_and_defaults(self, ctx):
        with patch("inspiration_gallery.services.insert_inspiration", new_callable=AsyncMock) as insert:
            await create_inspiration(ctx, 1, InspirationCreate(title=" Sunset ", tags="nature, calm"))
        kwargs = insert.call_args.kwargs
        assert kwargs["title"] == "Sunset"
        assert kwargs["tags"] == ["nature", "calm"]
        assert kwargs["description"] == ""
        assert kwargs["image_url"] == ""

    async def test_uploads_image(self, ctx):
        with patch("inspiration_gallery.services.insert_inspiration", new_callable=AsyncMock) as insert:
            await create_inspiration(ctx, 1, InspirationCreate(title="Pic"), _image())
        assert insert.call_args.kwargs["image_url"].startswith("https://images.test/inspiration_gallery/")
        assert ctx.image_store.uploads[0]["folder"] == "inspiration_gallery"

    async def test_upload_failure_is_not_fatal(self, ctx):
        ctx.image_store = FakeImageStore(fail=True)
        with patch("inspiration_gallery.services.insert_inspiration", new_callable=AsyncMock) as insert:
            await create_inspiration(ctx, 1, InspirationCreate(title="Pic"), _image())
        assert insert.call_args.kwargs["image_url"] == ""

    async def test_unconfigured_store_is_never_called(self, ctx):
        ctx.image_store = FakeImageStore(configured=False)
        with patch("inspiration_gallery.services.insert_inspiration", new_callable=AsyncMock) as insert:
            await create_inspiration(ctx, 1, InspirationCreate(title="Pic"), _image())
        assert ctx.image_store.uploads == []
        assert insert.call_args.kwargs["image_url"] == ""

    async def test_oversized_image_rejected(self, ctx):
        ctx.settings = make_settings("unused.db", MAX_IMAGE_BYTES=8)
        with pytest.raises(ValidationError):
            await create_inspiration(ctx, 1, InspirationCreate(title="Pic"), _image(size=9))
        assert ctx.image_store.uploads == []

    async def test_database_failure(self, ctx):
        with patch(
            "inspiration_gallery.services.insert_inspiration",
            new_callable=AsyncMock,
            side_effect=OperationalError("INSERT", {}, Exception("disk full")),
        ):
            with pytest.raises(InternalError) as exc_info:
                await create_inspiration(ctx, 1, InspirationCreate(title="Pic"))
        assert exc_info.value.message == "Error creating inspiration"


@pytest.mark.asyncio
class TestUpdateInspiration:

    async def _update(self, ctx, patch_data, image=None, existing=None):
        existing = existing or MockInspiration(image_url="https://old/url.png")
        with patch("inspiration_gallery.services.select_inspiration", new_callable=AsyncMock, return_value=existing), \
             patch("inspiration_gallery.services.crud_update_inspiration", new_callable=AsyncMock, return_value=existing) as update:
            await update_inspiration(ctx, 1, existing.id, patch_data, image)
        return update.call_args.args[3]

    async def test_not_found(self, ctx):
        with patch("inspiration_gallery.services.select_inspiration", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await update_inspiration(ctx, 1, 123, InspirationPatch(title="x"))

    async def test_empty_patch_changes_nothing(self, ctx):
        assert await self._update(ctx, InspirationPatch()) == {}

    async def test_empty_title_is_ignored(self, ctx):
        assert "title" not in await self._update(ctx, InspirationPatch(title=""))

    async def test_empty_description_replaces(self, ctx):
        assert (await self._update(ctx, InspirationPatch(description="")))["description"] == ""

    async def test_tags_fully_replaced(self, ctx):
        changes = await self._update(ctx, InspirationPatch(tags=["a ", " b"]))
        assert changes["tags"] == ["a", "b"]

    async def test_empty_tags_clear(self, ctx):
        assert (await self._update(ctx, InspirationPatch(tags="")))["tags"] == []

    async def test_remove_image_wins_over_new_file(self, ctx):
        changes = await self._update(ctx, InspirationPatch(remove_image=True), image=_image())
        assert changes["image_url"] == ""
        assert ctx.image_store.uploads == []

    async def test_new_image_replaces_url(self, ctx):
        changes = await self._update(ctx, InspirationPatch(), image=_image())
        assert changes["image_url"].startswith("https://images.test/")

    async def test_failed_upload_leaves_url_untouched(self, ctx):
        ctx.image_store = FakeImageStore(fail=True)
        changes = await self._update(ctx, InspirationPatch(), image=_image())
        assert "image_url" not in changes


@pytest.mark.asyncio
class TestListAndDelete:

    async def test_list_passes_normalized_filters(self, ctx):
        with patch("inspiration_gallery.services.crud_list_inspirations", new_callable=AsyncMock, return_value=[]) as crud_list:
            await list_inspirations(ctx, 4, InspirationFilter(search="foo", tags=[" x", "y "]))
        crud_list.assert_awaited_once_with(ctx, 4, search="foo", tags=["x", "y"])

    async def test_list_database_failure(self, ctx):
        with patch(
            "inspiration_gallery.services.crud_list_inspirations",
            new_callable=AsyncMock,
            side_effect=OperationalError("SELECT", {}, Exception("gone")),
        ):
            with pytest.raises(InternalError) as exc_info:
                await list_inspirations(ctx, 4)
        assert exc_info.value.message == "Error fetching inspirations"

    async def test_delete_not_found(self, ctx):
        with patch("inspiration_gallery.services.crud_delete_inspiration", new_callable=AsyncMock, return_value=False):
            with pytest.raises(NotFoundError):
                await delete_inspiration(ctx, 1, 99)

    async def test_delete_success(self, ctx):
        with patch("inspiration_gallery.services.crud_delete_inspiration", new_callable=AsyncMock, return_value=True) as crud_delete:
            await delete_inspiration(ctx, 1, 99)
        crud_delete.assert_awaited_once_with(ctx, 1, 99)
