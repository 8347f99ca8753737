"""Business logic layer: accounts, sessions, and the inspiration collection.

Services validate input, call the crud layer, and raise the errors from
``errors.py``. Database failures are logged and reported as InternalError so
callers never see driver messages.
"""

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from .auth import create_session_token, decode_session_token, hash_password, verify_password
from .context import AppContext
from .crud import (
    delete_inspiration as crud_delete_inspiration,
    insert_inspiration,
    insert_user,
    list_inspirations as crud_list_inspirations,
    select_inspiration,
    select_user,
    select_user_by_email,
    update_inspiration as crud_update_inspiration,
)
from .errors import (
    AuthError,
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from .logger import logger
from .models import Inspiration, User
from .schemas import (
    ImageUpload,
    InspirationCreate,
    InspirationFilter,
    InspirationPatch,
    UserLogin,
    UserRegister,
)
from .utils import normalize_tags

# ==================== Authentication ====================


async def register_user(ctx: AppContext, data: UserRegister) -> tuple[User, str]:
    """Create an account and return it with a fresh session token."""
    if not data.name or not data.email or not data.password:
        raise ValidationError("All fields are required")

    min_length = ctx.settings.PASSWORD_MIN_LENGTH
    if len(data.password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")

    logger.info(f"Registering new user: {data.email}")

    try:
        existing_user = await select_user_by_email(ctx, data.email)
        if existing_user:
            logger.warning(f"Registration failed - email already exists: {data.email}")
            raise ConflictError("User already exists with this email", {"email": data.email})

        # bcrypt is deliberately slow; keep it off the event loop
        hashed_password = await run_in_threadpool(hash_password, data.password)
        user = await insert_user(ctx, data.name, data.email, hashed_password)
    except ValueError as e:
        # Lost a race with a concurrent registration; the unique index caught it
        logger.warning(f"Registration failed - duplicate email on insert: {data.email}")
        raise ConflictError("User already exists with this email", {"email": data.email}) from e
    except SQLAlchemyError as e:
        logger.error(f"Registration error for {data.email}: {e}", exc_info=True)
        raise InternalError("Server error during registration") from e

    logger.info(f"User registered successfully: id={user.id} email={user.email}")
    return user, create_session_token(ctx.settings, user.id)


async def authenticate_user(ctx: AppContext, data: UserLogin) -> tuple[User, str]:
    """Check credentials and return the user with a fresh session token."""
    if not data.email or not data.password:
        raise ValidationError("Email and password are required")

    logger.info(f"Authentication attempt for user: {data.email}")

    try:
        user = await select_user_by_email(ctx, data.email)
    except SQLAlchemyError as e:
        logger.error(f"Login error for {data.email}: {e}", exc_info=True)
        raise InternalError("Server error during login") from e

    if not user:
        logger.warning(f"Authentication failed - user not found: {data.email}")
        raise InvalidCredentialsError("Invalid credentials")

    if not await run_in_threadpool(verify_password, data.password, user.hashed_password):
        logger.warning(f"Authentication failed - invalid password for user: {data.email}")
        raise InvalidCredentialsError("Invalid credentials")

    logger.info(f"Authentication successful for user: {data.email} (id={user.id})")
    return user, create_session_token(ctx.settings, user.id)


async def resolve_session(ctx: AppContext, token: str | None) -> User:
    """Verify a session token and load the user it names."""
    if not token:
        raise AuthError("No token, authorization denied")

    payload = decode_session_token(ctx.settings, token)
    if payload is None:
        raise AuthError("Token is not valid")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthError("Token is not valid")

    try:
        user = await select_user(ctx, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Session lookup failed for user={user_id}: {e}", exc_info=True)
        raise InternalError("Server error during authentication") from e

    if user is None:
        logger.warning(f"Session refers to a missing user: id={user_id}")
        raise AuthError("Token is not valid")
    return user

# ==================== Images ====================


def ensure_image_size(ctx: AppContext, size: int | None) -> None:
    """Reject images over MAX_IMAGE_BYTES. ``None`` means the size is not known yet."""
    if size is not None and size > ctx.settings.MAX_IMAGE_BYTES:
        limit_mb = ctx.settings.MAX_IMAGE_BYTES // (1024 * 1024)
        raise ValidationError(
            f"Image is too large (max {limit_mb}MB)",
            {"size": size, "maximum": ctx.settings.MAX_IMAGE_BYTES},
        )


def _check_image_size(ctx: AppContext, image: ImageUpload | None) -> None:
    if image is not None:
        ensure_image_size(ctx, len(image.data))


async def _upload_image(ctx: AppContext, image: ImageUpload) -> str | None:
    """Upload to the image store. Returns None when hosting is off or the upload failed."""
    if not ctx.image_store.is_configured:
        logger.warning("Image upload attempted but image hosting is not configured - continuing without image")
        return None

    try:
        return await ctx.image_store.upload(
            image.data,
            image.filename,
            content_type=image.content_type,
            folder=ctx.settings.CLOUDINARY_FOLDER,
        )
    except UpstreamError as e:
        logger.error(f"Image upload failed - continuing without image: {e.message} {e.details}")
        return None

# ==================== Inspirations ====================


def _clean_title(ctx: AppContext, title: str) -> str:
    title = title.strip()
    if len(title) > ctx.settings.TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be at most {ctx.settings.TITLE_MAX_LENGTH} characters",
            {"length": len(title)},
        )
    return title


async def list_inspirations(
    ctx: AppContext,
    owner_id: int,
    filters: InspirationFilter | None = None,
) -> list[Inspiration]:
    """List the owner's inspirations, newest first, optionally filtered."""
    filters = filters or InspirationFilter()
    logger.debug(f"Listing inspirations: user={owner_id} search={filters.search!r} tags={filters.tags}")
    try:
        return await crud_list_inspirations(
            ctx, owner_id, search=filters.search, tags=normalize_tags(filters.tags)
        )
    except SQLAlchemyError as e:
        raise InternalError("Error fetching inspirations") from e


async def create_inspiration(
    ctx: AppContext,
    owner_id: int,
    data: InspirationCreate,
    image: ImageUpload | None = None,
) -> Inspiration:
    """Create an inspiration. A failed or disabled image upload leaves ``image_url`` empty."""
    title = _clean_title(ctx, data.title or "")
    if not title:
        raise ValidationError("Title is required")
    _check_image_size(ctx, image)

    image_url = ""
    if image is not None:
        image_url = await _upload_image(ctx, image) or ""

    try:
        inspiration = await insert_inspiration(
            ctx,
            owner_id,
            title=title,
            description=(data.description or "").strip(),
            image_url=image_url,
            tags=normalize_tags(data.tags),
        )
    except SQLAlchemyError as e:
        raise InternalError("Error creating inspiration") from e

    logger.info(f"Inspiration created: id={inspiration.id} user={owner_id}")
    return inspiration


async def update_inspiration(
    ctx: AppContext,
    owner_id: int,
    inspiration_id: int,
    patch: InspirationPatch,
    image: ImageUpload | None = None,
) -> Inspiration:
    """Apply a partial update to an owned inspiration.

    Title replaces only when non-empty; description and tags replace whenever
    sent. ``remove_image`` clears the image and wins over a new file.
    """
    _check_image_size(ctx, image)

    try:
        existing = await select_inspiration(ctx, owner_id, inspiration_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to update inspiration id={inspiration_id}: {e}", exc_info=True)
        raise InternalError("Error updating inspiration") from e
    if existing is None:
        logger.warning(f"Cannot update - inspiration not found: id={inspiration_id} user={owner_id}")
        raise NotFoundError("Inspiration not found", {"id": inspiration_id})

    changes: dict = {}
    if patch.title and patch.title.strip():
        changes["title"] = _clean_title(ctx, patch.title)
    if patch.description is not None:
        changes["description"] = patch.description.strip()

    if patch.remove_image:
        changes["image_url"] = ""
    elif image is not None:
        image_url = await _upload_image(ctx, image)
        if image_url:
            changes["image_url"] = image_url

    if patch.tags is not None:
        changes["tags"] = normalize_tags(patch.tags)

    try:
        inspiration = await crud_update_inspiration(ctx, owner_id, inspiration_id, changes)
    except SQLAlchemyError as e:
        raise InternalError("Error updating inspiration") from e
    if inspiration is None:
        # Deleted between the lookup and the write
        raise NotFoundError("Inspiration not found", {"id": inspiration_id})

    logger.info(f"Inspiration updated: id={inspiration_id} fields={sorted(changes)}")
    return inspiration


async def delete_inspiration(ctx: AppContext, owner_id: int, inspiration_id: int) -> None:
    """Delete an owned inspiration."""
    try:
        deleted = await crud_delete_inspiration(ctx, owner_id, inspiration_id)
    except SQLAlchemyError as e:
        raise InternalError("Error deleting inspiration") from e

    if not deleted:
        logger.warning(f"Cannot delete - inspiration not found: id={inspiration_id} user={owner_id}")
        raise NotFoundError("Inspiration not found", {"id": inspiration_id})

    logger.info(f"Inspiration deleted: id={inspiration_id} user={owner_id}")
