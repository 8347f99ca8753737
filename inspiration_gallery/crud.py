"""Database CRUD operations for users and inspirations.

Every inspiration query is scoped by owner: a record that belongs to another
user is indistinguishable from one that does not exist.
"""

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import Select

from .context import AppContext
from .logger import logger
from .models import Inspiration, InspirationTag, User, utcnow
from .utils import escape_like


# ==================== User Operations ====================

async def insert_user(ctx: AppContext, name: str, email: str, hashed_password: str) -> User:
    """Insert a new user with hashed password. Raises ValueError on duplicate email."""
    async with ctx.session() as session:
        try:
            async with session.begin():
                user = User(
                    name=name,
                    email=email,
                    hashed_password=hashed_password,
                    created_at=utcnow(),
                )
                session.add(user)
            return user
        except IntegrityError as e:
            logger.debug(f"Duplicate email rejected: {email}")
            raise ValueError("duplicate email") from e


async def select_user_by_email(ctx: AppContext, email: str) -> User | None:
    """Retrieve a user by email address (exact, case-sensitive match)."""
    async with ctx.session() as session:
        result = await session.execute(select(User).where(User.email == email))
        return result.scalars().first()


async def select_user(ctx: AppContext, user_id: int) -> User | None:
    """Retrieve a user by ID."""
    async with ctx.session() as session:
        return await session.get(User, user_id)


# ==================== Inspiration Queries ====================

def _owned(owner_id: int, inspiration_id: int) -> Select:
    return select(Inspiration).where(
        Inspiration.id == inspiration_id,
        Inspiration.user_id == owner_id,
    )


def build_inspiration_query(
    owner_id: int,
    search: str | None = None,
    tags: list[str] | None = None,
) -> Select:
    """Build the owner-scoped listing query, newest first.

    ``search`` matches title OR description case-insensitively; every tag in
    ``tags`` must be present on the record. Both filters are ANDed.
    """
    conditions = [Inspiration.user_id == owner_id]

    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            or_(
                Inspiration.title.ilike(pattern, escape="\\"),
                Inspiration.description.ilike(pattern, escape="\\"),
            )
        )

    for tag in tags or []:
        conditions.append(
            Inspiration.id.in_(
                select(InspirationTag.inspiration_id).where(InspirationTag.value == tag)
            )
        )

    return (
        select(Inspiration)
        .where(*conditions)
        .order_by(Inspiration.created_at.desc(), Inspiration.id.desc())
    )


async def list_inspirations(
    ctx: AppContext,
    owner_id: int,
    search: str | None = None,
    tags: list[str] | None = None,
) -> list[Inspiration]:
    """List a user's inspirations with optional search and tag filters."""
    async with ctx.session() as session:
        try:
            result = await session.execute(build_inspiration_query(owner_id, search, tags))
            inspirations = list(result.scalars().all())
            logger.debug(
                f"Query executed: returned {len(inspirations)} inspirations for user={owner_id}"
            )
            return inspirations
        except Exception:
            logger.error(f"Failed to list inspirations for user={owner_id}", exc_info=True)
            raise


async def select_inspiration(ctx: AppContext, owner_id: int, inspiration_id: int) -> Inspiration | None:
    """Retrieve one inspiration if it exists and belongs to the owner."""
    async with ctx.session() as session:
        result = await session.execute(_owned(owner_id, inspiration_id))
        return result.scalars().first()


# ==================== Inspiration Writes ====================

async def insert_inspiration(
    ctx: AppContext,
    owner_id: int,
    title: str,
    description: str,
    image_url: str,
    tags: list[str],
) -> Inspiration:
    """Insert a new inspiration with its tags in one transaction."""
    now = utcnow()
    inspiration = Inspiration(
        user_id=owner_id,
        title=title,
        description=description,
        image_url=image_url,
        created_at=now,
        updated_at=now,
    )
    inspiration.tags = tags

    async with ctx.session() as session:
        try:
            async with session.begin():
                session.add(inspiration)
            return inspiration
        except Exception:
            logger.error(f"Failed to insert inspiration for user={owner_id}", exc_info=True)
            raise


async def update_inspiration(
    ctx: AppContext,
    owner_id: int,
    inspiration_id: int,
    changes: dict,
) -> Inspiration | None:
    """Apply field changes to an owned inspiration and stamp updated_at.

    ``changes`` may contain title, description, image_url and tags (the full
    replacement list). Returns None when no owned record matched.
    """
    async with ctx.session() as session:
        try:
            async with session.begin():
                result = await session.execute(_owned(owner_id, inspiration_id))
                inspiration = result.scalars().first()
                if inspiration is None:
                    return None
                for field, value in changes.items():
                    setattr(inspiration, field, value)
                inspiration.updated_at = utcnow()
            return inspiration
        except Exception:
            logger.error(f"Failed to update inspiration id={inspiration_id}", exc_info=True)
            raise


async def delete_inspiration(ctx: AppContext, owner_id: int, inspiration_id: int) -> bool:
    """Delete an owned inspiration and its tags. Returns False when nothing matched."""
    async with ctx.session() as session:
        try:
            async with session.begin():
                result = await session.execute(_owned(owner_id, inspiration_id))
                inspiration = result.scalars().first()
                if inspiration is None:
                    return False
                await session.delete(inspiration)
            return True
        except Exception:
            logger.error(f"Failed to delete inspiration id={inspiration_id}", exc_info=True)
            raise
