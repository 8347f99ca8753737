"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """User model mapped to 'users' table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class InspirationTag(Base):
    """One tag of an inspiration. Position keeps the user's ordering; duplicates are allowed."""

    __tablename__ = "inspiration_tags"

    id = Column(Integer, primary_key=True)
    inspiration_id = Column(
        Integer, ForeignKey("inspirations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    value = Column(Text, nullable=False, index=True)


class Inspiration(Base):
    """User-owned gallery record mapped to 'inspirations' table.

    ``image_url`` is ``""`` when there is no image. ``created_at`` and
    ``updated_at`` are assigned by the crud layer on every write.
    """

    __tablename__ = "inspirations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(1024), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    tag_links = relationship(
        InspirationTag,
        order_by=InspirationTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return [link.value for link in self.tag_links]

    @tags.setter
    def tags(self, values: list[str]) -> None:
        self.tag_links = [
            InspirationTag(position=position, value=value)
            for position, value in enumerate(values)
        ]
