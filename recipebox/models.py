"""SQLAlchemy ORM models for RecipeBox.

Tables:
- users: registered accounts (username is unique and case-sensitive)
- recipes: recipe entries owned by a user, with an optional image path
- revoked_sessions: session ids invalidated by logout until they would expire
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    recipes: Mapped[list["Recipe"]] = relationship("Recipe", back_populates="owner")

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username!r}>"


class Recipe(Base):
    """A recipe entry. Only the edit operation mutates it."""
    __tablename__ = "recipes"
    __table_args__ = (
        Index("ix_recipes_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    time: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="recipes")


class RevokedSession(Base):
    __tablename__ = "revoked_sessions"

    sid: Mapped[str] = mapped_column(String(64), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
