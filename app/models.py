from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"
    # Fetch server-side defaults (created_at) on INSERT so serialising a
    # freshly flushed row never needs a lazy refresh.
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    is_artist: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # lazy="raise": services must eager-load explicitly
    artist: Mapped[Optional["ArtistProfile"]] = relationship(
        "ArtistProfile", back_populates="user", uselist=False, lazy="raise"
    )


# ---------------------------------------------------------------------------
# ArtistProfile (1:0..1 with User)
# ---------------------------------------------------------------------------
class ArtistProfile(Base):
    __tablename__ = "artists"
    __mapper_args__ = {"eager_defaults": True}

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    # Genre lives in the external catalog; only the reference is stored.
    genre_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="artist", lazy="raise")
