"""
User service — read operations for the User aggregate.

Writes go through ``provisioning_service`` because a user must exist in
both the database and the identity provider.  Genres are stored as
references only; resolving them against the catalog is left to clients,
so ``genre`` is always null here.
"""
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ArtistProfile, User


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict (no profile fields)."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_artist": user.is_artist,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def artist_to_dict(artist: ArtistProfile) -> dict:
    """Profile fields merged into the user dict for artists."""
    return {"genre_id": artist.genre_id}


def _user_detail_to_dict(user: User) -> dict:
    data = user_to_dict(user)
    if user.is_artist:
        data["genre_id"] = user.artist.genre_id if user.artist else None
        data["genre"] = None
    return data


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    q = (
        select(User)
        .options(selectinload(User.artist))
        .order_by(User.created_at.desc(), User.id.desc())
    )

    result = await db.execute(q)
    return [_user_detail_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """
    Return the detail dict for *user_id*, with artist profile fields when
    the user is an artist.

    Returns None when the user does not exist.
    """
    q = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.artist))
    )

    result = await db.execute(q)
    user = result.scalar_one_or_none()
    if user is None:
        return None
    return _user_detail_to_dict(user)
