import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .database import insert_for
from .errors import NotFoundError, ValidationError
from .models import WatchlistEntry

logger = logging.getLogger(__name__)

MovieId = int | str


@dataclass(frozen=True)
class WatchlistWrite:
    entry: WatchlistEntry
    created: bool


def normalize_movie_id(value: MovieId | None) -> str:
    if isinstance(value, bool) or value is None:
        raise ValidationError("movieId", "Movie id is required")
    movie_id = str(value).strip()
    if not movie_id:
        raise ValidationError("movieId", "Movie id is required")
    if len(movie_id) > 64:
        raise ValidationError("movieId", "Movie id is too long")
    return movie_id


def _entry_query(owner_id: uuid.UUID, movie_id: str):
    return select(WatchlistEntry).where(
        WatchlistEntry.user_id == owner_id,
        WatchlistEntry.movie_id == movie_id,
    )


async def set_wanted(db: AsyncSession, owner_id: uuid.UUID, movie_id: MovieId, wanted: bool) -> WatchlistWrite:
    """Record the owner's latest preference for a movie.

    The insert is guarded by the (user_id, movie_id) unique constraint, so two
    racing first writes end with one row: the loser's insert is skipped and it
    falls through to the update.
    """
    movie_id = normalize_movie_id(movie_id)
    wanted = bool(wanted)
    now = datetime.now(timezone.utc)

    inserted = await db.execute(
        insert_for(db, WatchlistEntry)
        .values(
            id=uuid.uuid4(),
            user_id=owner_id,
            movie_id=movie_id,
            wanted=wanted,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["user_id", "movie_id"])
    )
    created = inserted.rowcount == 1
    if not created:
        await db.execute(
            update(WatchlistEntry)
            .where(
                WatchlistEntry.user_id == owner_id,
                WatchlistEntry.movie_id == movie_id,
            )
            .values(wanted=wanted, updated_at=now)
            .execution_options(synchronize_session=False)
        )

    entry = (
        await db.execute(_entry_query(owner_id, movie_id).execution_options(populate_existing=True))
    ).scalar_one()
    await db.commit()
    logger.debug(
        "Watchlist %s (user=%s, movie=%s, wanted=%s)",
        "created" if created else "updated",
        owner_id,
        movie_id,
        wanted,
    )
    return WatchlistWrite(entry=entry, created=created)


async def list_wanted(db: AsyncSession, owner_id: uuid.UUID) -> list[WatchlistEntry]:
    rows = (
        await db.execute(
            select(WatchlistEntry)
            .where(WatchlistEntry.user_id == owner_id, WatchlistEntry.wanted.is_(True))
            .order_by(WatchlistEntry.created_at.asc(), WatchlistEntry.id.asc())
        )
    ).scalars().all()
    return list(rows)


async def get_entry(db: AsyncSession, owner_id: uuid.UUID, movie_id: MovieId) -> WatchlistEntry:
    entry = (await db.execute(_entry_query(owner_id, normalize_movie_id(movie_id)))).scalar_one_or_none()
    if entry is None:
        raise NotFoundError()
    return entry
