import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .database import insert_for
from .errors import NotFoundError, ValidationError
from .models import Comment, CommentThread
from .watchlist import MovieId, normalize_movie_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentRecord:
    id: uuid.UUID
    movie_id: str
    owner_id: uuid.UUID
    text: str
    display_name: str
    posted_at: datetime


def _record(comment: Comment, thread: CommentThread) -> CommentRecord:
    return CommentRecord(
        id=comment.id,
        movie_id=thread.movie_id,
        owner_id=thread.user_id,
        text=comment.text,
        display_name=comment.display_name,
        posted_at=comment.posted_at,
    )


async def ensure_thread(db: AsyncSession, movie_id: str, owner_id: uuid.UUID) -> CommentThread:
    """Return the (movie, owner) thread, creating it if needed, and commit."""
    await db.execute(
        insert_for(db, CommentThread)
        .values(
            id=uuid.uuid4(),
            movie_id=movie_id,
            user_id=owner_id,
            created_at=datetime.now(timezone.utc),
        )
        .on_conflict_do_nothing(index_elements=["movie_id", "user_id"])
    )
    thread = (
        await db.execute(
            select(CommentThread).where(
                CommentThread.movie_id == movie_id,
                CommentThread.user_id == owner_id,
            )
        )
    ).scalar_one()
    await db.commit()
    return thread


async def add_comment(
    db: AsyncSession,
    movie_id: MovieId,
    owner_id: uuid.UUID,
    text: str,
    display_name: str,
    *,
    now: datetime | None = None,
) -> CommentRecord:
    movie_id = normalize_movie_id(movie_id)
    text = str(text or "").strip()
    if not text:
        raise ValidationError("comment", "Comment text is required")
    display_name = str(display_name or "").strip()
    if not display_name:
        raise ValidationError("username", "Display name is required")

    # Committed on its own so a failed append still leaves a valid, empty thread.
    thread = await ensure_thread(db, movie_id, owner_id)

    comment = Comment(
        id=uuid.uuid4(),
        thread_id=thread.id,
        text=text,
        display_name=display_name,
        posted_at=now or datetime.now(timezone.utc),
    )
    db.add(comment)
    await db.commit()
    logger.debug("Comment added (movie=%s, user=%s, comment=%s)", movie_id, owner_id, comment.id)
    return _record(comment, thread)


async def list_comments(db: AsyncSession, movie_id: MovieId) -> list[CommentRecord]:
    """All comments on a movie across owners, newest first; ties keep insertion order."""
    movie_id = normalize_movie_id(movie_id)
    rows = (
        await db.execute(
            select(Comment, CommentThread)
            .join(CommentThread, CommentThread.id == Comment.thread_id)
            .where(CommentThread.movie_id == movie_id)
            .order_by(Comment.posted_at.desc(), Comment.seq.asc())
        )
    ).all()
    return [_record(comment, thread) for comment, thread in rows]


async def remove_comment(db: AsyncSession, movie_id: MovieId, owner_id: uuid.UUID, comment_id: uuid.UUID) -> None:
    """Delete one comment from the owner's thread on a movie.

    Raises NotFoundError when no comment with that id lives in the thread.
    The thread itself is kept even when it ends up empty.
    """
    movie_id = normalize_movie_id(movie_id)
    thread_ids = (
        select(CommentThread.id)
        .where(CommentThread.movie_id == movie_id, CommentThread.user_id == owner_id)
        .scalar_subquery()
    )
    result = await db.execute(
        delete(Comment)
        .where(Comment.id == comment_id, Comment.thread_id == thread_ids)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Comment not found")
    await db.commit()
    logger.debug("Comment removed (movie=%s, user=%s, comment=%s)", movie_id, owner_id, comment_id)
