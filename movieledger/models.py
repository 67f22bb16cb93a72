import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Integer, ForeignKey, Boolean, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


@dataclass(frozen=True)
class NoSession:
    """The account is logged out; no presented token can match it."""


@dataclass(frozen=True)
class ActiveSession:
    token: str


SessionState = NoSession | ActiveSession


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    # NULL while logged out.
    access_token: Mapped[str | None] = mapped_column(String, unique=True, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    watchlist_entries: Mapped[list["WatchlistEntry"]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
    )
    comment_threads: Mapped[list["CommentThread"]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
    )

    @property
    def session(self) -> SessionState:
        if self.access_token:
            return ActiveSession(self.access_token)
        return NoSession()

    @session.setter
    def session(self, state: SessionState) -> None:
        if isinstance(state, ActiveSession):
            if not state.token:
                raise ValueError("An active session needs a non-empty token")
            self.access_token = state.token
        else:
            self.access_token = None


class WatchlistEntry(Base):
    __tablename__ = "watchlist_entries"
    __table_args__ = (UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    movie_id: Mapped[str] = mapped_column(String(64), nullable=False)
    wanted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    account: Mapped["Account"] = relationship(back_populates="watchlist_entries")


class CommentThread(Base):
    __tablename__ = "comment_threads"
    __table_args__ = (UniqueConstraint("movie_id", "user_id", name="uq_comment_thread_movie_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    movie_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    account: Mapped["Account"] = relationship(back_populates="comment_threads")
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="Comment.seq",
    )


class Comment(Base):
    __tablename__ = "comments"

    # Insertion order; breaks ties between equal posted_at values.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid.uuid4)
    thread_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("comment_threads.id", ondelete="CASCADE"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    thread: Mapped["CommentThread"] = relationship(back_populates="comments")
