import uuid

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import get_current_account
from .database import get_db
from .errors import AuthenticationError
from .models import Account, WatchlistEntry
from .watchlist import get_entry, list_wanted, set_wanted

router = APIRouter(prefix="/users/{user_id}/watchlist", tags=["watchlist"])


class SetWatchlistRequest(BaseModel):
    movieId: int | str
    watchlist: bool = False


def _serialize_entry(entry: WatchlistEntry) -> dict:
    return {
        "id": str(entry.id),
        "userId": str(entry.user_id),
        "movieId": entry.movie_id,
        "watchlist": bool(entry.wanted),
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
    }


def _require_owner(user_id: uuid.UUID, account: Account) -> None:
    # Another account's watchlist looks exactly like a bad token.
    if account.id != user_id:
        raise AuthenticationError()


@router.put("")
async def put_watchlist_entry(
    user_id: uuid.UUID,
    body: SetWatchlistRequest,
    response: Response,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    _require_owner(user_id, account)
    write = await set_wanted(db, account.id, body.movieId, body.watchlist)
    response.status_code = 201 if write.created else 200
    return {"success": True, "created": write.created, "movie": _serialize_entry(write.entry)}


@router.get("")
async def get_watchlist(
    user_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    _require_owner(user_id, account)
    rows = await list_wanted(db, account.id)
    return {"userWatchlist": [_serialize_entry(row) for row in rows]}


@router.get("/{movie_id}")
async def get_watchlist_entry(
    user_id: uuid.UUID,
    movie_id: str,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    _require_owner(user_id, account)
    entry = await get_entry(db, account.id, movie_id)
    return {"movie": _serialize_entry(entry)}
