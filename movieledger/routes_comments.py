import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import get_current_account
from .comments import CommentRecord, add_comment, list_comments, remove_comment
from .database import get_db
from .errors import NotFoundError
from .models import Account

router = APIRouter(prefix="/comments", tags=["comments"])


class AddCommentRequest(BaseModel):
    comment: str = ""
    username: str | None = None


def _serialize_comment(record: CommentRecord) -> dict:
    return {
        "id": str(record.id),
        "movieId": record.movie_id,
        "userId": str(record.owner_id),
        "comment": record.text,
        "username": record.display_name,
        "createdAt": record.posted_at.isoformat() if record.posted_at else None,
    }


@router.post("/{movie_id}", status_code=201)
async def post_comment(
    movie_id: str,
    body: AddCommentRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    display_name = (body.username or "").strip() or account.username
    record = await add_comment(db, movie_id, account.id, body.comment, display_name)
    return {"success": True, "comment": _serialize_comment(record)}


@router.get("/{movie_id}")
async def get_comments(movie_id: str, db: AsyncSession = Depends(get_db)):
    records = await list_comments(db, movie_id)
    return {"comments": [_serialize_comment(record) for record in records]}


@router.delete("/{movie_id}/{comment_id}")
async def delete_comment(
    movie_id: str,
    comment_id: str,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    try:
        parsed_id = uuid.UUID(comment_id)
    except ValueError:
        return {"ok": True, "removed": False}
    try:
        await remove_comment(db, movie_id, account.id, parsed_id)
    except NotFoundError:
        return {"ok": True, "removed": False}
    return {"ok": True, "removed": True}
