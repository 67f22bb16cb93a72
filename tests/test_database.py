import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from movieledger.database import insert_for
from movieledger.models import WatchlistEntry


def test_insert_for_unbound_session_is_unsupported():
    with pytest.raises(NotImplementedError):
        insert_for(AsyncSession(), WatchlistEntry)


async def test_insert_for_sqlite_session(db):
    stmt = insert_for(db, WatchlistEntry)
    assert hasattr(stmt, "on_conflict_do_nothing")
