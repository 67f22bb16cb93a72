import asyncio

import pytest
from sqlalchemy import func, select

from movieledger.accounts import create_account
from movieledger.errors import NotFoundError, ValidationError
from movieledger.models import WatchlistEntry
from movieledger.watchlist import get_entry, list_wanted, set_wanted


async def _count_entries(db, owner_id, movie_id):
    return await db.scalar(
        select(func.count())
        .select_from(WatchlistEntry)
        .where(WatchlistEntry.user_id == owner_id, WatchlistEntry.movie_id == str(movie_id))
    )


async def test_set_then_clear_scenario(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")

    first = await set_wanted(db, alice.id, 42, True)
    assert first.created is True
    rows = await list_wanted(db, alice.id)
    assert [(row.movie_id, row.wanted) for row in rows] == [("42", True)]

    second = await set_wanted(db, alice.id, 42, False)
    assert second.created is False
    assert second.entry.id == first.entry.id
    assert second.entry.wanted is False
    assert await list_wanted(db, alice.id) == []
    assert await _count_entries(db, alice.id, 42) == 1


async def test_last_write_wins(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")

    for wanted in (True, False, True, True, False):
        await set_wanted(db, alice.id, "tt0133093", wanted)

    entry = await get_entry(db, alice.id, "tt0133093")
    assert entry.wanted is False
    assert await _count_entries(db, alice.id, "tt0133093") == 1


async def test_unwanted_first_write_still_creates_record(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")

    write = await set_wanted(db, alice.id, 7, False)

    assert write.created is True
    assert (await get_entry(db, alice.id, 7)).wanted is False
    assert await list_wanted(db, alice.id) == []


async def test_int_and_string_movie_ids_share_an_entry(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")

    await set_wanted(db, alice.id, 42, True)
    write = await set_wanted(db, alice.id, "42", False)

    assert write.created is False
    assert await _count_entries(db, alice.id, 42) == 1


async def test_entries_are_scoped_per_owner(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")
    bob = await create_account(db, "bob", "bob@x.com", "hunter2")

    await set_wanted(db, alice.id, 42, True)
    bob_write = await set_wanted(db, bob.id, 42, True)
    await set_wanted(db, bob.id, 43, True)

    assert bob_write.created is True
    assert [row.movie_id for row in await list_wanted(db, alice.id)] == ["42"]
    assert sorted(row.movie_id for row in await list_wanted(db, bob.id)) == ["42", "43"]


async def test_list_wanted_is_stable(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")
    for movie_id in (5, 3, 9):
        await set_wanted(db, alice.id, movie_id, True)

    first = [row.id for row in await list_wanted(db, alice.id)]
    second = [row.id for row in await list_wanted(db, alice.id)]
    assert first == second
    assert len(first) == 3


async def test_get_entry_missing(db):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")
    with pytest.raises(NotFoundError):
        await get_entry(db, alice.id, 42)


@pytest.mark.parametrize("movie_id", [None, "", "   ", True])
async def test_invalid_movie_id(db, movie_id):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")
    with pytest.raises(ValidationError):
        await set_wanted(db, alice.id, movie_id, True)


async def test_concurrent_first_writes_leave_one_entry(db, session_factory):
    alice = await create_account(db, "alice", "alice@x.com", "hunter2")

    async def writer(wanted):
        async with session_factory() as session:
            return await set_wanted(session, alice.id, 42, wanted)

    writes = await asyncio.gather(*(writer(i % 2 == 0) for i in range(5)))

    assert sum(1 for write in writes if write.created) == 1
    assert len({write.entry.id for write in writes}) == 1
    assert await _count_entries(db, alice.id, 42) == 1
