from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from .config import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": DB_POOL_SIZE, "max_overflow": DB_MAX_OVERFLOW, "pool_pre_ping": True}


engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session


async def init_db():
    from . import models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)


async def check_db(db: AsyncSession) -> bool:
    await db.execute(text("SELECT 1"))
    return True


def insert_for(db: AsyncSession, model):
    """Return an INSERT for ``model`` that supports ON CONFLICT on the session's backend."""
    if db.bind is None:
        raise NotImplementedError("No conflict-aware insert for an unbound session")
    dialect = db.bind.dialect.name
    if dialect == "sqlite":
        return sqlite.insert(model)
    if dialect == "postgresql":
        return postgresql.insert(model)
    raise NotImplementedError(f"No conflict-aware insert for dialect {dialect!r}")


async def close_db():
    await engine.dispose()
