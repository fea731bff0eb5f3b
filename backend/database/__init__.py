from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from config import DATABASE_URL


def engine_options(url: str) -> dict:
    """Pool and isolation settings per backend"""
    if url.startswith("sqlite"):
        # SQLite serializes writers itself; busy timeout lets a second writer wait
        return {"connect_args": {"timeout": 30}}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,  # Verify connections before using
        # Row locks (FOR UPDATE) guard listing inventory and wallet balances
        "isolation_level": "READ COMMITTED",
    }


engine = create_async_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def transaction_scope(session_factory: async_sessionmaker):
    """Open a session and one transaction; commits on exit, rolls back on error"""
    async with session_factory() as session:
        async with session.begin():
            yield session


@asynccontextmanager
async def get_db_transaction():
    """Provide transactional scope for atomic operations"""
    async with transaction_scope(async_session) as session:
        yield session


async def get_db():
    """For dependency injection in FastAPI"""
    async with async_session() as session:
        yield session


async def init_db(bind=None):
    """
    Initialize database.
    Production schemas come from Alembic migrations; local SQLite databases
    are created directly from the model metadata.
    """
    # Import all models to ensure they are registered with SQLModel
    import database.models  # noqa: F401

    target = bind or engine
    if target.url.get_backend_name() == "sqlite":
        async with target.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
