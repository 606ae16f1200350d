from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from backend.app.config import DATA_DIR, DATABASE_URL


class Base(DeclarativeBase):
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False} if _is_sqlite(DATABASE_URL) else {},
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def utcnow() -> str:
    """Current UTC time as an ISO 8601 string (the schema's timestamp format)."""
    return datetime.now(UTC).isoformat()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables and apply pragmas."""
    import backend.app.models  # noqa: F401  ensure models are registered

    if _is_sqlite(DATABASE_URL):
        DATA_DIR.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        if _is_sqlite(DATABASE_URL):
            # SQLite performance & safety pragmas
            await conn.execute(text("PRAGMA journal_mode = WAL"))
            await conn.execute(text("PRAGMA synchronous = NORMAL"))
            await conn.execute(text("PRAGMA foreign_keys = ON"))
            await conn.execute(text("PRAGMA busy_timeout = 5000"))

        await conn.run_sync(Base.metadata.create_all)
