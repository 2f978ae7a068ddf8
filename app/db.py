from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.utils.config import DATABASE_URL

Base = declarative_base()


def build_engine(url: str) -> AsyncEngine:
    # Switch driver to asyncpg if a plain postgres URL is provided
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return create_async_engine(
        url,
        pool_pre_ping=True,
        echo=False,
    )


def build_sessionmaker(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(DATABASE_URL)
SessionLocal = build_sessionmaker(engine)


async def get_db():
    async with SessionLocal() as session:
        yield session
