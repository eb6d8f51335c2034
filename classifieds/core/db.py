from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from classifieds.core.config import settings


def make_engine(url: str):
    return create_async_engine(url, future=True, pool_pre_ping=True)


def make_sessionmaker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


engine = make_engine(settings.database_url) if settings.database_url else None
SessionLocal = make_sessionmaker(engine) if engine is not None else None
