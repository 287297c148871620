# handoff_ai/db/session.py
from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from handoff_ai import config
from .models import *  # registers the tables on SQLModel.metadata

engine: AsyncEngine = create_async_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    pool_pre_ping=True,
)

# Loaded rows stay usable after commit; PatientRecord values are built from them.
SessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for route handlers (`Depends(get_session)`)."""
    async with SessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create the patient and audit tables when missing. Run at app startup."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
