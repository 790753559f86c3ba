"""
Async SQLAlchemy engine and session factory.

Every engine trigger opens its own session from ``async_session_factory``
and runs inside a single transaction, so a pooled connection is held only
for the span of one dispute, ride transition or sweep step.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    # Load server-side defaults (created_at, updated_at) right after flush
    # so rows stay readable once their session is closed.
    __mapper_args__ = {"eager_defaults": True}
